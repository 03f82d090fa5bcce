"""Provider registry: admitted provider configurations and their adapters."""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from pydantic import SecretStr

from llm_dispatcher.config.settings import Settings
from llm_dispatcher.telemetry import metrics
from llm_dispatcher.telemetry.logger import get_logger

from .anthropic_provider import AnthropicAdapter
from .base import BaseAdapter, ProviderConfig
from .gemini import GeminiAdapter
from .mock_provider import MockAdapter
from .openai_compatible import GroqAdapter, OpenRouterAdapter, TogetherAdapter

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProviderFamily:
    """Static description of a provider family known at startup."""

    name: str
    display_name: str
    credential_field: Optional[str]
    base_endpoint: str
    models: Tuple[str, ...]
    priority: int
    timeout_ms: int
    max_retries: int
    default_latency_ms: float
    adapter_factory: Callable[[], BaseAdapter]
    enabled_flag: Optional[str] = None

    def build_config(self, settings: Settings) -> ProviderConfig:
        credential = (
            settings.credential_for(self.credential_field) if self.credential_field else None
        )
        return ProviderConfig(
            name=self.name,
            display_name=self.display_name,
            credential=credential,
            base_endpoint=self.base_endpoint,
            candidate_models=list(self.models),
            priority=self.priority,
            timeout_ms=self.timeout_ms,
            max_retries=self.max_retries,
            default_latency_ms=self.default_latency_ms,
        )


PROVIDER_FAMILIES: Tuple[ProviderFamily, ...] = (
    ProviderFamily(
        name="openrouter",
        display_name="OpenRouter",
        credential_field="openrouter_api_key",
        base_endpoint="https://openrouter.ai/api/v1",
        models=(
            "meta-llama/llama-3.3-8b-instruct:free",
            "deepseek/deepseek-r1-0528:free",
            "deepseek/deepseek-prover-v2:free",
            "mistralai/devstral-small:free",
            "qwen/qwen3-30b-a3b:free",
        ),
        priority=1,
        timeout_ms=30000,
        max_retries=3,
        default_latency_ms=2000,
        adapter_factory=OpenRouterAdapter,
    ),
    ProviderFamily(
        name="groq",
        display_name="Groq",
        credential_field="groq_api_key",
        base_endpoint="https://api.groq.com/openai/v1",
        models=(
            "llama-3.1-8b-instant",
            "llama-3.1-70b-versatile",
            "mixtral-8x7b-32768",
            "gemma-7b-it",
        ),
        priority=2,
        timeout_ms=15000,
        max_retries=2,
        default_latency_ms=800,
        adapter_factory=GroqAdapter,
    ),
    ProviderFamily(
        name="together",
        display_name="Together AI",
        credential_field="together_api_key",
        base_endpoint="https://api.together.xyz/v1",
        models=(
            "meta-llama/Llama-3-8b-chat-hf",
            "meta-llama/Llama-3-70b-chat-hf",
            "mistralai/Mixtral-8x7B-Instruct-v0.1",
            "NousResearch/Nous-Hermes-2-Mixtral-8x7B-DPO",
        ),
        priority=3,
        timeout_ms=25000,
        max_retries=2,
        default_latency_ms=3000,
        adapter_factory=TogetherAdapter,
    ),
    ProviderFamily(
        name="gemini",
        display_name="Google Gemini",
        credential_field="gemini_api_key",
        base_endpoint="https://generativelanguage.googleapis.com/v1beta",
        models=("gemini-1.5-flash", "gemini-1.5-pro", "gemini-pro"),
        priority=4,
        timeout_ms=20000,
        max_retries=2,
        default_latency_ms=2500,
        adapter_factory=GeminiAdapter,
    ),
    ProviderFamily(
        name="anthropic",
        display_name="Anthropic",
        credential_field="anthropic_api_key",
        base_endpoint="https://api.anthropic.com",
        models=("claude-3-haiku-20240307", "claude-3-sonnet-20240229"),
        priority=5,
        timeout_ms=30000,
        max_retries=2,
        default_latency_ms=3000,
        adapter_factory=AnthropicAdapter,
    ),
    ProviderFamily(
        name="mock",
        display_name="Mock",
        credential_field=None,
        base_endpoint="mock://local",
        models=("mock-echo",),
        priority=99,
        timeout_ms=5000,
        max_retries=0,
        default_latency_ms=50,
        adapter_factory=MockAdapter,
        enabled_flag="mock_provider_enabled",
    ),
)


@dataclass
class RegistrationResult:
    name: str
    admitted: bool
    reason: Optional[str] = None


@dataclass
class RegistrationReport:
    admitted: List[RegistrationResult] = field(default_factory=list)
    rejected: List[RegistrationResult] = field(default_factory=list)

    def add(self, result: RegistrationResult) -> None:
        (self.admitted if result.admitted else self.rejected).append(result)

    @property
    def admitted_names(self) -> List[str]:
        return [r.name for r in self.admitted]

    def to_dict(self) -> Dict[str, List[Dict[str, Optional[str]]]]:
        return {
            "admitted": [r.name for r in self.admitted],
            "rejected": [{"name": r.name, "reason": r.reason} for r in self.rejected],
        }


class ProviderRegistry:
    """Insertion-ordered mapping of admitted providers to their adapters.

    Configurations are fixed once admitted; the only mutation is the
    ``is_active`` flag, flipped through ``set_active``.
    """

    def __init__(self) -> None:
        self._providers: Dict[str, ProviderConfig] = {}
        self._adapters: Dict[str, BaseAdapter] = {}

    def validate(self, config: ProviderConfig) -> Optional[str]:
        """Return the rejection reason for ``config``, or None when it is admissible."""
        if not config.name or not config.name.strip():
            return "missing name"
        if config.name in self._providers:
            return "duplicate name"
        if config.credential is None or not config.credential.get_secret_value().strip():
            return "missing credential"
        if not config.candidate_models:
            return "no candidate models"
        if config.timeout_ms <= 0:
            return "timeout must be positive"
        return None

    def register_provider(self, config: ProviderConfig, adapter: BaseAdapter) -> RegistrationResult:
        reason = self.validate(config)
        if reason:
            logger.info("provider_rejected", provider=config.name, reason=reason)
            return RegistrationResult(name=config.name, admitted=False, reason=reason)

        self._providers[config.name] = config
        self._adapters[config.name] = adapter
        metrics.set_provider_active(config.name, config.is_active)
        logger.info(
            "provider_registered",
            provider=config.name,
            models=len(config.candidate_models),
            priority=config.priority,
        )
        return RegistrationResult(name=config.name, admitted=True)

    def initialize(
        self,
        settings: Settings,
        families: Optional[Tuple[ProviderFamily, ...]] = None,
    ) -> RegistrationReport:
        """Register every known family whose credential is configured."""
        report = RegistrationReport()

        for family in sorted(families or PROVIDER_FAMILIES, key=lambda f: f.priority):
            if family.enabled_flag and not getattr(settings, family.enabled_flag, False):
                continue

            config = family.build_config(settings)
            if family.credential_field is None:
                # Credential-less families (mock) are gated by their flag instead
                config.credential = config.credential or SecretStr(family.name)

            if config.credential is None:
                report.add(RegistrationResult(family.name, False, "missing credential"))
                continue

            report.add(self.register_provider(config, family.adapter_factory()))

        logger.info(
            "provider_registry_initialized",
            admitted=report.admitted_names,
            rejected=[r.name for r in report.rejected],
        )
        return report

    def get(self, name: str) -> Optional[ProviderConfig]:
        return self._providers.get(name)

    def get_adapter(self, name: str) -> Optional[BaseAdapter]:
        return self._adapters.get(name)

    def names(self) -> List[str]:
        return list(self._providers)

    def configs(self) -> List[ProviderConfig]:
        return list(self._providers.values())

    def active_configs(self) -> List[ProviderConfig]:
        return [config for config in self._providers.values() if config.is_active]

    def set_active(self, name: str, active: bool) -> bool:
        """Flip the active flag. Returns False when the provider is unknown."""
        config = self._providers.get(name)
        if config is None:
            return False
        config.is_active = active
        metrics.set_provider_active(name, active)
        return True

    def adapters(self) -> List[BaseAdapter]:
        # Several providers may share one adapter instance
        unique: Dict[int, BaseAdapter] = {}
        for adapter in self._adapters.values():
            unique.setdefault(id(adapter), adapter)
        return list(unique.values())

    def __len__(self) -> int:
        return len(self._providers)

    def __contains__(self, name: object) -> bool:
        return name in self._providers

    def __iter__(self) -> Iterator[ProviderConfig]:
        return iter(list(self._providers.values()))
