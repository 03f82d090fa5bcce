__version__ = "1.0.0"


def get_version():
    return __version__


from llm_dispatcher.exceptions import (  # noqa: E402
    DispatcherException,
    ProviderNotFoundException,
    ValidationException,
)
from llm_dispatcher.orchestrator.dispatcher import Dispatcher  # noqa: E402
from llm_dispatcher.providers.base import (  # noqa: E402
    DispatchRequest,
    DispatchResponse,
    ProviderConfig,
    TokenUsage,
)

__all__ = [
    "__version__",
    "get_version",
    "Dispatcher",
    "DispatchRequest",
    "DispatchResponse",
    "ProviderConfig",
    "TokenUsage",
    "DispatcherException",
    "ValidationException",
    "ProviderNotFoundException",
]
