"""
Deterministic fingerprints for the response cache.
"""

import hashlib
import json

from llm_dispatcher.providers.base import DEFAULT_TEMPERATURE, DispatchRequest

# Bump to invalidate every stored fingerprint
KEY_VERSION = "v1"


def generate_fingerprint(prompt: str, temperature: float) -> str:
    """
    Generate a cache fingerprint.

    Only the prompt and the effective temperature participate. System
    message, max tokens and model key are deliberately left out, so two
    requests differing only in those share a cache entry.

    Args:
        prompt: Prompt text, used verbatim
        temperature: Effective sampling temperature

    Returns:
        Versioned hex digest
    """
    key_components = {
        "version": KEY_VERSION,
        "prompt": prompt,
        "temperature": round(float(temperature), 2),
    }
    key_string = json.dumps(key_components, sort_keys=True, separators=(",", ":"))
    key_hash = hashlib.sha256(key_string.encode()).hexdigest()
    return f"llm:{KEY_VERSION}:{key_hash}"


def fingerprint_for(request: DispatchRequest, default_temperature: float = DEFAULT_TEMPERATURE) -> str:
    return generate_fingerprint(request.prompt, request.effective_temperature(default_temperature))
