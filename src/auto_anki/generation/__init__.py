"""LLM providers and request building for question generation."""

from .base import LLMProvider, LLMResponse
from .request import GenerationRequest, build_request
from .openai import OpenAIProvider

from ..core.models import ConfigSnapshot

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "GenerationRequest",
    "build_request",
    "OpenAIProvider",
    "get_provider",
]


def get_provider(snapshot: ConfigSnapshot) -> LLMProvider:
    """Get the LLM provider configured for a run.

    Args:
        snapshot: Run configuration (key, endpoint, timeout)

    Returns:
        LLMProvider instance
    """
    return OpenAIProvider(
        api_key=snapshot.api_key,
        api_base=snapshot.api_base,
        timeout=snapshot.timeout,
    )
