"""LLM client interface used by the export pipeline."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from .request import GenerationRequest


@dataclass
class LLMResponse:
    """Text returned by one chat completion, plus usage."""
    content: str
    model: str
    provider: str
    input_tokens: int = 0
    output_tokens: int = 0
    latency_ms: float = 0.0
    finish_reason: Optional[str] = None

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    @property
    def truncated(self) -> bool:
        """The completion hit max_tokens; the question list may be cut short."""
        return self.finish_reason == "length"


@dataclass
class UsageStats:
    requests: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    latencies_ms: list = field(default_factory=list)

    def record(self, response: LLMResponse) -> None:
        self.requests += 1
        self.input_tokens += response.input_tokens
        self.output_tokens += response.output_tokens
        self.latencies_ms.append(response.latency_ms)


class LLMProvider(ABC):
    """One outbound chat completion per generate() call, never retried.

    Implementations map their SDK's failures onto AuthenticationError,
    ProviderError and TransportError.
    """

    def __init__(self):
        self.usage = UsageStats()

    @abstractmethod
    async def generate(self, request: GenerationRequest) -> LLMResponse:
        """Send the request and return the completion text.

        Raises:
            AuthenticationError: If the credential is missing or rejected
            ProviderError: If the provider answers with any other error
            TransportError: If the provider cannot be reached
        """

    @abstractmethod
    def get_name(self) -> str:
        pass

    async def aclose(self) -> None:
        """Release network resources; a no-op unless overridden."""

    def _update_stats(self, response: LLMResponse) -> None:
        self.usage.record(response)

    def get_stats(self) -> dict:
        return {
            "provider": self.get_name(),
            "requests": self.usage.requests,
            "input_tokens": self.usage.input_tokens,
            "output_tokens": self.usage.output_tokens,
            "total_tokens": self.usage.input_tokens + self.usage.output_tokens,
        }
