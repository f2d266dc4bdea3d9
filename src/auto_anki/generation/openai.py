"""OpenAI LLM provider implementation."""

import logging
import time
from typing import Optional

import httpx
import openai
from openai import AsyncOpenAI

from .base import LLMProvider, LLMResponse
from .request import GenerationRequest
from ..core.exceptions import AuthenticationError, ProviderError, TransportError

logger = logging.getLogger(__name__)


class OpenAIProvider(LLMProvider):
    """OpenAI chat completions provider (or any OpenAI-compatible endpoint).

    The client is created with retries disabled, so each generate() call
    makes exactly one HTTP request.
    """

    def __init__(
        self,
        api_key: Optional[str],
        api_base: Optional[str] = None,
        timeout: float = 60.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__()
        self.api_key = api_key
        self.api_base = api_base
        self.timeout = timeout
        self._http_client = http_client
        self._client = None

    def _get_client(self) -> AsyncOpenAI:
        """Lazy-load the async OpenAI client."""
        if self._client is None:
            if not self.api_key:
                raise AuthenticationError(
                    "OpenAI API key not found. Set api_key in the config file "
                    "or the OPENAI_API_KEY environment variable."
                )

            kwargs = {
                "api_key": self.api_key,
                "timeout": self.timeout,
                "max_retries": 0,
            }
            if self.api_base:
                kwargs["base_url"] = self.api_base
            if self._http_client is not None:
                kwargs["http_client"] = self._http_client

            self._client = AsyncOpenAI(**kwargs)

        return self._client

    def get_name(self) -> str:
        return "openai"

    async def generate(self, request: GenerationRequest) -> LLMResponse:
        """Generate response using the chat completions API."""
        client = self._get_client()
        payload = request.to_payload()

        start_time = time.time()

        try:
            response = await client.chat.completions.create(**payload)
        except openai.AuthenticationError as e:
            raise AuthenticationError(
                f"OpenAI rejected the API key: {e.message}",
                status_code=e.status_code,
            )
        except openai.APIStatusError as e:
            raise ProviderError(
                f"OpenAI API error ({e.status_code}): {e.message}",
                status_code=e.status_code,
                body=e.response.text,
            )
        except openai.APIConnectionError as e:
            # APITimeoutError is a subclass
            raise TransportError(f"Could not reach OpenAI: {e}")

        latency_ms = (time.time() - start_time) * 1000

        if not response.choices:
            raise ProviderError("OpenAI returned no choices", status_code=200)

        choice = response.choices[0]
        content = choice.message.content or ""

        llm_response = LLMResponse(
            content=content.strip(),
            model=response.model or request.model,
            provider=self.get_name(),
            input_tokens=response.usage.prompt_tokens if response.usage else 0,
            output_tokens=response.usage.completion_tokens if response.usage else 0,
            latency_ms=latency_ms,
            finish_reason=choice.finish_reason,
        )
        self._update_stats(llm_response)

        logger.info(
            f"OpenAI responded in {latency_ms:.0f}ms "
            f"({llm_response.input_tokens} in / {llm_response.output_tokens} out tokens)"
        )
        if llm_response.truncated:
            logger.warning("Response was cut off by max_tokens; later questions may be incomplete")

        return llm_response

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def __aenter__(self) -> "OpenAIProvider":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
