"""Client for the hosted text-generation provider.

Talks to an OpenAI-compatible chat-completions endpoint (OpenRouter by
default). One attempt per call: nothing here retries, and every failure is
surfaced as GenerationFailed so callers deal with a single error type.
"""

from typing import Optional

import httpx

from ..config import AppConfig
from ..errors import GenerationFailed


class OpenRouterClient:
    """Async text-generation client."""

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://openrouter.ai/api/v1",
        default_model: str = "nvidia/nemotron-3-nano-30b-a3b:free",
        timeout: float = 120.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the client.

        Args:
            api_key: Provider credential.
            base_url: API root, without the trailing endpoint path.
            default_model: Model used when a call does not name one.
            timeout: Transport timeout in seconds.
            http_client: Pre-built httpx client (tests pass a mock transport).
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.default_model = default_model
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_config(cls, config: AppConfig) -> "OpenRouterClient":
        return cls(
            api_key=config.openrouter_api_key,
            base_url=config.openrouter_base_url,
            default_model=config.generation_model,
            timeout=config.request_timeout_seconds,
        )

    async def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        model: Optional[str] = None,
    ) -> str:
        """Send a prompt and return the response text.

        Args:
            prompt: User prompt.
            system: Optional system instruction.
            model: Model identifier (default: the client's default model).

        Returns:
            Raw text of the first completion choice.

        Raises:
            GenerationFailed: On network error, provider error, or empty output.
        """
        if not self.api_key:
            raise GenerationFailed("Text generation provider is not configured")

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        try:
            response = await self._client.post(
                f"{self.base_url}/chat/completions",
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={"model": model or self.default_model, "messages": messages},
            )
        except httpx.TimeoutException as e:
            raise GenerationFailed("Text generation timed out") from e
        except httpx.HTTPError as e:
            raise GenerationFailed("Text generation request failed") from e

        if response.status_code >= 400:
            raise GenerationFailed(
                f"Text generation provider returned HTTP {response.status_code}"
            )

        try:
            data = response.json()
            text = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise GenerationFailed("Malformed response from text generation provider") from e

        if not isinstance(text, str) or not text.strip():
            raise GenerationFailed("Text generation provider returned empty response")

        return text

    async def aclose(self) -> None:
        await self._client.aclose()
