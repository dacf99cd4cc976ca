"""
OpenAI-compatible chat completion client
"""
from typing import Any, Dict

import httpx

from config import Settings
from errors import ConfigError, UpstreamError, ValidationError
from logging_config import get_logger

logger = get_logger("gateway.upstream")

# Upstream error bodies are logged for diagnostics, capped at this many characters
MAX_LOGGED_BODY = 500


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    """Shared upstream client with a bounded pool and timeout"""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.upstream_timeout),
        limits=httpx.Limits(max_connections=settings.upstream_max_connections),
    )


class CompletionProxy:
    def __init__(self, settings: Settings, client: httpx.AsyncClient):
        if not settings.openai_api_key:
            raise ConfigError()
        self.url = settings.openai_api_url
        self.model = settings.openai_model
        self.max_tokens = settings.max_tokens
        self.temperature = settings.temperature
        self._api_key = settings.openai_api_key
        self._client = client

    def __repr__(self) -> str:
        return f"CompletionProxy(url={self.url!r}, model={self.model!r})"

    def build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }

    async def complete(self, prompt: str) -> str:
        """Send one user prompt upstream and return the trimmed first answer"""
        if not prompt or not prompt.strip():
            raise ValidationError("Prompt is required")

        try:
            response = await self._client.post(
                self.url,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                json=self.build_payload(prompt),
            )
        except httpx.TimeoutException as e:
            logger.warning("Upstream timed out", url=self.url)
            raise UpstreamError(reason="timeout") from e
        except httpx.HTTPError as e:
            logger.warning("Upstream unreachable", url=self.url, error=type(e).__name__)
            raise UpstreamError(reason=type(e).__name__) from e

        if not response.is_success:
            logger.error(
                "Upstream returned an error",
                status=response.status_code,
                body=response.text[:MAX_LOGGED_BODY],
            )
            raise UpstreamError(upstream_status=response.status_code, reason="status")

        return self._parse_answer(response)

    def _parse_answer(self, response: httpx.Response) -> str:
        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error("Malformed upstream response", error=type(e).__name__)
            raise UpstreamError(reason="malformed") from e

        if not isinstance(content, str):
            logger.error("Malformed upstream response", error="content is not a string")
            raise UpstreamError(reason="malformed")
        return content.strip()
