"""Text completion over an OpenAI-compatible chat completions API.

Works with LiteLLM proxies, OpenAI itself, vLLM, LM Studio and anything else
that serves ``/v1/chat/completions``.
"""

from typing import Any

import httpx
import structlog

from project_agent.exceptions import CompletionError
from project_agent.providers.base import TextCompletion

log = structlog.get_logger(__name__)

CHAT_COMPLETIONS_PATH = "/v1/chat/completions"


def chat_completions_url(base_url: str) -> str:
    """Endpoint URL for ``base_url``.

    A base URL that already points at the chat completions endpoint is used
    as-is; anything else gets the path appended.
    """
    if CHAT_COMPLETIONS_PATH in base_url:
        return base_url
    return base_url.rstrip("/") + CHAT_COMPLETIONS_PATH


class OpenAICompatibleCompletion(TextCompletion):
    """Single-prompt completion client.

    Each call sends one user message and reads the first choice. There is no
    retry; a failure is reported to the caller as ``CompletionError``.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:4000",
        model: str = "gpt-4",
        api_key: str | None = None,
        timeout: float = 30.0,
    ):
        """Initialize the client.

        Args:
            base_url: Server URL, with or without the chat completions path
            model: Model identifier to request
            api_key: Optional bearer token
            timeout: Request timeout in seconds
        """
        self.url = chat_completions_url(base_url)
        self.model = model
        self.timeout = timeout

        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        self.client = httpx.AsyncClient(timeout=timeout, headers=headers)

    async def disconnect(self) -> None:
        await self.client.aclose()

    async def complete(self, prompt: str) -> str:
        """Send ``prompt`` and return the first choice's message content."""
        log.info("completion_requested", model=self.model, prompt_length=len(prompt))

        try:
            response = await self.client.post(
                self.url,
                json={
                    "model": self.model,
                    "messages": [{"role": "user", "content": prompt}],
                    "stream": False,
                },
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            log.error("completion_http_error", status=e.response.status_code)
            raise CompletionError(
                f"API error (status {e.response.status_code}): {e.response.text}",
                status_code=e.response.status_code,
                response_text=e.response.text,
            ) from e
        except httpx.HTTPError as e:
            log.error("completion_request_failed", error=str(e))
            raise CompletionError(f"Completion request failed: {e}") from e

        try:
            result: dict[str, Any] = response.json()
        except ValueError as e:
            raise CompletionError("Completion response is not valid JSON", response_text=response.text) from e

        error = result.get("error")
        if error:
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            raise CompletionError(f"API error: {message}")

        choices = result.get("choices") or []
        if not choices:
            log.error("no_choices_in_response", model=self.model)
            raise CompletionError("no choices in response")

        content = choices[0].get("message", {}).get("content") or ""
        log.info("completion_received", model=self.model, output_length=len(content))
        return content
