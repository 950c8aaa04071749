"""
chunkscribe.llm.client - LLM backend abstraction using litellm.

Provides a unified interface for Gemini, OpenAI, Ollama, and LM Studio
with once-only credential resolution and retry logic.
"""

from __future__ import annotations

import threading
import time
from typing import Any

from chunkscribe.logging import logger

LOCAL_API_BASES = {
    "ollama": "http://localhost:11434",
    "lmstudio": "http://localhost:1234/v1",
}


class LLMClient:
    """LLM client wrapper with lazy credentials and retry logic."""

    def __init__(
        self,
        backend: str = "gemini",
        model: str = "gemini-2.0-flash",
        secrets: Any = None,
        secret_name: str | None = None,
        timeout: int = 300,
        max_retries: int = 1,
        retry_delay: float = 2.0,
    ) -> None:
        self.backend = backend
        self.model = model
        self.secrets = secrets
        self.secret_name = secret_name
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._api_key: str | None = None
        self._lock = threading.Lock()
        self._token_usage = {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}

    def _get_model_string(self) -> str:
        """Get the model string for litellm based on backend."""
        if self.backend == "gemini":
            return f"gemini/{self.model}"
        elif self.backend == "ollama":
            return f"ollama/{self.model}"
        elif self.backend == "lmstudio":
            return f"openai/{self.model}"
        return self.model

    def _get_api_key(self) -> str | None:
        """Resolve the API key on first use; local backends need none."""
        if self.backend in LOCAL_API_BASES or not self.secret_name or self.secrets is None:
            return None
        if self._api_key is None:
            with self._lock:
                if self._api_key is None:
                    logger.info("Resolving %s API key '%s'", self.backend, self.secret_name)
                    self._api_key = self.secrets.get_secret(self.secret_name)
        return self._api_key

    def complete(
        self,
        prompt: str,
        max_tokens: int | None = None,
        temperature: float = 0.3,
        json_mode: bool = False,
        console=None,
    ) -> str:
        """Send prompt to LLM and get completion with retry logic.

        Args:
            prompt: The prompt string
            max_tokens: Maximum tokens in response (backend default if None)
            temperature: Sampling temperature
            json_mode: Request a JSON object response
            console: Optional rich console for output

        Returns:
            LLM response text

        Raises:
            LLMResponseError: If the response has no content
            LLMError: If LLM request fails after all retries
        """
        from chunkscribe.exceptions import LLMError, LLMResponseError

        try:
            import litellm
        except ImportError as e:
            raise LLMError("litellm not installed. Install with: pip install litellm") from e

        litellm.telemetry = False

        kwargs: dict[str, Any] = {
            "model": self._get_model_string(),
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
            "timeout": self.timeout,
        }
        if max_tokens:
            kwargs["max_tokens"] = max_tokens
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        if self.backend in LOCAL_API_BASES:
            kwargs["api_base"] = LOCAL_API_BASES[self.backend]
        api_key = self._get_api_key()
        if api_key:
            kwargs["api_key"] = api_key

        last_error = None

        for attempt in range(self.max_retries):
            if attempt > 0:
                logger.info("LLM retry %d/%d", attempt + 1, self.max_retries)
                if console:
                    console.print(f"[yellow]  Retry {attempt + 1}/{self.max_retries}...[/yellow]")

            try:
                response = litellm.completion(**kwargs)

                usage = getattr(response, "usage", None)
                if usage:
                    self._token_usage["prompt_tokens"] += getattr(usage, "prompt_tokens", 0) or 0
                    self._token_usage["completion_tokens"] += (
                        getattr(usage, "completion_tokens", 0) or 0
                    )
                    self._token_usage["total_tokens"] += getattr(usage, "total_tokens", 0) or 0

                choices = getattr(response, "choices", [])
                if not choices:
                    raise LLMResponseError("Empty response from LLM")

                message = getattr(choices[0], "message", None)
                if message is None:
                    raise LLMResponseError("No message in LLM response")

                content = getattr(message, "content", None)
                if content is None:
                    raise LLMResponseError("No content in LLM message")

                return content

            except LLMResponseError:
                raise
            except Exception as e:
                last_error = e
                error_str = str(e).lower()

                if "rate limit" in error_str:
                    logger.warning("LLM rate limited, waiting: %s", e)
                    delay = self.retry_delay * 2
                else:
                    logger.warning("LLM request failed: %s", e)
                    delay = self.retry_delay

                if attempt < self.max_retries - 1:
                    time.sleep(delay)

        raise LLMError(
            f"LLM request failed after {self.max_retries} attempt(s): {last_error}"
        ) from last_error

    def get_token_usage(self) -> dict[str, int]:
        """Get cumulative token usage."""
        return self._token_usage.copy()


def create_client_from_config(config: Any, secrets: Any) -> LLMClient:
    """Create LLM client from ChunkscribeConfig.

    Args:
        config: ChunkscribeConfig instance
        secrets: SecretSource used to resolve the API key

    Returns:
        Configured LLMClient
    """
    return LLMClient(
        backend=config.llm_backend,
        model=config.llm_model,
        secrets=secrets,
        secret_name=config.llm_secret,
        timeout=config.llm_timeout,
        max_retries=config.segmentation_attempts,
    )
