"""Chat-completions client with async support and retry logic.

Talks to any OpenAI-compatible endpoint (Ollama, vLLM, hosted gateways).
"""

from __future__ import annotations

import asyncio
import os
import random
from typing import Any

import httpx

from .config import ModelConfig

SYSTEM_PROMPT = """You are a helpful AI assistant specialized in code modifications.
You can read and modify files within the provided directory.
Always ensure code quality and follow best practices."""


class ModelClientError(RuntimeError):
    """Raised when the model endpoint cannot produce a completion."""


def _network_disabled() -> bool:
    return os.getenv("CODEAGENT_DISABLE_NETWORK") == "1"


class ModelClient:
    """
    Async HTTP client for a chat-completions endpoint with retry/backoff logic.

    Features:
    - Exponential backoff with jitter for rate limits
    - Concurrency limiting via semaphore
    - Automatic retry on transient failures
    """

    def __init__(self, config: ModelConfig):
        self.config = config
        self.semaphore = asyncio.Semaphore(config.max_concurrency)
        self.retry_max = config.retry_max

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if key := self.config.api_key:
            headers["Authorization"] = f"Bearer {key}"
        return headers

    async def chat_completion(
        self,
        messages: list[dict[str, str]],
        temperature: float | None = None,
    ) -> dict[str, Any]:
        """
        Send chat completion request with retry/backoff logic.

        Args:
            messages: List of message dicts with "role" and "content"
            temperature: Sampling temperature (default: from config)

        Returns:
            Response dict with "choices" containing the completion

        Retry strategy:
        - 429 (rate limit): Exponential backoff with jitter
        - 503/504 (server error): Exponential backoff
        - Other 4xx/5xx: No retry
        - Network errors: Retry with backoff

        Raises:
            RuntimeError: If CODEAGENT_DISABLE_NETWORK=1
            ModelClientError: After max retries exceeded or on client errors
        """
        if _network_disabled():
            raise RuntimeError("Network access disabled by CODEAGENT_DISABLE_NETWORK=1")

        if temperature is None:
            temperature = self.config.temperature

        async with self.semaphore:  # Limit concurrency
            for attempt in range(self.retry_max):
                try:
                    async with httpx.AsyncClient(
                        timeout=self.config.timeout_seconds
                    ) as client:
                        response = await client.post(
                            f"{self.config.base_url}/chat/completions",
                            headers=self._headers(),
                            json={
                                "model": self.config.model_id,
                                "messages": messages,
                                "temperature": temperature,
                                "max_tokens": self.config.max_tokens,
                            },
                        )

                        if response.status_code == 200:
                            return response.json()

                        # Retry on transient errors
                        if response.status_code in [429, 503, 504]:
                            sleep_time = (2**attempt) * 0.5  # Exponential backoff
                            jitter = random.uniform(0, 0.1 * sleep_time)
                            await asyncio.sleep(sleep_time + jitter)
                            continue

                        raise ModelClientError(
                            f"Model request failed with HTTP {response.status_code}: "
                            f"{response.text[:500]}"
                        )

                except (httpx.NetworkError, httpx.TimeoutException) as e:
                    if attempt < self.retry_max - 1:
                        sleep_time = (2**attempt) * 0.5
                        await asyncio.sleep(sleep_time)
                        continue
                    raise ModelClientError(
                        f"Network error after {self.retry_max} attempts: {e}"
                    ) from e

            raise ModelClientError(f"Max retries ({self.retry_max}) exceeded")

    async def complete(
        self,
        prompt: str,
        history: list[dict[str, str]] | None = None,
    ) -> str:
        """
        Send a prompt with prior conversation and return the assistant text.

        Raises:
            ModelClientError: On transport failure or a response without content
        """
        messages = [{"role": "system", "content": SYSTEM_PROMPT}]
        messages.extend(history or [])
        messages.append({"role": "user", "content": prompt})

        response = await self.chat_completion(messages)
        try:
            content = response["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ModelClientError("No response content found") from e
        if not isinstance(content, str):
            raise ModelClientError("No response content found")
        return content

    async def health_check(self) -> bool:
        """
        Check if the endpoint is reachable.

        Returns:
            True if API responds, False otherwise
        """
        if _network_disabled():
            return False
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                response = await client.get(
                    f"{self.config.base_url}/models", headers=self._headers()
                )
                return response.status_code == 200
        except httpx.HTTPError:
            return False
