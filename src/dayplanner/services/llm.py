"""
Completion client for OpenAI-compatible chat APIs (LM Studio, OpenAI).

One request per call, no retries. Transport and envelope problems are mapped
onto the AIError family; the content string is returned untouched so each
processor can parse it its own way.
"""
import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from dayplanner.core.config import LLMConfig, ConnectionConfig, settings
from dayplanner.core.exceptions import (
    CompletionTimeoutError,
    InvalidResponseError,
    NotConnectedError,
    RequestFailedError,
)
from dayplanner.core.logging import logger
from dayplanner.models.schemas import ConnectionStatus


OPENAI_BASE_URL = "https://api.openai.com"
DEFAULT_SYSTEM_PROMPT = "You are a helpful day planning assistant. Always respond with valid JSON."

# Statuses that mean the endpoint is unusable rather than a one-off failure
_UNREACHABLE_STATUSES = {401, 403, 404}


class CompletionClient:
    """Minimal async client for the configured completion provider."""

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        connection: Optional[ConnectionConfig] = None,
    ):
        """Initialize the client.

        Args:
            config: Provider settings; defaults to the global settings
            connection: Probe settings; defaults to the global settings
        """
        self.config = config or settings.llm
        self.connection = connection or settings.connection

        logger.info(f"[LLM] Initialized client: {self.provider} / {self.model_name}")

    @property
    def provider(self) -> str:
        return (self.config.provider or "local").lower()

    @property
    def base_url(self) -> str:
        if self.provider == "openai":
            return OPENAI_BASE_URL
        return self.config.base_url.rstrip("/")

    @property
    def model_name(self) -> str:
        if self.provider == "openai":
            return self.config.openai_model
        return self.config.local_model

    @property
    def completions_url(self) -> str:
        return f"{self.base_url}/v1/chat/completions"

    @property
    def models_url(self) -> str:
        return f"{self.base_url}/v1/models"

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.provider == "openai":
            headers["Authorization"] = f"Bearer {self.config.openai_api_key}"
        return headers

    def _require_credentials(self) -> None:
        if self.provider == "openai" and not self.config.openai_api_key:
            raise NotConnectedError("OpenAI API key is not configured")

    def build_payload(self, prompt: str, system_prompt: Optional[str] = None) -> Dict[str, Any]:
        """Request body for a single system + user exchange."""
        return {
            "model": self.model_name,
            "messages": [
                {"role": "system", "content": system_prompt or DEFAULT_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
            "stream": False,
        }

    async def complete(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """Send one chat completion and return the assistant's content.

        Args:
            prompt: User prompt text
            system_prompt: Optional system message override

        Returns:
            ``choices[0].message.content``, "" when the model sent none

        Raises:
            NotConnectedError: Missing credentials, unreachable or rejecting endpoint
            RequestFailedError: Any other non-200 status
            CompletionTimeoutError: Request or overall resource timeout exceeded
            InvalidResponseError: Envelope is not JSON or has no message
        """
        self._require_credentials()
        try:
            return await asyncio.wait_for(
                self._post(prompt, system_prompt),
                timeout=self.config.resource_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"[LLM] Completion exceeded {self.config.resource_timeout}s")
            raise CompletionTimeoutError(f"exceeded {self.config.resource_timeout}s")

    async def _post(self, prompt: str, system_prompt: Optional[str]) -> str:
        payload = self.build_payload(prompt, system_prompt)
        try:
            async with httpx.AsyncClient(timeout=self.config.request_timeout) as client:
                response = await client.post(self.completions_url, json=payload, headers=self._headers())
        except httpx.TimeoutException:
            logger.error(f"[LLM] Request timed out after {self.config.request_timeout}s")
            raise CompletionTimeoutError(f"request timed out after {self.config.request_timeout}s")
        except httpx.ConnectError as e:
            logger.error(f"[LLM] Cannot reach {self.completions_url}: {e}")
            raise NotConnectedError(str(e))
        except httpx.HTTPError as e:
            logger.error(f"[LLM] Transport error: {e}")
            raise RequestFailedError(str(e))

        if response.status_code != 200:
            logger.error(f"[LLM] HTTP error: {response.status_code}")
            logger.debug(f"[LLM] Response: {response.text[:500]}")
            if response.status_code in _UNREACHABLE_STATUSES:
                raise NotConnectedError(f"HTTP {response.status_code}", status_code=response.status_code)
            raise RequestFailedError(f"HTTP {response.status_code}", status_code=response.status_code)

        return self.extract_content(response)

    def extract_content(self, response: httpx.Response) -> str:
        """Pull the assistant content out of a completion envelope."""
        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError) as e:
            logger.error(f"[LLM] Response is not JSON: {e}")
            raise InvalidResponseError("response body is not JSON")

        try:
            message = data["choices"][0]["message"]
        except (KeyError, IndexError, TypeError) as e:
            logger.error(f"[LLM] Failed to extract message: {e}")
            raise InvalidResponseError("missing choices[0].message")

        if not isinstance(message, dict):
            raise InvalidResponseError("choices[0].message is not an object")
        content = message.get("content")
        return content if isinstance(content, str) else ""

    async def probe(self) -> ConnectionStatus:
        """Check that the provider answers ``GET /v1/models``."""
        status = ConnectionStatus(
            connected=False,
            provider=self.provider,
            endpoint=self.models_url,
            last_checked=datetime.now(timezone.utc),
        )

        if self.provider == "openai" and not self.config.openai_api_key:
            status.last_error = "OpenAI API key is not configured"
            return status

        try:
            async with httpx.AsyncClient(timeout=self.connection.probe_timeout) as client:
                response = await client.get(self.models_url, headers=self._headers())
        except httpx.HTTPError as e:
            logger.warning(f"[LLM] Probe failed for {self.models_url}: {e}")
            status.last_error = str(e) or e.__class__.__name__
            return status

        status.last_status_code = response.status_code
        if response.status_code == 200:
            status.connected = True
        else:
            status.last_error = f"HTTP {response.status_code}"
        return status
