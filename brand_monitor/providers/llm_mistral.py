"""Mistral adapter.

Two call paths: the Conversations API with the ``web_search`` connector is
tried first; if it keeps failing with a rate-limit style error, a single
plain chat completion is made instead and the answer is flagged with an
advisory error (it is still a valid response).
"""

import logging

from brand_monitor.monitor.types import Provider
from brand_monitor.providers.base import BaseProviderAdapter, is_retryable

logger = logging.getLogger(__name__)

CHAT_API_URL = "https://api.mistral.ai/v1/chat/completions"
FALLBACK_ADVISORY = "fallback: without web search (429)"


def _extract_conversation_text(data: dict) -> str | None:
    """Pick the assistant message from a Conversations API reply."""
    for output in data.get("outputs") or []:
        if output.get("type") != "message.output" or output.get("role", "assistant") != "assistant":
            continue
        content = output.get("content")
        if isinstance(content, str):
            return content or None
        if isinstance(content, list):
            text = "".join(
                chunk.get("text", "") for chunk in content if isinstance(chunk, dict) and chunk.get("type") == "text"
            )
            return text or None
    return None


class MistralAdapter(BaseProviderAdapter):
    provider = Provider.MISTRAL

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def complete(self, prompt: str) -> tuple[str | None, str | None]:
        try:
            return await self.with_retry(self._send, prompt), None
        except Exception as e:
            if not is_retryable(e):
                raise
            logger.warning("Mistral web search unavailable (%s), falling back to plain chat", e)

        text = await self.with_deadline(self._send_chat, prompt)
        return text, FALLBACK_ADVISORY

    async def _send(self, prompt: str) -> str | None:
        payload = {
            "model": self.config.model,
            "inputs": prompt,
            "tools": [{"type": "web_search"}],
            "store": False,
        }
        data = await self._post(self.config.api_url, payload, headers=self._headers())
        return _extract_conversation_text(data)

    async def _send_chat(self, prompt: str) -> str | None:
        payload = {
            "model": self.config.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self.config.max_tokens,
        }
        data = await self._post(CHAT_API_URL, payload, headers=self._headers())
        choices = data.get("choices") or []
        if not choices:
            return None
        content = choices[0].get("message", {}).get("content")
        if isinstance(content, list):
            content = "".join(chunk.get("text", "") for chunk in content if isinstance(chunk, dict))
        return content or None
