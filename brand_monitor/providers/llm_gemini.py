"""Google Gemini adapter (generateContent with Google Search grounding)."""

import logging

from brand_monitor.monitor.types import Provider
from brand_monitor.providers.base import BaseProviderAdapter

logger = logging.getLogger(__name__)


class GeminiAdapter(BaseProviderAdapter):
    provider = Provider.GEMINI

    async def _send(self, prompt: str) -> str | None:
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "tools": [{"google_search": {}}],
            "generationConfig": {"maxOutputTokens": self.config.max_tokens},
        }
        data = await self._post(
            self.config.api_url.format(model=self.config.model),
            payload,
            headers={"Content-Type": "application/json"},
            params={"key": self.api_key},
        )

        candidates = data.get("candidates") or []
        if not candidates:
            feedback = data.get("promptFeedback", {})
            if feedback.get("blockReason"):
                logger.warning("Gemini blocked prompt: %s", feedback["blockReason"])
            return None

        parts = candidates[0].get("content", {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts)
        return text or None
