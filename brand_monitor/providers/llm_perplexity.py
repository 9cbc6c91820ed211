"""Perplexity adapter (sonar, search-grounded by default)."""

from brand_monitor.monitor.types import Provider
from brand_monitor.providers.base import BaseProviderAdapter

TEMPERATURE = 0.3


class PerplexityAdapter(BaseProviderAdapter):
    provider = Provider.PERPLEXITY

    async def _send(self, prompt: str) -> str | None:
        payload = {
            "model": self.config.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self.config.max_tokens,
            "temperature": TEMPERATURE,
        }
        data = await self._post(
            self.config.api_url,
            payload,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )
        choices = data.get("choices") or []
        if not choices:
            return None
        return choices[0].get("message", {}).get("content") or None
