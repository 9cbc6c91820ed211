"""OpenAI (ChatGPT) adapter with built-in web search."""

from brand_monitor.monitor.types import Provider
from brand_monitor.providers.base import BaseProviderAdapter


class ChatGptAdapter(BaseProviderAdapter):
    provider = Provider.CHATGPT

    async def _send(self, prompt: str) -> str | None:
        payload = {
            "model": self.config.model,
            "web_search_options": {},
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self.config.max_tokens,
        }
        data = await self._post(
            self.config.api_url,
            payload,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
        )
        choices = data.get("choices") or []
        if not choices:
            return None
        return choices[0].get("message", {}).get("content") or None
