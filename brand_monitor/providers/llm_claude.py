"""Anthropic Claude adapter (Messages API with the server-side web search tool)."""

from brand_monitor.monitor.types import Provider
from brand_monitor.providers.base import BaseProviderAdapter

ANTHROPIC_VERSION = "2023-06-01"
WEB_SEARCH_MAX_USES = 2


class ClaudeAdapter(BaseProviderAdapter):
    provider = Provider.CLAUDE

    async def _send(self, prompt: str) -> str | None:
        payload = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
            "tools": [
                {
                    "type": "web_search_20250305",
                    "name": "web_search",
                    "max_uses": WEB_SEARCH_MAX_USES,
                }
            ],
        }
        data = await self._post(
            self.config.api_url,
            payload,
            headers={
                "x-api-key": self.api_key,
                "anthropic-version": ANTHROPIC_VERSION,
                "Content-Type": "application/json",
            },
        )
        # Tool-use and search-result blocks are interleaved with the text blocks
        texts = [block.get("text", "") for block in data.get("content") or [] if block.get("type") == "text"]
        return "\n".join(texts) or None
