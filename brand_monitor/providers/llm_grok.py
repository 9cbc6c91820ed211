"""xAI Grok adapter (Responses API with web search)."""

from brand_monitor.monitor.types import Provider
from brand_monitor.providers.base import BaseProviderAdapter


def _extract_output_text(data: dict) -> str | None:
    if data.get("output_text"):
        return data["output_text"]
    texts = []
    for item in data.get("output") or []:
        if item.get("type") != "message":
            continue
        for block in item.get("content") or []:
            if block.get("type") == "output_text":
                texts.append(block.get("text", ""))
    return "".join(texts) or None


class GrokAdapter(BaseProviderAdapter):
    provider = Provider.GROK

    async def _send(self, prompt: str) -> str | None:
        payload = {
            "model": self.config.model,
            "input": [{"role": "user", "content": prompt}],
            "tools": [{"type": "web_search"}],
        }
        data = await self._post(
            self.config.api_url,
            payload,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
        )
        return _extract_output_text(data)
