"""Judge LLM client (Anthropic Messages API over httpx).

Used by the mention analyzer and the recommendation generator. The judge
role is separate from the polled providers even though it is the same vendor
as one of them.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)

JUDGE_API_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_JUDGE_TIMEOUT = 120.0

_LEADING_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*", re.IGNORECASE)
_TRAILING_FENCE_RE = re.compile(r"\s*```\s*$")


class JudgeError(Exception):
    """The judge call failed (transport, HTTP status or unusable payload)."""


@dataclass
class JudgeReply:
    text: str
    output_tokens: int = 0


def strip_code_fences(text: str) -> str:
    """Remove a leading ```json fence and a trailing ``` fence; fences inside the payload are kept."""
    text = _LEADING_FENCE_RE.sub("", text, count=1)
    return _TRAILING_FENCE_RE.sub("", text, count=1).strip()


class JudgeClient:
    def __init__(self, api_key: str, model: str, timeout: float = DEFAULT_JUDGE_TIMEOUT):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def complete(self, prompt: str, max_tokens: int) -> JudgeReply:
        payload = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    JUDGE_API_URL,
                    json=payload,
                    headers={
                        "x-api-key": self.api_key,
                        "anthropic-version": ANTHROPIC_VERSION,
                        "Content-Type": "application/json",
                    },
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.TimeoutException as e:
            raise JudgeError(f"Judge call timed out after {self.timeout:g}s") from e
        except httpx.HTTPStatusError as e:
            raise JudgeError(f"Judge HTTP {e.response.status_code}: {e.response.text[:200]}") from e
        except httpx.HTTPError as e:
            raise JudgeError(f"Judge transport error: {e}") from e
        except ValueError as e:
            raise JudgeError("Judge returned a non-JSON body") from e

        if not isinstance(data, dict):
            raise JudgeError(f"Judge returned an unexpected payload: {type(data).__name__}")
        blocks = data.get("content") or []
        if not isinstance(blocks, list):
            raise JudgeError("Judge returned content that is not a list of blocks")
        text = "".join(
            str(block.get("text") or "")
            for block in blocks
            if isinstance(block, dict) and block.get("type") == "text"
        )
        usage = data.get("usage") or {}
        try:
            output_tokens = int(usage.get("output_tokens") or 0) if isinstance(usage, dict) else 0
        except (TypeError, ValueError):
            output_tokens = 0
        logger.debug("Judge %s replied with %d chars (%d output tokens)", self.model, len(text), output_tokens)
        return JudgeReply(text=text, output_tokens=output_tokens)
