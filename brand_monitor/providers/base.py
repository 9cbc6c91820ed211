"""Base provider adapter: credential check, per-call deadline, retry.

Every adapter exposes ``query(prompt) -> ProviderResponse`` and never
raises: missing credentials, HTTP failures, timeouts and exhausted retries
all end up in ``ProviderResponse.error``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

import httpx

from brand_monitor.core.metrics import PROVIDER_LATENCY, PROVIDER_REQUESTS
from brand_monitor.monitor.types import Provider, ProviderResponse
from brand_monitor.providers.config import (
    BASE_RETRY_DELAY_SECONDS,
    DEFAULT_TIMEOUT_SECONDS,
    PROVIDER_CONFIGS,
    RETRYABLE_MARKERS,
    ProviderConfig,
)

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Vendor call failed. The message starts with the HTTP status when there is one."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


class ProviderTimeoutError(ProviderError):
    """Per-call deadline expired."""


def is_retryable(error: BaseException) -> bool:
    message = str(error)
    return any(marker in message for marker in RETRYABLE_MARKERS)


class BaseProviderAdapter(ABC):
    """Common contract for the six provider adapters."""

    provider: Provider

    def __init__(
        self,
        api_key: str,
        *,
        config: ProviderConfig | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        base_delay: float = BASE_RETRY_DELAY_SECONDS,
    ):
        self.api_key = api_key
        self.config = config or PROVIDER_CONFIGS[self.provider]
        self.timeout = timeout
        self.base_delay = base_delay

    @property
    def label(self) -> str:
        return self.provider.label

    async def query(self, prompt: str) -> ProviderResponse:
        """Send *prompt* and return a normalized result. Never raises."""
        if not self.api_key:
            PROVIDER_REQUESTS.labels(provider=self.provider.value, status="unconfigured").inc()
            return ProviderResponse(
                provider=self.provider,
                error=f"{self.config.credential_env} is not configured",
                latency_ms=0,
            )

        start = time.monotonic()
        try:
            text, advisory = await self.complete(prompt)
        except Exception as e:
            latency_ms = self._elapsed_ms(start)
            message = str(e) or type(e).__name__
            logger.error(
                "%s: query failed after %dms: %s",
                self.label,
                latency_ms,
                message,
                extra={"provider": self.provider.value},
            )
            self._record("error", latency_ms)
            return ProviderResponse(provider=self.provider, error=message, latency_ms=latency_ms)

        latency_ms = self._elapsed_ms(start)
        if not text:
            self._record("error", latency_ms)
            return ProviderResponse(
                provider=self.provider,
                error=advisory or f"Empty response from {self.label}",
                latency_ms=latency_ms,
            )

        self._record("fallback" if advisory else "ok", latency_ms)
        logger.debug("%s: %d chars in %dms", self.label, len(text), latency_ms)
        return ProviderResponse(provider=self.provider, response=text, error=advisory, latency_ms=latency_ms)

    async def complete(self, prompt: str) -> tuple[str | None, str | None]:
        """Return ``(text, advisory)``. Single-path providers retry ``_send``."""
        text = await self.with_retry(self._send, prompt)
        return text, None

    async def with_retry(
        self,
        call: Callable[[str], Awaitable[str | None]],
        prompt: str,
        max_retries: int | None = None,
    ) -> str | None:
        """Run *call* under the deadline, retrying rate-limit/overload errors with exponential backoff."""
        retries = self.config.max_retries if max_retries is None else max_retries
        attempt = 0
        while True:
            try:
                return await self.with_deadline(call, prompt)
            except Exception as e:
                if attempt >= retries or not is_retryable(e):
                    raise
                delay = self.base_delay * (2**attempt)
                logger.warning(
                    "%s: retryable error (attempt %d/%d), retrying in %.1fs: %s",
                    self.label,
                    attempt + 1,
                    retries,
                    delay,
                    e,
                    extra={"provider": self.provider.value},
                )
                await asyncio.sleep(delay)
                attempt += 1

    async def with_deadline(self, call: Callable[[str], Awaitable[str | None]], prompt: str) -> str | None:
        try:
            return await asyncio.wait_for(call(prompt), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise ProviderTimeoutError(f"Timeout {self.label} after {self.timeout:g}s") from None

    @abstractmethod
    async def _send(self, prompt: str) -> str | None:
        """Issue one vendor request and extract the answer text."""
        ...

    async def _post(
        self,
        url: str,
        payload: dict,
        headers: dict[str, str],
        params: dict[str, str] | None = None,
    ) -> dict:
        # Transport timeout sits just above the deadline so wait_for fires first
        async with httpx.AsyncClient(timeout=self.timeout + 5) as client:
            resp = await client.post(url, json=payload, headers=headers, params=params)

        if resp.status_code >= 400:
            raise ProviderError(f"{resp.status_code} {resp.text[:200]}", status_code=resp.status_code)
        return resp.json()

    def _record(self, status: str, latency_ms: int) -> None:
        PROVIDER_REQUESTS.labels(provider=self.provider.value, status=status).inc()
        PROVIDER_LATENCY.labels(provider=self.provider.value).observe(latency_ms / 1000)

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.monotonic() - start) * 1000)
