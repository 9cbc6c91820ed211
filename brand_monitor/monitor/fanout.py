"""Concurrent fan-out of one prompt to every provider adapter."""

from __future__ import annotations

import asyncio
import logging

from brand_monitor.core.config import Settings
from brand_monitor.monitor.types import Provider, ProviderResponse
from brand_monitor.providers.base import BaseProviderAdapter
from brand_monitor.providers.registry import CREDENTIAL_FIELDS, get_adapter

logger = logging.getLogger(__name__)


def build_adapters(settings: Settings) -> list[BaseProviderAdapter]:
    """One adapter per provider, in canonical order. Missing keys still yield an adapter."""
    return [
        get_adapter(
            provider,
            api_key=getattr(settings, CREDENTIAL_FIELDS[provider]),
            timeout=settings.provider_timeout_seconds,
            base_delay=settings.retry_base_delay_seconds,
        )
        for provider in Provider
    ]


class FanOutCoordinator:
    """Query all providers concurrently and wait for every one to settle.

    A provider failure never cancels or delays the others; it comes back as a
    ``ProviderResponse`` with ``error`` set. Output order follows the
    canonical ``Provider`` order, not completion order.
    """

    def __init__(self, adapters: list[BaseProviderAdapter]):
        order = {provider: i for i, provider in enumerate(Provider)}
        self.adapters = sorted(adapters, key=lambda a: order[a.provider])

    @classmethod
    def from_settings(cls, settings: Settings) -> FanOutCoordinator:
        return cls(build_adapters(settings))

    async def query_all(self, prompt: str) -> list[ProviderResponse]:
        outcomes = await asyncio.gather(
            *(adapter.query(prompt) for adapter in self.adapters),
            return_exceptions=True,
        )

        responses: list[ProviderResponse] = []
        for adapter, outcome in zip(self.adapters, outcomes):
            if isinstance(outcome, BaseException):
                logger.error("%s: adapter raised %s: %s", adapter.label, type(outcome).__name__, outcome)
                responses.append(
                    ProviderResponse(
                        provider=adapter.provider,
                        error=str(outcome) or type(outcome).__name__,
                    )
                )
            else:
                responses.append(outcome)

        valid = sum(1 for r in responses if r.is_valid)
        logger.info("Fan-out complete: %d/%d providers answered", valid, len(responses))
        return responses
