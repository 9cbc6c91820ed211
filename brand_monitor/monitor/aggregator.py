"""Mention-rate aggregation over persisted results.

All functions are pure and accept ORM rows or any objects exposing the same
attributes (``query_id``, ``provider``, ``run_date``, ``response_text``,
``is_mentioned`` for results; ``id``, ``query_text``, ``topic``,
``topic_label`` for queries).

Rows without response text are provider errors: they are excluded from
every numerator and denominator, so an outage never reads as absence.
Scores use ``NO_DATA`` (-1) when nothing valid was collected.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from collections.abc import Iterable, Mapping
from datetime import date, timedelta
from typing import Any

from brand_monitor.monitor.types import (
    NO_DATA,
    AbsentDetail,
    HistoryPoint,
    Provider,
    SummaryStats,
    TopicScore,
)

logger = logging.getLogger(__name__)

UNKNOWN_TOPIC = "unknown"


def mention_rate(mentioned: int, total: int) -> int:
    """Percentage rounded half-up; NO_DATA when *total* is 0."""
    if total <= 0:
        return NO_DATA
    return math.floor(100 * mentioned / total + 0.5)


def parse_market_weights(raw: Mapping[str, float]) -> dict[Provider, float]:
    """Convert a ``{"chatgpt": 0.6, ...}`` mapping; unknown names are ignored."""
    weights: dict[Provider, float] = {}
    for name, weight in raw.items():
        provider = Provider.from_name(name)
        if provider is None:
            logger.warning("Ignoring market weight for unknown provider %r", name)
            continue
        weights[provider] = float(weight)
    return weights


def valid_results(results: Iterable[Any]) -> list[Any]:
    return [r for r in results if r.response_text is not None]


def _provider_of(row: Any) -> Provider | None:
    try:
        return Provider(row.provider)
    except ValueError:
        return None


def provider_scores(results: Iterable[Any]) -> dict[Provider, int]:
    """Mention rate per provider, every provider present, canonical order."""
    mentioned: dict[Provider, int] = defaultdict(int)
    total: dict[Provider, int] = defaultdict(int)
    for row in valid_results(results):
        provider = _provider_of(row)
        if provider is None:
            continue
        total[provider] += 1
        if row.is_mentioned:
            mentioned[provider] += 1
    return {p: mention_rate(mentioned[p], total[p]) for p in Provider}


def topic_scores(queries: Iterable[Any], results: Iterable[Any]) -> dict[str, TopicScore]:
    """Mentioned/total per topic of the row's query, for topics with valid rows."""
    topic_by_query = {q.id: q.topic for q in queries}
    scores: dict[str, TopicScore] = {}
    for row in valid_results(results):
        topic = topic_by_query.get(row.query_id, UNKNOWN_TOPIC)
        ts = scores.setdefault(topic, TopicScore())
        ts.total += 1
        if row.is_mentioned:
            ts.mentioned += 1
    return scores


def global_score(scores: Mapping[Provider, int], weights: Mapping[Provider, float]) -> int:
    """Market-weighted mean of provider scores.

    Providers at NO_DATA (or without a positive weight) are left out of both
    the weighted sum and the weight total. NO_DATA when nothing is left.
    """
    weighted_sum = 0.0
    weight_total = 0.0
    for provider, score in scores.items():
        weight = weights.get(provider, 0.0)
        if score == NO_DATA or weight <= 0:
            continue
        weighted_sum += score * weight
        weight_total += weight
    if weight_total == 0:
        return NO_DATA
    return math.floor(weighted_sum / weight_total + 0.5)


def absent_details(queries: Iterable[Any], results: Iterable[Any]) -> list[AbsentDetail]:
    """Per query (in query order), the providers that answered without naming the brand."""
    absent: dict[str, set[Provider]] = defaultdict(set)
    for row in valid_results(results):
        provider = _provider_of(row)
        if provider is not None and not row.is_mentioned:
            absent[row.query_id].add(provider)

    details = []
    for query in queries:
        providers = absent.get(query.id)
        if not providers:
            continue
        details.append(
            AbsentDetail(
                query_id=query.id,
                query_text=query.query_text,
                topic_label=query.topic_label,
                absent_from=[p for p in Provider if p in providers],
            )
        )
    return details


def summarize(
    run_date: date,
    queries: list[Any],
    results: list[Any],
    weights: Mapping[Provider, float],
) -> SummaryStats:
    valid = valid_results(results)
    scores = provider_scores(valid)
    return SummaryStats(
        run_date=run_date,
        global_score=global_score(scores, weights),
        provider_scores=scores,
        topic_scores=topic_scores(queries, valid),
        absent_details=absent_details(queries, valid),
        total_queries=len(queries),
        total_results=len(valid),
        total_mentions=sum(1 for r in valid if r.is_mentioned),
    )


def build_history(results: Iterable[Any], end: date, days: int = 30) -> list[HistoryPoint]:
    """Daily mention rate per provider over ``[end - days, end]``.

    Only dates with at least one valid row produce a point; within a point
    every provider is present, defaulting to 0 so the series has no gaps.
    """
    start = end - timedelta(days=days)
    per_date: dict[date, list[Any]] = defaultdict(list)
    for row in valid_results(results):
        if start <= row.run_date <= end:
            per_date[row.run_date].append(row)

    history = []
    for run_date in sorted(per_date):
        scores = provider_scores(per_date[run_date])
        history.append(
            HistoryPoint(
                run_date=run_date,
                scores={p: (0 if s == NO_DATA else s) for p, s in scores.items()},
            )
        )
    return history
