"""Dashboard read model: per-query results, scores, trend and recommendations for a date."""

import logging
from collections.abc import Mapping
from datetime import date, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from brand_monitor.models.monitor_result import MonitorResult
from brand_monitor.monitor.aggregator import build_history, provider_scores, summarize
from brand_monitor.monitor.types import Provider, QueryInfo
from brand_monitor.schemas.monitor import (
    DashboardResponse,
    ProviderResult,
    QueryResults,
    RecommendationSetResponse,
    ScoresResponse,
    TopicScoreResponse,
)
from brand_monitor.services import result_store

logger = logging.getLogger(__name__)


def _result_status(row: MonitorResult | None) -> str:
    if row is None:
        return "missing"
    if row.response_text is None:
        return "error"
    return "mentioned" if row.is_mentioned else "absent"


def _provider_result(provider: Provider, row: MonitorResult | None) -> ProviderResult:
    result = ProviderResult(provider=provider.value, label=provider.label, status=_result_status(row))
    if row is not None:
        result.response_text = row.response_text
        result.error = row.error
        result.is_mentioned = row.is_mentioned
        result.mention_rank = row.mention_rank
        result.sentiment = row.sentiment
        result.latency_ms = row.latency_ms
    return result


async def get_dashboard(
    db: AsyncSession,
    run_date: date,
    weights: Mapping[Provider, float],
    history_days: int = 30,
) -> DashboardResponse:
    """Assemble everything the dashboard renders for *run_date*.

    Every query lists all six providers in canonical order; providers without
    a row for the date are reported as ``missing`` and error-only rows as
    ``error`` so neither is confused with a confirmed absence.
    """
    query_rows = await result_store.load_active_queries(db)
    queries = [QueryInfo.from_row(q) for q in query_rows]
    results = await result_store.load_results_for_date(db, run_date)
    yesterday_results = await result_store.load_results_for_date(db, run_date - timedelta(days=1))
    history_rows = await result_store.load_results_between(db, run_date - timedelta(days=history_days), run_date)
    recommendation_set = await result_store.get_recommendations(db, run_date)
    last_scan_date = await result_store.get_last_scan_date(db)

    by_key = {(r.query_id, r.provider): r for r in results}
    query_results = [
        QueryResults(
            id=q.id,
            query_text=q.query_text,
            topic=q.topic,
            topic_label=q.topic_label,
            sort_order=q.sort_order,
            results=[_provider_result(p, by_key.get((q.id, p.value))) for p in Provider],
        )
        for q in query_rows
    ]

    stats = summarize(run_date, queries, results, weights)
    yesterday = provider_scores(yesterday_results)

    logger.debug(
        "Dashboard %s: %d queries, %d rows, global score %d",
        run_date,
        len(queries),
        len(results),
        stats.global_score,
    )
    return DashboardResponse(
        run_date=run_date,
        last_scan_date=last_scan_date,
        results=query_results,
        scores=ScoresResponse(
            today={p.value: s for p, s in stats.provider_scores.items()},
            yesterday={p.value: s for p, s in yesterday.items()},
        ),
        global_score=stats.global_score,
        topic_scores={
            topic: TopicScoreResponse(**ts.to_dict()) for topic, ts in stats.topic_scores.items()
        },
        history=[point.to_dict() for point in build_history(history_rows, run_date, history_days)],
        recommendations=(
            RecommendationSetResponse.model_validate(recommendation_set) if recommendation_set else None
        ),
    )
