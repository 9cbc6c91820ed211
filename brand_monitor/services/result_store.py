"""Persistence for queries, per-provider results and daily recommendations.

Writes are upserts on natural keys (``(query_id, provider, run_date)`` for
results, ``run_date`` for recommendations), so reruns replace rows instead of
duplicating them and overlapping runs resolve as last-write-wins.
"""

import logging
from datetime import date, datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from brand_monitor.db.session import dialect_insert
from brand_monitor.models.daily_recommendation import DailyRecommendation
from brand_monitor.models.monitor_query import MonitorQuery
from brand_monitor.models.monitor_result import MonitorResult
from brand_monitor.monitor.types import Analysis, ProviderResponse

logger = logging.getLogger(__name__)


async def load_active_queries(db: AsyncSession) -> list[MonitorQuery]:
    result = await db.execute(
        select(MonitorQuery)
        .where(MonitorQuery.is_active.is_(True))
        .order_by(MonitorQuery.sort_order, MonitorQuery.created_at)
    )
    return list(result.scalars().all())


async def upsert_result(
    db: AsyncSession,
    *,
    query_id: str,
    run_date: date,
    response: ProviderResponse,
    analysis: Analysis | None = None,
) -> None:
    """Insert or replace the row for ``(query_id, provider, run_date)`` and commit."""
    analysis = analysis or Analysis(provider=response.provider)
    values = {
        "response_text": response.response,
        "error": response.error,
        "latency_ms": response.latency_ms,
        "is_mentioned": analysis.is_mentioned,
        "mention_rank": analysis.mention_rank,
        "sentiment": analysis.sentiment.value if analysis.sentiment else None,
        "created_at": datetime.now(timezone.utc),
    }
    stmt = dialect_insert(db, MonitorResult).values(
        query_id=query_id,
        provider=response.provider.value,
        run_date=run_date,
        **values,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["query_id", "provider", "run_date"],
        set_=values,
    )
    await db.execute(stmt)
    await db.commit()


async def load_results_for_date(db: AsyncSession, run_date: date) -> list[MonitorResult]:
    result = await db.execute(
        select(MonitorResult)
        .where(MonitorResult.run_date == run_date)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def load_results_between(db: AsyncSession, start: date, end: date) -> list[MonitorResult]:
    result = await db.execute(
        select(MonitorResult)
        .where(MonitorResult.run_date >= start, MonitorResult.run_date <= end)
        .order_by(MonitorResult.run_date)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def count_valid_results(db: AsyncSession, run_date: date) -> int:
    result = await db.execute(
        select(func.count(MonitorResult.id)).where(
            MonitorResult.run_date == run_date,
            MonitorResult.response_text.is_not(None),
        )
    )
    return result.scalar_one()


async def upsert_recommendations(
    db: AsyncSession,
    *,
    run_date: date,
    recommendations: list,
    summary_stats: dict,
    model_used: str,
    tokens_used: int,
) -> None:
    values = {
        "recommendations": recommendations,
        "summary_stats": summary_stats,
        "model_used": model_used,
        "tokens_used": tokens_used,
        "generated_at": datetime.now(timezone.utc),
    }
    stmt = dialect_insert(db, DailyRecommendation).values(run_date=run_date, **values)
    stmt = stmt.on_conflict_do_update(index_elements=["run_date"], set_=values)
    await db.execute(stmt)
    await db.commit()
    logger.info("Stored %d recommendations for %s", len(recommendations), run_date)


async def get_recommendations(db: AsyncSession, run_date: date) -> DailyRecommendation | None:
    result = await db.execute(
        select(DailyRecommendation)
        .where(DailyRecommendation.run_date == run_date)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_last_scan_date(db: AsyncSession) -> date | None:
    result = await db.execute(select(func.max(MonitorResult.run_date)))
    return result.scalar_one_or_none()
