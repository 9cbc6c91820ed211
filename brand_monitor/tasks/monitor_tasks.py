"""Celery tasks driving the run orchestrator.

``run_monitor_batch`` processes one chunk of queries; ``run_daily_monitor``
walks every chunk for today in sequence, each chunk under its own time
budget, the same way an HTTP caller would drive the run endpoint.
"""

import asyncio
import logging
import math
from datetime import date, datetime, timezone

from celery.signals import worker_process_init

from brand_monitor.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


@worker_process_init.connect
def _init_worker(**kwargs):
    from brand_monitor.core.logging import setup_logging
    from brand_monitor.core.sentry import init_sentry

    setup_logging()
    init_sentry()


def _run_async(coro):
    """Run an async coroutine from sync Celery task context.

    Creates a fresh event loop each time; the engine is created inside the
    coroutine so it is bound to that loop.
    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _make_session_factory():
    """Fresh async engine + session factory for the worker's event loop."""
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from brand_monitor.db.session import make_engine

    engine = make_engine()
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False), engine


def _parse_date(value: str | None) -> date:
    if value:
        return date.fromisoformat(value)
    return datetime.now(timezone.utc).date()


async def _run_batches(run_date: date, batches: list[int | None]) -> list[dict]:
    from brand_monitor.core.config import settings
    from brand_monitor.db.session import create_tables
    from brand_monitor.monitor.orchestrator import RunOrchestrator

    session_factory, engine = _make_session_factory()
    orchestrator = RunOrchestrator.from_settings(settings)
    reports = []
    try:
        await create_tables(engine)
        for batch in batches:
            async with session_factory() as db:
                report = await orchestrator.run(db, run_date, batch=batch)
            reports.append(report.to_dict())
            if not report.success:
                break
    finally:
        await engine.dispose()
    return reports


async def _count_batches() -> int:
    from brand_monitor.core.config import settings
    from brand_monitor.services import result_store

    session_factory, engine = _make_session_factory()
    try:
        async with session_factory() as db:
            queries = await result_store.load_active_queries(db)
    finally:
        await engine.dispose()
    return math.ceil(len(queries) / settings.batch_size)


@celery_app.task(bind=True, name="run_monitor_batch", max_retries=0)
def run_monitor_batch(self, run_date: str | None = None, batch: int | None = None) -> dict:
    """Process one chunk (or every query when *batch* is None) for *run_date*."""
    try:
        reports = _run_async(_run_batches(_parse_date(run_date), [batch]))
        return reports[0]
    except Exception as e:
        logger.error("Monitor batch %s for %s failed: %s", batch, run_date, e)
        return {"success": False, "error": str(e)}


@celery_app.task(bind=True, name="run_daily_monitor", max_retries=0)
def run_daily_monitor(self, run_date: str | None = None) -> dict:
    """Run every chunk for *run_date* (default today) in sequence."""
    day = _parse_date(run_date)
    try:
        total_batches = _run_async(_count_batches())
        if total_batches == 0:
            logger.warning("Daily monitor %s: no active queries", day)
            return {"success": False, "run_date": day.isoformat(), "error": "No active queries found"}

        reports = _run_async(_run_batches(day, list(range(1, total_batches + 1))))
    except Exception as e:
        logger.error("Daily monitor for %s failed: %s", day, e)
        return {"success": False, "run_date": day.isoformat(), "error": str(e)}

    summary = {
        "success": all(r["success"] for r in reports),
        "run_date": day.isoformat(),
        "batches": len(reports),
        "queries_processed": sum(r["queries_processed"] for r in reports),
        "total_mentions": sum(r["total_mentions"] for r in reports),
        "total_errors": sum(r["total_errors"] for r in reports),
        "recommendations_count": sum(r["recommendations_count"] for r in reports),
    }
    logger.info("Daily monitor %s: %s", day, summary)
    return summary
