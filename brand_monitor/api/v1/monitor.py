"""Monitor API: trigger runs, read dashboard results, regenerate recommendations."""

import logging
from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from brand_monitor.core.config import settings
from brand_monitor.core.dependencies import get_orchestrator, require_admin_session
from brand_monitor.core.exceptions import AppError, BadGatewayError, BadRequestError
from brand_monitor.core.rate_limit import RECOMMENDATIONS_LIMIT, RUN_LIMIT, limiter
from brand_monitor.db.session import get_db
from brand_monitor.monitor.aggregator import parse_market_weights
from brand_monitor.monitor.judge import JudgeError
from brand_monitor.monitor.orchestrator import NO_ACTIVE_QUERIES, RunOrchestrator
from brand_monitor.schemas.monitor import (
    DashboardResponse,
    RegenerateRequest,
    RegenerateResponse,
    RunRequest,
    RunResponse,
)
from brand_monitor.services import dashboard_service, result_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/monitor", tags=["monitor"])


def _today() -> date:
    return datetime.now(timezone.utc).date()


@router.post("/run", response_model=RunResponse, dependencies=[Depends(require_admin_session)])
@limiter.limit(RUN_LIMIT)
async def run_monitor(
    request: Request,
    body: RunRequest,
    db: AsyncSession = Depends(get_db),
    orchestrator: RunOrchestrator = Depends(get_orchestrator),
):
    report = await orchestrator.run(db, body.run_date or _today(), batch=body.batch)
    if not report.success:
        if report.error == NO_ACTIVE_QUERIES:
            raise BadRequestError(report.error)
        raise AppError(report.error or "Run failed")
    return RunResponse(**report.to_dict())


@router.get("/results", response_model=DashboardResponse)
async def get_results(
    run_date: date | None = Query(default=None, alias="date"),
    db: AsyncSession = Depends(get_db),
):
    return await dashboard_service.get_dashboard(
        db,
        run_date or _today(),
        parse_market_weights(settings.market_weights),
        history_days=settings.history_days,
    )


@router.post(
    "/recommendations",
    response_model=RegenerateResponse,
    dependencies=[Depends(require_admin_session)],
)
@limiter.limit(RECOMMENDATIONS_LIMIT)
async def regenerate_recommendations(
    request: Request,
    body: RegenerateRequest,
    db: AsyncSession = Depends(get_db),
    orchestrator: RunOrchestrator = Depends(get_orchestrator),
):
    run_date = body.run_date or _today()

    if not await result_store.load_active_queries(db):
        raise BadRequestError(NO_ACTIVE_QUERIES)
    if not await result_store.load_results_for_date(db, run_date):
        raise BadRequestError(f"No results for {run_date.isoformat()}")

    try:
        count = await orchestrator.generate_recommendations(db, run_date)
    except JudgeError as e:
        logger.error("Recommendation regeneration for %s failed: %s", run_date, e)
        raise BadGatewayError(str(e))
    stored = await result_store.get_recommendations(db, run_date)
    return RegenerateResponse(
        success=True,
        run_date=run_date,
        recommendations_count=count,
        tokens_used=stored.tokens_used if stored else 0,
    )
