"""Run orchestrator: questions -> fan-out -> analysis -> persistence -> recommendations.

One invocation processes either every active query or one fixed-size chunk
of them (``batch`` is 1-based), so a caller with a hard execution-time limit
can cover the full set over several invocations. A wall-clock budget is
checked before each query; queries already processed stay persisted when the
budget runs out.

Recommendations are generated after the last chunk only, and only once the
date has at least ``threshold_factor`` x active-query valid results.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable, Mapping
from dataclasses import asdict, dataclass
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from brand_monitor.core.config import Settings
from brand_monitor.core.metrics import MONITOR_RUNS
from brand_monitor.monitor.aggregator import parse_market_weights, summarize
from brand_monitor.monitor.analyzer import MentionAnalyzer, heuristic_analyses
from brand_monitor.monitor.fanout import FanOutCoordinator
from brand_monitor.monitor.judge import JudgeClient
from brand_monitor.monitor.recommendations import RecommendationGenerator
from brand_monitor.monitor.types import Provider, QueryInfo, RunState
from brand_monitor.services import result_store

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5
DEFAULT_BUDGET_SECONDS = 250.0
DEFAULT_THRESHOLD_FACTOR = 2.0

NO_ACTIVE_QUERIES = "No active queries found"


@dataclass
class RunReport:
    run_date: date
    success: bool = True
    state: RunState = RunState.IDLE
    batch: int | None = None
    total_batches: int = 0
    queries_processed: int = 0
    queries_total: int = 0
    total_mentions: int = 0
    total_errors: int = 0
    recommendations_count: int = 0
    budget_exhausted: bool = False
    duration_sec: float = 0.0
    error: str | None = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["run_date"] = self.run_date.isoformat()
        data["state"] = self.state.value
        return data


def select_batch(queries: list, batch: int | None, batch_size: int) -> tuple[list, bool]:
    """Return ``(chunk, is_last_chunk)``.

    A missing or out-of-range batch number selects every query, which counts
    as the last chunk.
    """
    total_batches = math.ceil(len(queries) / batch_size) if queries else 0
    if batch is None or not 1 <= batch <= total_batches:
        if batch is not None:
            logger.warning("Batch %s out of range (1..%d), processing all queries", batch, total_batches)
        return queries, True
    start = (batch - 1) * batch_size
    return queries[start : start + batch_size], batch == total_batches


class RunOrchestrator:
    def __init__(
        self,
        coordinator: FanOutCoordinator,
        analyzer: MentionAnalyzer,
        recommender: RecommendationGenerator,
        weights: Mapping[Provider, float],
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        budget_seconds: float = DEFAULT_BUDGET_SECONDS,
        threshold_factor: float = DEFAULT_THRESHOLD_FACTOR,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.coordinator = coordinator
        self.analyzer = analyzer
        self.recommender = recommender
        self.weights = dict(weights)
        self.batch_size = batch_size
        self.budget_seconds = budget_seconds
        self.threshold_factor = threshold_factor
        self.clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> RunOrchestrator:
        analysis_judge = JudgeClient(
            settings.anthropic_api_key, settings.analysis_model, settings.judge_timeout_seconds
        )
        reco_judge = JudgeClient(
            settings.anthropic_api_key, settings.recommendation_model, settings.judge_timeout_seconds
        )
        return cls(
            coordinator=FanOutCoordinator.from_settings(settings),
            analyzer=MentionAnalyzer(analysis_judge, settings.brand_name, settings.brand_context),
            recommender=RecommendationGenerator(reco_judge, settings.brand_name, settings.brand_context),
            weights=parse_market_weights(settings.market_weights),
            batch_size=settings.batch_size,
            budget_seconds=settings.run_budget_seconds,
            threshold_factor=settings.recommendation_threshold_factor,
        )

    async def run(self, db: AsyncSession, run_date: date, batch: int | None = None) -> RunReport:
        report = RunReport(run_date=run_date, batch=batch)
        started = self.clock()

        try:
            report.state = RunState.LOADING_QUERIES
            queries = [QueryInfo.from_row(q) for q in await result_store.load_active_queries(db)]
            if not queries:
                report.success = False
                report.state = RunState.FAILED
                report.error = NO_ACTIVE_QUERIES
                logger.warning("Run %s aborted: no active queries", run_date)
                return self._finish(report, started)

            report.total_batches = math.ceil(len(queries) / self.batch_size)
            chunk, is_last = select_batch(queries, batch, self.batch_size)
            report.queries_total = len(chunk)
            logger.info(
                "Run %s: batch %s/%d, %d queries",
                run_date,
                batch if batch is not None else "all",
                report.total_batches,
                len(chunk),
            )

            report.state = RunState.PROCESSING_BATCH
            for query in chunk:
                elapsed = self.clock() - started
                if elapsed > self.budget_seconds:
                    report.budget_exhausted = True
                    logger.warning(
                        "Run %s: time budget exhausted after %.0fs, %d/%d queries done",
                        run_date,
                        elapsed,
                        report.queries_processed,
                        len(chunk),
                    )
                    break

                try:
                    mentions, errors = await self._process_query(db, query, run_date)
                    report.total_mentions += mentions
                    report.total_errors += errors
                except Exception as e:
                    logger.error(
                        "Run %s: query %s failed: %s",
                        run_date,
                        query.id,
                        e,
                        extra={"query_id": query.id, "run_date": run_date.isoformat()},
                    )
                    report.total_errors += 1
                    await db.rollback()
                report.queries_processed += 1

            if is_last and report.queries_processed > 0:
                report.state = RunState.GENERATING_RECOMMENDATIONS
                report.recommendations_count = await self._maybe_recommend(db, run_date, queries)

            report.state = RunState.DONE
        except Exception as e:
            logger.exception("Run %s failed", run_date)
            report.success = False
            report.state = RunState.FAILED
            report.error = f"{type(e).__name__}: {e}"

        return self._finish(report, started)

    async def _process_query(self, db: AsyncSession, query: QueryInfo, run_date: date) -> tuple[int, int]:
        """Fan out one query, analyze, persist one row per provider. Returns (mentions, errors)."""
        responses = await self.coordinator.query_all(query.query_text)
        valid = [r for r in responses if r.is_valid]
        log_extra = {"query_id": query.id, "run_date": run_date.isoformat()}
        analyses = []
        if valid:
            try:
                analyses = await self.analyzer.analyze(query.query_text, valid)
            except Exception as e:
                logger.error("Query %s: analysis failed, using text match: %s", query.id, e, extra=log_extra)
                analyses = heuristic_analyses(valid, self.analyzer.brand)
        by_provider = {a.provider: a for a in analyses}

        mentions = errors = 0
        for response in responses:
            analysis = by_provider.get(response.provider)
            try:
                await result_store.upsert_result(
                    db,
                    query_id=query.id,
                    run_date=run_date,
                    response=response,
                    analysis=analysis,
                )
            except Exception as e:
                logger.error(
                    "Failed to store %s result for query %s: %s",
                    response.provider.value,
                    query.id,
                    e,
                    extra={**log_extra, "provider": response.provider.value},
                )
                await db.rollback()
                errors += 1
                continue
            # provider errors and degraded-path advisories both count
            if response.error:
                errors += 1
            if analysis is not None and analysis.is_mentioned:
                mentions += 1

        logger.info(
            "Query %s: %d/%d answered, %d mentions",
            query.id,
            len(valid),
            len(responses),
            mentions,
            extra=log_extra,
        )
        return mentions, errors

    async def _maybe_recommend(self, db: AsyncSession, run_date: date, queries: list[QueryInfo]) -> int:
        valid_count = await result_store.count_valid_results(db, run_date)
        required = self.threshold_factor * len(queries)
        if valid_count < required:
            logger.info(
                "Run %s: %d valid results (< %.0f), skipping recommendations",
                run_date,
                valid_count,
                required,
            )
            return 0

        try:
            return await self.generate_recommendations(db, run_date, queries)
        except Exception as e:
            logger.error("Run %s: recommendation generation failed: %s", run_date, e)
            await db.rollback()
            return 0

    async def generate_recommendations(
        self,
        db: AsyncSession,
        run_date: date,
        queries: list[QueryInfo] | None = None,
    ) -> int:
        """Summarize the date's stored results, draft and store recommendations. Returns their count."""
        if queries is None:
            queries = [QueryInfo.from_row(q) for q in await result_store.load_active_queries(db)]
        results = await result_store.load_results_for_date(db, run_date)
        stats = summarize(run_date, queries, results, self.weights)

        outcome = await self.recommender.recommend(stats)
        await result_store.upsert_recommendations(
            db,
            run_date=run_date,
            recommendations=outcome.recommendations,
            summary_stats=stats.to_dict(),
            model_used=self.recommender.model,
            tokens_used=outcome.tokens_used,
        )
        return len(outcome.recommendations)

    def _finish(self, report: RunReport, started: float) -> RunReport:
        report.duration_sec = round(self.clock() - started, 1)
        MONITOR_RUNS.labels(status=report.state.value).inc()
        logger.info(
            "Run %s finished (%s): %d queries, %d mentions, %d errors, %d recommendations in %.1fs",
            report.run_date,
            report.state.value,
            report.queries_processed,
            report.total_mentions,
            report.total_errors,
            report.recommendations_count,
            report.duration_sec,
        )
        return report
