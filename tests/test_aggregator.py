"""Tests for the pure aggregation functions."""

from datetime import date
from types import SimpleNamespace

import pytest

from brand_monitor.monitor.aggregator import (
    UNKNOWN_TOPIC,
    absent_details,
    build_history,
    global_score,
    mention_rate,
    parse_market_weights,
    provider_scores,
    summarize,
    topic_scores,
)
from brand_monitor.monitor.types import NO_DATA, Provider, QueryInfo


DAY = date(2026, 3, 10)

TEST_WEIGHTS = {
    Provider.CHATGPT: 0.60,
    Provider.GEMINI: 0.15,
    Provider.PERPLEXITY: 0.08,
    Provider.CLAUDE: 0.07,
    Provider.GROK: 0.05,
    Provider.MISTRAL: 0.05,
}

QUERIES = [
    QueryInfo(id="q1", query_text="Who leads DPP?", topic="providers", topic_label="DPP providers"),
    QueryInfo(id="q2", query_text="ESPR compliance help?", topic="regulation", topic_label="Regulation"),
]


def _row(query_id: str, provider: Provider, mentioned: bool | None, run_date: date = DAY, text: str = "answer"):
    """A result row; ``mentioned=None`` stands for a provider error (no text)."""
    if mentioned is None:
        return SimpleNamespace(
            query_id=query_id,
            provider=provider.value,
            run_date=run_date,
            response_text=None,
            error="500 boom",
            is_mentioned=False,
        )
    return SimpleNamespace(
        query_id=query_id,
        provider=provider.value,
        run_date=run_date,
        response_text=text,
        error=None,
        is_mentioned=mentioned,
    )


class TestMentionRate:
    @pytest.mark.parametrize(
        ("mentioned", "total", "expected"),
        [(0, 0, NO_DATA), (0, 3, 0), (3, 3, 100), (1, 3, 33), (2, 3, 67), (1, 8, 13)],
    )
    def test_rounding_and_sentinel(self, mentioned, total, expected):
        assert mention_rate(mentioned, total) == expected

    def test_half_rounds_up(self):
        # 1/200 = 0.5%
        assert mention_rate(1, 200) == 1


class TestProviderScores:
    def test_errors_excluded_from_denominator(self):
        results = [
            _row("q1", Provider.CHATGPT, True),
            _row("q2", Provider.CHATGPT, None),
            _row("q1", Provider.GEMINI, False),
            _row("q2", Provider.GEMINI, True),
        ]

        scores = provider_scores(results)

        assert scores[Provider.CHATGPT] == 100
        assert scores[Provider.GEMINI] == 50

    def test_every_provider_present_with_sentinel(self):
        scores = provider_scores([_row("q1", Provider.CLAUDE, False), _row("q1", Provider.GROK, None)])

        assert list(scores) == list(Provider)
        assert scores[Provider.CLAUDE] == 0
        assert scores[Provider.GROK] == NO_DATA
        assert scores[Provider.MISTRAL] == NO_DATA

    def test_unknown_provider_rows_ignored(self):
        row = SimpleNamespace(query_id="q1", provider="bard", run_date=DAY, response_text="x", is_mentioned=True)
        assert all(score == NO_DATA for score in provider_scores([row]).values())


class TestGlobalScore:
    def test_weighted_over_valid_providers_only(self):
        scores = {
            Provider.CHATGPT: 100,
            Provider.GEMINI: 0,
            Provider.MISTRAL: NO_DATA,
            Provider.GROK: NO_DATA,
            Provider.CLAUDE: 100,
            Provider.PERPLEXITY: NO_DATA,
        }

        # (100*0.60 + 0*0.15 + 100*0.07) / 0.82 = 81.7
        assert global_score(scores, TEST_WEIGHTS) == 82

    def test_all_no_data(self):
        assert global_score({p: NO_DATA for p in Provider}, TEST_WEIGHTS) == NO_DATA

    def test_zero_weight_provider_ignored(self):
        scores = {Provider.CHATGPT: 50, Provider.MISTRAL: 100}
        assert global_score(scores, {Provider.CHATGPT: 1.0, Provider.MISTRAL: 0.0}) == 50

    def test_confirmed_zero_is_not_no_data(self):
        assert global_score({Provider.CHATGPT: 0}, TEST_WEIGHTS) == 0


class TestParseMarketWeights:
    def test_names_mapped_and_unknown_ignored(self):
        weights = parse_market_weights({"chatgpt": 0.6, "Gemini": "0.15", "bard": 1.0})
        assert weights == {Provider.CHATGPT: 0.6, Provider.GEMINI: 0.15}


class TestTopicScores:
    def test_grouped_by_query_topic(self):
        results = [
            _row("q1", Provider.CHATGPT, True),
            _row("q1", Provider.GEMINI, False),
            _row("q2", Provider.CHATGPT, False),
            _row("q2", Provider.GEMINI, None),
            _row("q9", Provider.CLAUDE, True),
        ]

        scores = topic_scores(QUERIES, results)

        assert scores["providers"].mentioned == 1
        assert scores["providers"].total == 2
        assert scores["providers"].percentage == 50
        assert scores["regulation"].total == 1
        assert scores["regulation"].percentage == 0
        assert scores[UNKNOWN_TOPIC].total == 1

    def test_topic_without_valid_rows_absent(self):
        scores = topic_scores(QUERIES, [_row("q2", Provider.GROK, None)])
        assert scores == {}


class TestAbsentDetails:
    def test_lists_providers_that_answered_without_brand(self):
        results = [
            _row("q1", Provider.PERPLEXITY, False),
            _row("q1", Provider.CHATGPT, False),
            _row("q1", Provider.GEMINI, True),
            _row("q1", Provider.GROK, None),
            _row("q2", Provider.CLAUDE, True),
        ]

        details = absent_details(QUERIES, results)

        assert len(details) == 1
        assert details[0].query_id == "q1"
        assert details[0].topic_label == "DPP providers"
        assert details[0].absent_from == [Provider.CHATGPT, Provider.PERPLEXITY]
        assert details[0].to_dict()["absent_from"] == ["chatgpt", "perplexity"]


class TestSummarize:
    def test_totals_count_valid_rows_only(self):
        results = [
            _row("q1", Provider.CHATGPT, True),
            _row("q1", Provider.GEMINI, False),
            _row("q1", Provider.CLAUDE, True),
            _row("q1", Provider.MISTRAL, None),
            _row("q1", Provider.GROK, None),
            _row("q1", Provider.PERPLEXITY, None),
        ]

        stats = summarize(DAY, QUERIES, results, TEST_WEIGHTS)

        assert stats.total_queries == 2
        assert stats.total_results == 3
        assert stats.total_mentions == 2
        assert stats.global_score == 82
        data = stats.to_dict()
        assert data["run_date"] == "2026-03-10"
        assert data["provider_scores"]["mistral"] == NO_DATA
        assert data["topic_scores"]["providers"] == {"mentioned": 2, "total": 3, "percentage": 67}

    def test_empty_run(self):
        stats = summarize(DAY, QUERIES, [], TEST_WEIGHTS)
        assert stats.global_score == NO_DATA
        assert stats.total_results == 0
        assert stats.absent_details == []


class TestHistory:
    def test_points_only_for_dates_with_valid_rows(self):
        results = [
            _row("q1", Provider.CHATGPT, True, run_date=date(2026, 3, 1)),
            _row("q2", Provider.CHATGPT, False, run_date=date(2026, 3, 1)),
            _row("q1", Provider.GEMINI, None, run_date=date(2026, 3, 5)),
            _row("q1", Provider.CLAUDE, True, run_date=DAY),
        ]

        history = build_history(results, DAY)

        assert [p.run_date for p in history] == [date(2026, 3, 1), DAY]
        assert history[0].scores[Provider.CHATGPT] == 50
        assert history[0].scores[Provider.CLAUDE] == 0
        assert history[1].to_dict() == {
            "date": "2026-03-10",
            "chatgpt": 0,
            "gemini": 0,
            "mistral": 0,
            "grok": 0,
            "claude": 100,
            "perplexity": 0,
        }

    def test_window_bounds_inclusive(self):
        results = [
            _row("q1", Provider.CHATGPT, True, run_date=date(2026, 2, 8)),
            _row("q1", Provider.CHATGPT, True, run_date=date(2026, 2, 7)),
            _row("q1", Provider.CHATGPT, True, run_date=date(2026, 3, 11)),
        ]

        history = build_history(results, DAY, days=30)

        assert [p.run_date for p in history] == [date(2026, 2, 8)]
