"""Tests for the judge client and the recommendation generator."""

import json
from datetime import date
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from brand_monitor.monitor.judge import JUDGE_API_URL, JudgeClient, JudgeError, strip_code_fences
from brand_monitor.monitor.recommendations import (
    RecommendationGenerator,
    build_recommendation_prompt,
    parse_recommendations,
)
from brand_monitor.monitor.types import NO_DATA, AbsentDetail, Provider, SummaryStats, TopicScore

ITEMS = [
    {
        "title": "Publish an ESPR compliance guide",
        "description": "Long-form guide cited by assistants.",
        "priority": "high",
        "target_topic": "regulation",
        "estimated_impact": "+10 pts",
        "action_items": ["Draft", "Publish"],
    }
]


def _stats() -> SummaryStats:
    return SummaryStats(
        run_date=date(2026, 3, 10),
        global_score=42,
        provider_scores={p: NO_DATA for p in Provider} | {Provider.CHATGPT: 50},
        topic_scores={"regulation": TopicScore(mentioned=1, total=4)},
        absent_details=[
            AbsentDetail(
                query_id="q2",
                query_text="ESPR compliance help?",
                topic_label="Regulation",
                absent_from=[Provider.GEMINI, Provider.GROK],
            )
        ],
        total_queries=2,
        total_results=4,
        total_mentions=1,
    )


def _http_response(status_code: int, data: dict | None = None, text: str | None = None) -> httpx.Response:
    request = httpx.Request("POST", JUDGE_API_URL)
    if data is not None:
        return httpx.Response(status_code, json=data, request=request)
    return httpx.Response(status_code, text=text or "", request=request)


def _patch_client(response=None, side_effect=None):
    patcher = patch("brand_monitor.monitor.judge.httpx.AsyncClient")
    MockClient = patcher.start()
    mock_client = AsyncMock()
    if side_effect is not None:
        mock_client.post.side_effect = side_effect
    else:
        mock_client.post.return_value = response
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    MockClient.return_value = mock_client
    return patcher, mock_client


class TestJudgeClient:
    @pytest.mark.asyncio
    async def test_text_blocks_and_tokens(self):
        data = {
            "content": [{"type": "text", "text": "[1, "}, {"type": "text", "text": "2]"}],
            "usage": {"input_tokens": 900, "output_tokens": 12},
        }
        patcher, client = _patch_client(_http_response(200, data))
        try:
            reply = await JudgeClient(api_key="a-key", model="claude-sonnet-4-6").complete("p", max_tokens=1500)
        finally:
            patcher.stop()

        assert reply.text == "[1, 2]"
        assert reply.output_tokens == 12
        payload = client.post.call_args.kwargs["json"]
        assert payload["model"] == "claude-sonnet-4-6"
        assert payload["max_tokens"] == 1500
        assert client.post.call_args.kwargs["headers"]["x-api-key"] == "a-key"

    @pytest.mark.asyncio
    async def test_http_error_wrapped(self):
        patcher, _ = _patch_client(_http_response(529, text="overloaded"))
        try:
            with pytest.raises(JudgeError, match="529"):
                await JudgeClient(api_key="a-key", model="m").complete("p", max_tokens=10)
        finally:
            patcher.stop()

    @pytest.mark.asyncio
    async def test_timeout_wrapped(self):
        patcher, _ = _patch_client(side_effect=httpx.ReadTimeout("slow"))
        try:
            with pytest.raises(JudgeError, match="timed out"):
                await JudgeClient(api_key="a-key", model="m", timeout=5).complete("p", max_tokens=10)
        finally:
            patcher.stop()

    @pytest.mark.asyncio
    async def test_null_usage_counts_zero_tokens(self):
        data = {"content": [{"type": "text", "text": "[]"}, "stray", {"type": "text", "text": None}], "usage": None}
        patcher, _ = _patch_client(_http_response(200, data))
        try:
            reply = await JudgeClient(api_key="a-key", model="m").complete("p", max_tokens=10)
        finally:
            patcher.stop()

        assert reply.text == "[]"
        assert reply.output_tokens == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("data", [{"content": "plain string"}, {"content": {"type": "text"}}])
    async def test_content_not_a_block_list_wrapped(self, data):
        patcher, _ = _patch_client(_http_response(200, data))
        try:
            with pytest.raises(JudgeError, match="not a list"):
                await JudgeClient(api_key="a-key", model="m").complete("p", max_tokens=10)
        finally:
            patcher.stop()

    def test_configured(self):
        assert JudgeClient(api_key="", model="m").configured is False
        assert JudgeClient(api_key="k", model="m").configured is True


class TestParsing:
    def test_strip_code_fences(self):
        assert strip_code_fences('```json\n[{"a": 1}]\n```') == '[{"a": 1}]'

    def test_fence_text_inside_values_kept(self):
        items = [{"title": "Add ```json blocks to docs"}]
        text = "```json\n" + json.dumps(items) + "\n```"
        assert parse_recommendations(text) == items

    def test_fenced_array(self):
        text = "```json\n" + json.dumps(ITEMS) + "\n```"
        assert parse_recommendations(text) == ITEMS

    def test_array_inside_prose(self):
        text = "Here are my five ideas:\n" + json.dumps(ITEMS) + "\nGood luck!"
        assert parse_recommendations(text) == ITEMS

    @pytest.mark.parametrize("text", ["no json here", "[broken", '{"title": "x"}', ""])
    def test_unparseable(self, text):
        assert parse_recommendations(text) is None


class TestPrompt:
    def test_includes_scores_topics_and_absences(self):
        prompt = build_recommendation_prompt(_stats(), "Arianee", "Web3 DPP platform")

        assert "Arianee, a Web3 DPP platform" in prompt
        assert "- ChatGPT: 50%" in prompt
        assert "- Gemini: no data" in prompt
        assert "- regulation: 1/4 (25%)" in prompt
        assert "absent from Gemini, Grok" in prompt
        assert "Global score (market-weighted): 42%" in prompt


class TestRecommendationGenerator:
    @pytest.mark.asyncio
    async def test_fenced_reply_parsed_with_tokens(self, stub_judge):
        judge = stub_judge("```json\n" + json.dumps(ITEMS) + "\n```", output_tokens=321)
        generator = RecommendationGenerator(judge, brand="Arianee")

        result = await generator.recommend(_stats())

        assert result.recommendations == ITEMS
        assert result.tokens_used == 321
        assert len(judge.prompts) == 1

    @pytest.mark.asyncio
    async def test_garbage_reply_gives_single_placeholder(self, stub_judge):
        generator = RecommendationGenerator(stub_judge("I'd rather not.", output_tokens=7), brand="Arianee")

        result = await generator.recommend(_stats())

        assert len(result.recommendations) == 1
        assert result.recommendations[0]["title"] == "Recommendation parsing failed"
        assert result.recommendations[0]["priority"] == "low"
        assert result.tokens_used == 7

    @pytest.mark.asyncio
    async def test_unconfigured_judge_gives_placeholder_without_call(self):
        generator = RecommendationGenerator(JudgeClient(api_key="", model="m"), brand="Arianee")

        with patch("brand_monitor.monitor.judge.httpx.AsyncClient") as MockClient:
            result = await generator.recommend(_stats())

        MockClient.assert_not_called()
        assert result.tokens_used == 0
        assert result.recommendations[0]["title"] == "Configure the judge API key"
        assert result.recommendations[0]["priority"] == "high"

    @pytest.mark.asyncio
    async def test_judge_failure_propagates(self, stub_judge):
        generator = RecommendationGenerator(stub_judge(None), brand="Arianee")

        with pytest.raises(JudgeError):
            await generator.recommend(_stats())

    def test_model_comes_from_judge(self, stub_judge):
        assert RecommendationGenerator(stub_judge("[]", model="claude-sonnet-4-6"), brand="x").model == (
            "claude-sonnet-4-6"
        )
