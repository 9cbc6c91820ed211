"""Action recommendations drafted by the judge from a day's summary stats."""

from __future__ import annotations

import json
import logging

from brand_monitor.monitor.analyzer import parse_strict
from brand_monitor.monitor.judge import JudgeClient, strip_code_fences
from brand_monitor.monitor.types import NO_DATA, Priority, Provider, RecommendationResult, SummaryStats

logger = logging.getLogger(__name__)

RECOMMENDATION_COUNT = 5
RECOMMENDATION_MAX_TOKENS = 2000


def placeholder(title: str, description: str, priority: Priority = Priority.LOW) -> dict:
    return {
        "title": title,
        "description": description,
        "priority": priority.value,
        "target_topic": None,
        "estimated_impact": None,
        "action_items": [],
    }


def _format_score(score: int) -> str:
    return "no data" if score == NO_DATA else f"{score}%"


def build_recommendation_prompt(stats: SummaryStats, brand: str, brand_context: str = "") -> str:
    provider_lines = "\n".join(
        f"- {p.label}: {_format_score(stats.provider_scores.get(p, NO_DATA))}" for p in Provider
    )
    topic_lines = (
        "\n".join(
            f"- {topic}: {ts.mentioned}/{ts.total} ({_format_score(ts.percentage)})"
            for topic, ts in stats.topic_scores.items()
        )
        or "- none"
    )
    absent_lines = (
        "\n".join(
            f'- "{d.query_text}" [{d.topic_label}]: absent from {", ".join(p.label for p in d.absent_from)}'
            for d in stats.absent_details
        )
        or "- none"
    )
    about = f", a {brand_context}" if brand_context else ""
    priorities = " | ".join(p.value for p in Priority)

    return f"""You are a GEO (Generative Engine Optimization) consultant for {brand}{about}.

Here is today's visibility of {brand} in AI assistant answers ({stats.run_date.isoformat()}):

Global score (market-weighted): {_format_score(stats.global_score)}
Questions: {stats.total_queries}, answers analyzed: {stats.total_results}, mentions: {stats.total_mentions}

Mention rate per assistant:
{provider_lines}

Mention rate per topic:
{topic_lines}

Questions where {brand} is absent:
{absent_lines}

Write exactly {RECOMMENDATION_COUNT} prioritized, concrete actions that would increase {brand}'s presence in these answers.

Reply ONLY with a JSON array of {RECOMMENDATION_COUNT} objects:
[{{"title": "...", "description": "...", "priority": "{priorities}", "target_topic": "topic or null", "estimated_impact": "short estimate", "action_items": ["step 1", "step 2"]}}]"""


def parse_recommendations(text: str) -> list | None:
    """Strip code fences, then strict parse, then the outermost ``[`` ... ``]`` span."""
    cleaned = strip_code_fences(text or "")
    items = parse_strict(cleaned)
    if items is not None:
        return items

    start, end = cleaned.find("["), cleaned.rfind("]")
    if start == -1 or end <= start:
        return None
    return parse_strict(cleaned[start : end + 1])


class RecommendationGenerator:
    def __init__(self, judge: JudgeClient, brand: str, brand_context: str = ""):
        self.judge = judge
        self.brand = brand
        self.brand_context = brand_context

    @property
    def model(self) -> str:
        return self.judge.model

    async def recommend(self, stats: SummaryStats) -> RecommendationResult:
        """Draft recommendations. Judge transport errors (JudgeError) propagate."""
        if not self.judge.configured:
            return RecommendationResult(
                recommendations=[
                    placeholder(
                        "Configure the judge API key",
                        "Set ANTHROPIC_API_KEY to generate recommendations from the daily results.",
                        priority=Priority.HIGH,
                    )
                ],
                tokens_used=0,
            )

        prompt = build_recommendation_prompt(stats, self.brand, self.brand_context)
        reply = await self.judge.complete(prompt, max_tokens=RECOMMENDATION_MAX_TOKENS)

        items = parse_recommendations(reply.text)
        if items is None:
            logger.warning("Unparseable recommendation output: %.200s", reply.text)
            items = [
                placeholder(
                    "Recommendation parsing failed",
                    f"The judge reply could not be read as a JSON array: {json.dumps(reply.text[:300])}",
                )
            ]

        logger.info("Generated %d recommendations (%d output tokens)", len(items), reply.output_tokens)
        return RecommendationResult(recommendations=items, tokens_used=reply.output_tokens)
