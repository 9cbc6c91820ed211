"""Brand mention / sentiment analysis of provider answers.

A judge LLM classifies every answer for one question in a single call. Its
output is parsed in tiers:

  1. strict    the whole reply is a JSON array
  2. lenient   the first ``[`` ... last ``]`` span of the reply is a JSON array
  3. heuristic the judge is ignored; the brand is "mentioned" wherever it
               appears verbatim (case-insensitive) in the answer text

After a strict or lenient parse, a textual override forces
``is_mentioned=True`` for any answer that contains the brand, since the
judge sometimes undercounts. The override never turns a mention off.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import replace
from enum import Enum
from typing import Any

from brand_monitor.monitor.judge import JudgeClient, JudgeError
from brand_monitor.monitor.types import Analysis, Provider, ProviderResponse, Sentiment

logger = logging.getLogger(__name__)

MAX_RESPONSE_CHARS = 3000  # per answer, judge prompt only
ANALYSIS_MAX_TOKENS = 1500

_ARRAY_RE = re.compile(r"\[[\s\S]*\]")


class ParseTier(str, Enum):
    STRICT = "strict"
    LENIENT = "lenient"
    HEURISTIC = "heuristic"


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------


def build_analysis_prompt(
    prompt: str,
    responses: list[ProviderResponse],
    brand: str,
    brand_context: str = "",
) -> str:
    blocks = "\n\n".join(
        f"--- {r.provider.value.upper()} ---\n{(r.response or '')[:MAX_RESPONSE_CHARS]}" for r in responses
    )
    ids = ", ".join(r.provider.value for r in responses)
    sentiments = ", ".join(f'"{s.value}"' for s in Sentiment)
    about = f" ({brand_context})" if brand_context else ""

    return f"""You are analyzing answers from several AI assistants to the same question, to measure how visible the brand "{brand}"{about} is.

Question asked: "{prompt}"

{blocks}

For EACH answer above, return an object with:
- "provider": the identifier from the answer header, lowercase (one of: {ids})
- "is_mentioned": true only if "{brand}" is explicitly named in the answer
- "mention_rank": position of {brand} among the companies or solutions cited (1 = cited first), null if not mentioned
- "sentiment": how {brand} is presented, one of {sentiments}; null if not mentioned

Reply ONLY with a JSON array, no other text. Example:
[{{"provider": "chatgpt", "is_mentioned": true, "mention_rank": 2, "sentiment": "positive"}}]"""


# ---------------------------------------------------------------------------
# Parsing tiers
# ---------------------------------------------------------------------------


def parse_strict(text: str) -> list | None:
    try:
        data = json.loads(text)
    except (TypeError, ValueError):
        return None
    return data if isinstance(data, list) else None


def parse_lenient(text: str) -> list | None:
    match = _ARRAY_RE.search(text or "")
    if not match:
        return None
    return parse_strict(match.group(0))


def parse_judge_output(text: str) -> tuple[ParseTier, list | None]:
    """Run the parsing tiers in order. HEURISTIC means no usable array was found."""
    entries = parse_strict(text)
    if entries is not None:
        return ParseTier.STRICT, entries
    entries = parse_lenient(text)
    if entries is not None:
        return ParseTier.LENIENT, entries
    return ParseTier.HEURISTIC, None


def brand_in_text(brand: str, text: str | None) -> bool:
    return bool(brand and text) and brand.lower() in text.lower()


def heuristic_analysis(response: ProviderResponse, brand: str) -> Analysis:
    if brand_in_text(brand, response.response):
        return Analysis(provider=response.provider, is_mentioned=True, sentiment=Sentiment.NEUTRAL)
    return Analysis(provider=response.provider)


def heuristic_analyses(responses: list[ProviderResponse], brand: str) -> list[Analysis]:
    return [heuristic_analysis(r, brand) for r in responses]


# ---------------------------------------------------------------------------
# Entry normalization
# ---------------------------------------------------------------------------


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return False


def _as_rank(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if isinstance(value, int) and value > 0:
        return value
    return None


def entry_to_analysis(provider: Provider, entry: dict) -> Analysis:
    """Coerce one judge entry; absent mentions carry neither rank nor sentiment."""
    if not _as_bool(entry.get("is_mentioned")):
        return Analysis(provider=provider)
    return Analysis(
        provider=provider,
        is_mentioned=True,
        mention_rank=_as_rank(entry.get("mention_rank")),
        sentiment=Sentiment.parse(entry.get("sentiment")) or Sentiment.NEUTRAL,
    )


def apply_override(analysis: Analysis, response_text: str | None, brand: str) -> Analysis:
    """Force a mention when the brand is verbatim in the answer. Never downgrades."""
    if analysis.is_mentioned or not brand_in_text(brand, response_text):
        return analysis
    logger.info("%s: judge missed a verbatim mention of %s, overriding", analysis.provider.value, brand)
    return replace(analysis, is_mentioned=True, sentiment=analysis.sentiment or Sentiment.NEUTRAL)


def _entry_provider(entry: dict) -> Provider | None:
    for key in ("provider", "llm", "llm_name", "name"):
        value = entry.get(key)
        if isinstance(value, str):
            return Provider.from_name(value)
    return None


def reconcile(entries: list, responses: list[ProviderResponse], brand: str) -> list[Analysis]:
    """Match judge entries to answers by provider name and apply the override.

    Entries naming an unknown provider (or one not in *responses*) are
    dropped. Answers the judge skipped fall back to the textual heuristic.
    """
    by_provider = {r.provider: r for r in responses}
    judged: dict[Provider, Analysis] = {}

    for entry in entries:
        if not isinstance(entry, dict):
            logger.warning("Judge entry is not an object, skipping: %r", entry)
            continue
        provider = _entry_provider(entry)
        if provider is None or provider not in by_provider:
            logger.warning("Judge entry for unknown provider, skipping: %r", entry)
            continue
        if provider in judged:
            continue
        judged[provider] = entry_to_analysis(provider, entry)

    analyses = []
    for response in responses:
        analysis = judged.get(response.provider)
        if analysis is None:
            logger.warning("Judge returned no entry for %s, using text match", response.provider.value)
            analyses.append(heuristic_analysis(response, brand))
        else:
            analyses.append(apply_override(analysis, response.response, brand))
    return analyses


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------


class MentionAnalyzer:
    def __init__(self, judge: JudgeClient, brand: str, brand_context: str = ""):
        self.judge = judge
        self.brand = brand
        self.brand_context = brand_context

    async def analyze(self, prompt: str, responses: list[ProviderResponse]) -> list[Analysis]:
        """One Analysis per valid response, in input order. Never raises on judge problems."""
        responses = [r for r in responses if r.is_valid]
        if not responses:
            return []

        if not self.judge.configured:
            logger.debug("No judge key configured, returning empty analyses")
            return [Analysis(provider=r.provider) for r in responses]

        judge_prompt = build_analysis_prompt(prompt, responses, self.brand, self.brand_context)
        try:
            reply = await self.judge.complete(judge_prompt, max_tokens=ANALYSIS_MAX_TOKENS)
        except JudgeError as e:
            logger.warning("Mention judge failed, using text match: %s", e)
            return heuristic_analyses(responses, self.brand)

        tier, entries = parse_judge_output(reply.text)
        if entries is None:
            logger.warning("Unparseable judge output, using text match: %.200s", reply.text)
            return heuristic_analyses(responses, self.brand)

        logger.debug("Judge output parsed (%s tier): %d entries", tier.value, len(entries))
        return reconcile(entries, responses, self.brand)
