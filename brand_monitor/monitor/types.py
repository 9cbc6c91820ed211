"""Shared types for the monitoring pipeline: providers, analyses, summaries."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from datetime import date
from enum import Enum

# -- Enums -----------------------------------------------------------------


class Provider(str, Enum):
    """LLM vendors polled on every run, in canonical order."""

    CHATGPT = "chatgpt"
    GEMINI = "gemini"
    MISTRAL = "mistral"
    GROK = "grok"
    CLAUDE = "claude"
    PERPLEXITY = "perplexity"

    @property
    def label(self) -> str:
        return PROVIDER_LABELS[self]

    @classmethod
    def from_name(cls, name: str) -> Provider | None:
        """Case-insensitive lookup by value or display label."""
        key = (name or "").strip().lower()
        for provider in cls:
            if key in (provider.value, provider.label.lower()):
                return provider
        return None


PROVIDER_LABELS: dict[Provider, str] = {
    Provider.CHATGPT: "ChatGPT",
    Provider.GEMINI: "Gemini",
    Provider.MISTRAL: "Mistral",
    Provider.GROK: "Grok",
    Provider.CLAUDE: "Claude",
    Provider.PERPLEXITY: "Perplexity",
}


class Topic(str, Enum):
    """Thematic block a monitored question belongs to."""

    REGULATION = "regulation"
    COMPLIANCE = "compliance"
    TECHNOLOGY = "technology"
    PROVIDERS = "providers"
    INDUSTRY = "industry"
    SUSTAINABILITY = "sustainability"


class Sentiment(str, Enum):
    VERY_POSITIVE = "very_positive"
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"
    VERY_NEGATIVE = "very_negative"

    @classmethod
    def parse(cls, value: object) -> Sentiment | None:
        """Accept enum values and common judge spellings ("very positive", "Positive")."""
        if not isinstance(value, str):
            return None
        key = value.strip().lower().replace("-", "_").replace(" ", "_")
        try:
            return cls(key)
        except ValueError:
            return None


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RunState(str, Enum):
    IDLE = "idle"
    LOADING_QUERIES = "loading_queries"
    PROCESSING_BATCH = "processing_batch"
    GENERATING_RECOMMENDATIONS = "generating_recommendations"
    DONE = "done"
    FAILED = "failed"


NO_DATA = -1  # score sentinel: no valid rows, distinct from a confirmed 0%


# -- Pipeline values -------------------------------------------------------


@dataclass
class ProviderResponse:
    """Outcome of one prompt sent to one provider.

    ``response`` is authoritative: an entry is valid whenever text was
    obtained, even if ``error`` carries an advisory (e.g. a degraded path).
    """

    provider: Provider
    response: str | None = None
    error: str | None = None
    latency_ms: int = 0

    @property
    def is_valid(self) -> bool:
        return self.response is not None


@dataclass
class Analysis:
    """Judge verdict for one provider's answer."""

    provider: Provider
    is_mentioned: bool = False
    mention_rank: int | None = None
    sentiment: Sentiment | None = None


# -- Aggregates ------------------------------------------------------------


@dataclass
class TopicScore:
    mentioned: int = 0
    total: int = 0

    @property
    def percentage(self) -> int:
        if self.total == 0:
            return NO_DATA
        return math.floor(100 * self.mentioned / self.total + 0.5)

    def to_dict(self) -> dict:
        return {"mentioned": self.mentioned, "total": self.total, "percentage": self.percentage}


@dataclass
class AbsentDetail:
    query_id: str
    query_text: str
    topic_label: str
    absent_from: list[Provider] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["absent_from"] = [p.value for p in self.absent_from]
        return data


@dataclass
class SummaryStats:
    run_date: date
    global_score: int = NO_DATA
    provider_scores: dict[Provider, int] = field(default_factory=dict)
    topic_scores: dict[str, TopicScore] = field(default_factory=dict)
    absent_details: list[AbsentDetail] = field(default_factory=list)
    total_queries: int = 0
    total_results: int = 0
    total_mentions: int = 0

    def to_dict(self) -> dict:
        """JSON-safe snapshot, stored alongside generated recommendations."""
        return {
            "run_date": self.run_date.isoformat(),
            "global_score": self.global_score,
            "provider_scores": {p.value: score for p, score in self.provider_scores.items()},
            "topic_scores": {topic: ts.to_dict() for topic, ts in self.topic_scores.items()},
            "absent_details": [d.to_dict() for d in self.absent_details],
            "total_queries": self.total_queries,
            "total_results": self.total_results,
            "total_mentions": self.total_mentions,
        }


@dataclass
class HistoryPoint:
    """Mention rate per provider for one date of the trend chart."""

    run_date: date
    scores: dict[Provider, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"date": self.run_date.isoformat(), **{p.value: s for p, s in self.scores.items()}}


@dataclass
class RecommendationResult:
    recommendations: list[dict] = field(default_factory=list)
    tokens_used: int = 0


@dataclass(frozen=True)
class QueryInfo:
    """Detached copy of a monitored query, safe to use across session rollbacks."""

    id: str
    query_text: str
    topic: str
    topic_label: str = ""

    @classmethod
    def from_row(cls, row) -> QueryInfo:
        return cls(id=row.id, query_text=row.query_text, topic=row.topic, topic_label=row.topic_label)
