from datetime import date, datetime

from pydantic import BaseModel


class RunRequest(BaseModel):
    run_date: date | None = None  # defaults to today (UTC)
    batch: int | None = None  # 1-based chunk; missing or out of range = all queries


class RunResponse(BaseModel):
    success: bool
    state: str
    run_date: date
    batch: int | None
    total_batches: int
    queries_processed: int
    queries_total: int
    total_mentions: int
    total_errors: int
    recommendations_count: int
    budget_exhausted: bool
    duration_sec: float
    error: str | None = None


class RegenerateRequest(BaseModel):
    run_date: date | None = None


class RegenerateResponse(BaseModel):
    success: bool
    run_date: date
    recommendations_count: int
    tokens_used: int


class ProviderResult(BaseModel):
    provider: str
    label: str
    status: str  # mentioned | absent | error | missing
    response_text: str | None = None
    error: str | None = None
    is_mentioned: bool = False
    mention_rank: int | None = None
    sentiment: str | None = None
    latency_ms: int | None = None


class QueryResults(BaseModel):
    id: str
    query_text: str
    topic: str
    topic_label: str
    sort_order: int
    results: list[ProviderResult]


class TopicScoreResponse(BaseModel):
    mentioned: int
    total: int
    percentage: int  # -1 = no data


class ScoresResponse(BaseModel):
    today: dict[str, int]  # provider -> mention rate, -1 = no data
    yesterday: dict[str, int]


class RecommendationSetResponse(BaseModel):
    run_date: date
    recommendations: list
    summary_stats: dict
    model_used: str
    tokens_used: int
    generated_at: datetime

    model_config = {"from_attributes": True}


class DashboardResponse(BaseModel):
    run_date: date
    last_scan_date: date | None
    results: list[QueryResults]
    scores: ScoresResponse
    global_score: int  # -1 = no data
    topic_scores: dict[str, TopicScoreResponse]
    history: list[dict]  # [{"date": "2025-01-01", "chatgpt": 40, ...}]
    recommendations: RecommendationSetResponse | None = None
