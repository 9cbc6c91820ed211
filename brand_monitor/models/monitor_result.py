from datetime import date, datetime, timezone

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from brand_monitor.db.base import Base


class MonitorResult(Base):
    """One provider's answer to one query on a given date."""

    __tablename__ = "monitor_results"
    __table_args__ = (UniqueConstraint("query_id", "provider", "run_date", name="uq_monitor_result"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    query_id: Mapped[str] = mapped_column(
        ForeignKey("monitor_queries.id", ondelete="CASCADE"), nullable=False, index=True
    )
    provider: Mapped[str] = mapped_column(String(20), nullable=False)  # Provider enum value
    run_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    response_text: Mapped[str | None] = mapped_column(Text, nullable=True)  # NULL = error-only row
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    latency_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    is_mentioned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    mention_rank: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sentiment: Mapped[str | None] = mapped_column(String(20), nullable=True)  # Sentiment enum value

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
