from datetime import date, datetime, timezone

from sqlalchemy import Date, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from brand_monitor.db.base import Base, JSONType


class DailyRecommendation(Base):
    """Recommendations generated for a run date, with the stats they were based on."""

    __tablename__ = "daily_recommendations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    run_date: Mapped[date] = mapped_column(Date, nullable=False, unique=True)
    recommendations: Mapped[list] = mapped_column(JSONType, nullable=False)
    summary_stats: Mapped[dict] = mapped_column(JSONType, nullable=False)  # frozen SummaryStats.to_dict()
    model_used: Mapped[str] = mapped_column(String(100), nullable=False)
    tokens_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
