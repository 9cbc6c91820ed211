from brand_monitor.models.daily_recommendation import DailyRecommendation
from brand_monitor.models.monitor_query import MonitorQuery
from brand_monitor.models.monitor_result import MonitorResult

__all__ = [
    "DailyRecommendation",
    "MonitorQuery",
    "MonitorResult",
]
