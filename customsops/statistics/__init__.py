from customsops.statistics.performance import (
    PerformanceDataError,
    daily_totals,
    monthly_summary,
    split_teams,
    team_totals,
    user_dashboard,
)

__all__ = [
    "PerformanceDataError",
    "daily_totals",
    "monthly_summary",
    "split_teams",
    "team_totals",
    "user_dashboard",
]
