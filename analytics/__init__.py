from analytics.display import format_currency, pnl_class, win_rate, win_rate_class
from analytics.quarters import (
    MalformedWeekError, group_weeks_by_quarter, quarter_from_date, quarter_key,
)
from analytics.stats import calculate_stats
from analytics.time_range import filter_days_by_time_range
from analytics.weekly import group_logs_by_month, group_logs_by_week
