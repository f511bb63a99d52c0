"""Trade-history import and profit analytics."""

from .analytics import (
    aggregate_by_symbol,
    aggregate_daily,
    aggregate_monthly,
    aggregate_weekly,
    analyze,
    compute_summary,
    exit_date_bounds,
    filter_by_date_range,
)
from .errors import TradeFileError
from .models import (
    AnalysisSummary,
    DailyProfit,
    DateRange,
    MonthlyProfit,
    SymbolStats,
    TradeRecord,
    WeeklyProfit,
)
from .parser import get_excel_preview, parse_trade_file

__all__ = [
    "AnalysisSummary",
    "DailyProfit",
    "DateRange",
    "MonthlyProfit",
    "SymbolStats",
    "TradeFileError",
    "TradeRecord",
    "WeeklyProfit",
    "aggregate_by_symbol",
    "aggregate_daily",
    "aggregate_monthly",
    "aggregate_weekly",
    "analyze",
    "compute_summary",
    "exit_date_bounds",
    "filter_by_date_range",
    "get_excel_preview",
    "parse_trade_file",
]
