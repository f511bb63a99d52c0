"""
analytics.py
-------------

Profit analytics over a list of TradeRecord objects: date-range filtering,
summary statistics, daily/weekly/monthly profit series with running
totals, and per-symbol statistics.

Every function is pure and recomputes from scratch. Empty input is valid
and yields empty lists or a zeroed summary; nothing here raises for lack
of data. Only closed trades (exit_time set) take part in any time-based
view, and all money figures use TradeRecord.net_profit.
"""

from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from .models import (
    AnalysisSummary,
    DailyProfit,
    DateRange,
    MonthlyProfit,
    SymbolStats,
    TradeRecord,
    WeeklyProfit,
)

# Sunday first, matching datetime's isoweekday() % 7
WEEKDAY_NAMES = ["일", "월", "화", "수", "목", "금", "토"]
UNKNOWN_SYMBOL = "Unknown"


def weekday_name(d: date) -> str:
    return WEEKDAY_NAMES[d.isoweekday() % 7]


def _closed(records: Iterable[TradeRecord]) -> List[TradeRecord]:
    return [r for r in records if r.exit_time is not None and r.net_profit is not None]


def _win_loss(profits: Sequence[float]) -> Dict[str, Any]:
    """Win/loss partition shared by the summary and the per-symbol stats.

    Zero-profit trades count toward the total but neither partition.
    """
    wins = [p for p in profits if p > 0]
    losses = [p for p in profits if p < 0]
    total = len(profits)
    return {
        "win_count": len(wins),
        "loss_count": len(losses),
        "win_rate": len(wins) / total * 100 if total > 0 else 0.0,
        "avg_win": sum(wins) / len(wins) if wins else 0.0,
        "avg_loss": sum(losses) / len(losses) if losses else 0.0,
    }


# ---------- filtering ----------
def _parse_day(value: str) -> date:
    return date.fromisoformat(value.strip()[:10])


def filter_by_date_range(records: List[TradeRecord], date_range: DateRange) -> List[TradeRecord]:
    """Keep closed trades whose exit time falls in the selected days.

    A full range returns the input untouched, open trades included. Bounds
    are inclusive local days: start at 00:00:00, end at 23:59:59.999999.
    An unparseable bound matches nothing.
    """
    if date_range.is_full_range:
        return records

    start: Optional[datetime] = None
    end: Optional[datetime] = None
    try:
        if date_range.start_date:
            start = datetime.combine(_parse_day(date_range.start_date), time.min)
        if date_range.end_date:
            end = datetime.combine(_parse_day(date_range.end_date), time.max)
    except ValueError:
        return []

    out = []
    for r in records:
        if r.exit_time is None:
            continue
        if start is not None and r.exit_time < start:
            continue
        if end is not None and r.exit_time > end:
            continue
        out.append(r)
    return out


def exit_date_bounds(records: Iterable[TradeRecord]) -> Tuple[Optional[str], Optional[str]]:
    """(earliest, latest) exit date as 'YYYY-MM-DD', or (None, None)."""
    exits = [r.exit_time for r in records if r.exit_time is not None]
    if not exits:
        return None, None
    return min(exits).strftime("%Y-%m-%d"), max(exits).strftime("%Y-%m-%d")


# ---------- summary ----------
def compute_summary(records: List[TradeRecord]) -> AnalysisSummary:
    """Compute the headline statistics for the given trades.

    Returns
    -------
    AnalysisSummary
        total_trades, total_profit, win/loss counts, win_rate (percentage),
        average win/loss, gross/commission/swap subtotals and the number of
        distinct trading days. All zero when there are no closed trades.
    """
    valid = _closed(records)
    if not valid:
        return AnalysisSummary()

    profits = [r.net_profit for r in valid]
    return AnalysisSummary(
        total_trades=len(valid),
        total_profit=sum(profits),
        total_gross_profit=sum(r.gross_profit for r in valid),
        total_commission=sum(r.commission for r in valid),
        total_swap=sum(r.swap for r in valid),
        trading_days=len({r.exit_time.date() for r in valid}),
        **_win_loss(profits),
    )


# ---------- period series ----------
def aggregate_daily(records: List[TradeRecord]) -> List[DailyProfit]:
    """Net profit per exit day, with a per-symbol breakdown and running total."""
    grouped: Dict[str, Dict[str, Any]] = {}
    for r in _closed(records):
        key = r.exit_time.strftime("%Y-%m-%d")
        symbol = r.symbol or UNKNOWN_SYMBOL
        bucket = grouped.setdefault(key, {"profit": 0.0, "day": r.exit_time.date(), "by_symbol": {}})
        bucket["profit"] += r.net_profit
        bucket["by_symbol"][symbol] = bucket["by_symbol"].get(symbol, 0.0) + r.net_profit

    out: List[DailyProfit] = []
    cumulative = 0.0
    for key in sorted(grouped):
        data = grouped[key]
        cumulative += data["profit"]
        out.append(DailyProfit(
            day=key,
            date=f"{key} ({weekday_name(data['day'])})",
            profit=data["profit"],
            cumulative=cumulative,
            by_symbol=data["by_symbol"],
        ))
    return out


def aggregate_weekly(records: List[TradeRecord]) -> List[WeeklyProfit]:
    """Net profit per Monday-to-Sunday week, keyed and sorted by the Monday date string."""
    grouped: Dict[str, Dict[str, Any]] = {}
    for r in _closed(records):
        d = r.exit_time.date()
        week_start = d - timedelta(days=d.weekday())
        key = week_start.strftime("%Y-%m-%d")
        bucket = grouped.setdefault(key, {"profit": 0.0, "start": week_start})
        bucket["profit"] += r.net_profit

    out: List[WeeklyProfit] = []
    cumulative = 0.0
    for key in sorted(grouped):
        data = grouped[key]
        start = data["start"]
        end = start + timedelta(days=6)
        cumulative += data["profit"]
        out.append(WeeklyProfit(
            week_start=key,
            week_end=end.strftime("%Y-%m-%d"),
            label=(
                f"{start.strftime('%m/%d')} ({weekday_name(start)}) ~ "
                f"{end.strftime('%m/%d')} ({weekday_name(end)})"
            ),
            profit=data["profit"],
            cumulative=cumulative,
        ))
    return out


def aggregate_monthly(records: List[TradeRecord]) -> List[MonthlyProfit]:
    grouped: Dict[str, float] = {}
    for r in _closed(records):
        key = r.exit_time.strftime("%Y-%m")
        grouped[key] = grouped.get(key, 0.0) + r.net_profit

    out: List[MonthlyProfit] = []
    cumulative = 0.0
    for month in sorted(grouped):
        cumulative += grouped[month]
        out.append(MonthlyProfit(month=month, profit=grouped[month], cumulative=cumulative))
    return out


# ---------- per symbol ----------
def aggregate_by_symbol(records: List[TradeRecord]) -> List[SymbolStats]:
    """Per-instrument statistics, most traded symbol first.

    Ordered by trade count (not profit); ties keep first-seen order.
    """
    grouped: Dict[str, List[TradeRecord]] = {}
    for r in _closed(records):
        if not r.symbol:
            continue
        grouped.setdefault(r.symbol, []).append(r)

    result = []
    for symbol, trades in grouped.items():
        profits = [t.net_profit for t in trades]
        result.append(SymbolStats(
            symbol=symbol,
            trade_count=len(trades),
            total_profit=sum(profits),
            total_volume=sum(t.volume or 0.0 for t in trades),
            **_win_loss(profits),
        ))

    return sorted(result, key=lambda s: s.trade_count, reverse=True)


# ---------- one-shot view for the dashboard ----------
def analyze(records: List[TradeRecord], date_range: Optional[DateRange] = None) -> Dict[str, Any]:
    """Filter, then compute every view as plain dicts.

    Returns:
    {
      "summary": {...},
      "daily": [...], "weekly": [...], "monthly": [...],
      "by_symbol": [...]
    }
    """
    filtered = filter_by_date_range(records, date_range or DateRange.full())
    return {
        "summary": compute_summary(filtered).to_row(),
        "daily": [d.to_row() for d in aggregate_daily(filtered)],
        "weekly": [w.to_row() for w in aggregate_weekly(filtered)],
        "monthly": [m.to_row() for m in aggregate_monthly(filtered)],
        "by_symbol": [s.to_row() for s in aggregate_by_symbol(filtered)],
    }


# ---------- Optional: convenience to get DataFrames ----------
def records_frame(records: Iterable[TradeRecord]) -> pd.DataFrame:
    """One row per record; entry/exit times as pandas datetimes."""
    df = pd.DataFrame([r.to_row() for r in records], columns=list(TradeRecord.__dataclass_fields__))
    for col in ("entry_time", "exit_time"):
        df[col] = pd.to_datetime(df[col])
    return df


def series_frame(rows: Iterable[Any]) -> pd.DataFrame:
    """DataFrame from any list of aggregate objects (anything with to_row())."""
    return pd.DataFrame([row.to_row() for row in rows])
