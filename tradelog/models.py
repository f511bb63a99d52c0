"""
models.py
---------

Defines the data model shared by the parser and the analytics layer. A
TradeRecord is one row of a broker trade-history export after
normalization; the remaining classes are derived views that are rebuilt
from a list of records on every call and never stored.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, Optional


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt is not None else None


@dataclass
class TradeRecord:
    """Represents a single trade leg from a broker export.

    Attributes
    ----------
    entry_time, exit_time: Optional[datetime]
        Naive local timestamps. None when the source cell was missing or
        could not be parsed; a record without exit_time is an open trade.
    position_id: str
        Broker position identifier, kept as text.
    symbol: str
        Instrument name exactly as exported (e.g. 'EURUSD', 'XAUUSD').
    side: str
        Raw side text ('buy', 'sell', ...). Not validated.
    volume: float
        Lot size.
    stop_loss, take_profit: Optional[float]
        None when the export left the cell empty; 0.0 is a real level.
    gross_profit: float
        Broker profit before commission and swap.
    net_profit: float
        Final profit used by every aggregate. Either taken from the
        explicit net-profit column or commission + swap + gross_profit.
    """

    entry_time: Optional[datetime]
    exit_time: Optional[datetime]
    position_id: str
    symbol: str
    side: str
    volume: float
    entry_price: float
    exit_price: float
    stop_loss: Optional[float]
    take_profit: Optional[float]
    commission: float
    swap: float
    gross_profit: float
    net_profit: float
    account_id: Optional[str] = None
    entry_basis: Optional[str] = None
    note: Optional[str] = None

    @property
    def is_closed(self) -> bool:
        return self.exit_time is not None

    def to_row(self) -> Dict[str, Any]:
        """Flat dict ideal for DataFrame creation / JSON."""
        row = asdict(self)
        row["entry_time"] = _iso(self.entry_time)
        row["exit_time"] = _iso(self.exit_time)
        return row


# ---------- derived views ----------
@dataclass(frozen=True)
class AnalysisSummary:
    total_trades: int = 0
    total_profit: float = 0.0
    win_count: int = 0
    loss_count: int = 0
    win_rate: float = 0.0
    avg_win: float = 0.0
    avg_loss: float = 0.0
    # subtotals shown under the net figure
    total_gross_profit: float = 0.0
    total_commission: float = 0.0
    total_swap: float = 0.0
    trading_days: int = 0

    def to_row(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DailyProfit:
    day: str                # 'YYYY-MM-DD', sort key
    date: str               # display label, 'YYYY-MM-DD (요일)'
    profit: float
    cumulative: float
    by_symbol: Dict[str, float] = field(default_factory=dict)

    def to_row(self) -> Dict[str, Any]:
        row = asdict(self)
        row["by_symbol"] = dict(self.by_symbol)
        return row


@dataclass(frozen=True)
class WeeklyProfit:
    week_start: str         # Monday, 'YYYY-MM-DD'
    week_end: str           # Sunday, 'YYYY-MM-DD'
    label: str
    profit: float
    cumulative: float

    def to_row(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class MonthlyProfit:
    month: str              # 'YYYY-MM'
    profit: float
    cumulative: float

    def to_row(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SymbolStats:
    symbol: str
    trade_count: int
    total_profit: float
    total_volume: float
    win_count: int
    loss_count: int
    win_rate: float
    avg_win: float
    avg_loss: float

    def to_row(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DateRange:
    """Date selector coming from the dashboard.

    start_date / end_date are 'YYYY-MM-DD' strings (or None). When
    is_full_range is True both bounds are ignored.
    """

    start_date: Optional[str] = None
    end_date: Optional[str] = None
    is_full_range: bool = False

    @classmethod
    def full(cls) -> "DateRange":
        return cls(start_date=None, end_date=None, is_full_range=True)

    @classmethod
    def between(cls, start_date: Optional[str], end_date: Optional[str]) -> "DateRange":
        """Bounded range; falls back to the full range when both bounds are empty."""
        start_date = start_date or None
        end_date = end_date or None
        if start_date is None and end_date is None:
            return cls.full()
        return cls(start_date=start_date, end_date=end_date, is_full_range=False)
