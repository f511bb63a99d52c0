"""
schema.py
---------

Column layouts of the supported broker exports and the logic that turns a
header row into a fixed extraction plan.

Two layouts are recognized:

* MT5 ("compact"): the terminal's history report. Entry and exit share the
  same labels, so the sheet has two 시간 (time) and two 가격 (price)
  columns; the first of each pair is the entry, the second the exit.
* General ("explicit"): dedicated 진입시간/청산시간/진입가격/청산가격 columns.

The header labels below are the exact strings written by the exports and
must not be translated or normalized.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .errors import MissingColumnsError

# header markers
ENTRY_TIME = "진입시간"
EXIT_TIME = "청산시간"
TIME = "시간"
PRICE = "가격"
POSITION = "포지션"
PROFIT = "수익"
NET_PROFIT = "실수익"
ENTRY_PRICE = "진입가격"
ENTRY_PRICE_TYPO = "전입가격"   # seen in hand-edited sheets
EXIT_PRICE = "청산가격"

# field -> candidate labels; the first candidate with a value wins
FIELD_LABELS: Dict[str, Tuple[str, ...]] = {
    "position_id": (POSITION,),
    "symbol": ("통화",),
    "side": ("종류",),
    "volume": ("거래량",),
    "stop_loss": ("S / L", "S/L"),
    "take_profit": ("T / P", "T/P"),
    "commission": ("커미션",),
    "swap": ("스왑",),
    "gross_profit": (PROFIT,),
    "net_profit": (NET_PROFIT,),
    "account_id": ("계좌번호",),
    "entry_basis": ("진입기준",),
    "note": ("비고",),
}

MT5_LAYOUT = "MT5"
GENERAL_LAYOUT = "general"

SUPPORTED_LAYOUTS = [
    "MT5: 시간, 포지션, 통화, 종류, 거래량, 가격, S/L, T/P, 시간, 가격, 커미션, 스왑, 수익",
    "general: 진입시간, 청산시간, 포지션, 통화, 종류, 거래량, 진입가격, 청산가격, 커미션, 스왑, 수익",
]

REQUIRED_COLUMNS = {
    MT5_LAYOUT: [TIME, PRICE, POSITION, PROFIT],
    GENERAL_LAYOUT: [ENTRY_TIME, EXIT_TIME, POSITION, PROFIT],
}

REQUIRED_DESCRIPTION = {
    MT5_LAYOUT: "시간 (x2), 가격 (x2), 포지션, 수익",
    GENERAL_LAYOUT: "진입시간, 청산시간, 포지션, 수익",
}


def cell_text(cell: Any) -> str:
    """Text of a raw cell; empty string for None. Whole floats drop the '.0'."""
    if cell is None:
        return ""
    if isinstance(cell, float) and cell.is_integer():
        return str(int(cell))
    return str(cell)


def is_header_row(row: Sequence[Any]) -> bool:
    texts = [cell_text(c) for c in row]
    for text in texts:
        if ENTRY_TIME in text or EXIT_TIME in text:
            return True
        if text == TIME and POSITION in texts:
            return True
    return False


def find_header_row(rows: Sequence[Sequence[Any]]) -> int:
    """Index of the first header row, or -1."""
    for idx, row in enumerate(rows):
        if row and is_header_row(row):
            return idx
    return -1


def sample_rows(rows: Sequence[Sequence[Any]], n_rows: int = 5, n_cells: int = 10) -> List[str]:
    """Short preview of the top of a sheet for diagnostics."""
    out = []
    for row in rows[:n_rows]:
        cells = [cell_text(c).strip() for c in list(row or [])[:n_cells]]
        cells = [c for c in cells if c]
        out.append(", ".join(cells) or "(empty row)")
    return out


@dataclass(frozen=True)
class HeaderIndex:
    """Stripped header labels and label -> [column indices] in sheet order."""

    labels: List[str]
    positions: Dict[str, List[int]]

    @classmethod
    def from_row(cls, raw_headers: Sequence[Any]) -> "HeaderIndex":
        labels: List[str] = []
        positions: Dict[str, List[int]] = {}
        for idx, header in enumerate(raw_headers):
            h = cell_text(header).strip()
            labels.append(h)
            if h:
                positions.setdefault(h, []).append(idx)
        return cls(labels=labels, positions=positions)

    def count(self, label: str) -> int:
        return len(self.positions.get(label, []))

    def first(self, label: str) -> Optional[int]:
        cols = self.positions.get(label)
        return cols[0] if cols else None

    def columns_for(self, labels: Sequence[str]) -> Tuple[int, ...]:
        return tuple(i for i in (self.first(label) for label in labels) if i is not None)

    def found(self) -> List[str]:
        return [h for h in self.labels if h]


@dataclass(frozen=True)
class SchemaPlan:
    """Resolved column indices for every TradeRecord field.

    ``columns`` maps a field name to the candidate column indices, in
    priority order. An empty tuple means the sheet has no such column.
    """

    header: HeaderIndex
    columns: Dict[str, Tuple[int, ...]]
    layout: str = field(default="", init=False)

    @property
    def has_net_profit(self) -> bool:
        return bool(self.columns.get("net_profit"))


@dataclass(frozen=True)
class CompactSchema(SchemaPlan):
    time_cols: Tuple[int, int]
    price_cols: Tuple[int, int]
    layout: str = field(default=MT5_LAYOUT, init=False)


@dataclass(frozen=True)
class ExplicitSchema(SchemaPlan):
    layout: str = field(default=GENERAL_LAYOUT, init=False)


def detect_layout(header: HeaderIndex) -> str:
    if header.count(TIME) == 2 and header.count(PRICE) == 2 and ENTRY_TIME not in header.labels:
        return MT5_LAYOUT
    return GENERAL_LAYOUT


def missing_columns(header: HeaderIndex, layout: str) -> List[str]:
    missing = [label for label in REQUIRED_COLUMNS[layout] if header.count(label) == 0]
    if layout == MT5_LAYOUT:
        if header.count(TIME) != 2:
            missing.append(f"{TIME} (2 required: entry/exit)")
        if header.count(PRICE) != 2:
            missing.append(f"{PRICE} (2 required: entry/exit)")
    return missing


def resolve_schema(raw_headers: Sequence[Any], file_name: Optional[str] = None) -> SchemaPlan:
    """Build the extraction plan for a header row.

    Raises MissingColumnsError when the detected layout lacks a required column.
    """
    header = HeaderIndex.from_row(raw_headers)
    layout = detect_layout(header)

    missing = missing_columns(header, layout)
    if missing:
        raise MissingColumnsError(
            layout=layout,
            missing=missing,
            found=header.found(),
            required=REQUIRED_DESCRIPTION[layout],
            file_name=file_name,
        )

    columns = {name: header.columns_for(labels) for name, labels in FIELD_LABELS.items()}

    if layout == MT5_LAYOUT:
        t_entry, t_exit = header.positions[TIME][:2]
        p_entry, p_exit = header.positions[PRICE][:2]
        columns.update({
            "entry_time": (t_entry,),
            "exit_time": (t_exit,),
            "entry_price": (p_entry,),
            "exit_price": (p_exit,),
        })
        return CompactSchema(
            header=header,
            columns=columns,
            time_cols=(t_entry, t_exit),
            price_cols=(p_entry, p_exit),
        )

    columns.update({
        "entry_time": header.columns_for([ENTRY_TIME]),
        "exit_time": header.columns_for([EXIT_TIME]),
        "entry_price": header.columns_for([ENTRY_PRICE, ENTRY_PRICE_TYPO]),
        "exit_price": header.columns_for([EXIT_PRICE]),
    })
    return ExplicitSchema(header=header, columns=columns)
