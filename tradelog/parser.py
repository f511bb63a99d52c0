"""
parser.py
---------

Turns a raw trade-history export (xlsx workbook, or the same table saved
as delimited text) into a list of TradeRecord objects.

The parser is a pure function of the input bytes: it decodes the first
sheet, locates the header row, resolves a column plan for the detected
layout (see schema.py) and coerces every data row into a TradeRecord.
Bad cells degrade locally (None dates, 0.0 numbers); problems with the
sheet as a whole raise a TradeFileError subclass with a message that
tells the user how to fix the file.
"""

import csv
import io
import logging
import math
import numbers
import re
import warnings
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, List, Optional, Sequence, Tuple

import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

from .errors import (
    HeaderNotFoundError,
    InsufficientRowsError,
    MissingColumnsError,
    NoValidRecordsError,
    WorkbookReadError,
)
from .models import TradeRecord
from .schema import (
    SUPPORTED_LAYOUTS,
    SchemaPlan,
    cell_text,
    find_header_row,
    resolve_schema,
    sample_rows,
)

logger = logging.getLogger(__name__)

# spreadsheet serial dates count days from 1899-12-30
EXCEL_EPOCH = "1899-12-30"
_MAX_SERIAL = 2958465  # 9999-12-31

# delimited exports from Korean brokers are often saved as CP949
TEXT_ENCODINGS = ("utf-8-sig", "cp949")

_DATE_PATTERNS = [
    re.compile(r"^(\d{4})\.(\d{2})\.(\d{2})\s+(\d{2}):(\d{2}):(\d{2})$"),
    re.compile(r"^(\d{4})-(\d{2})-(\d{2})\s+(\d{2}):(\d{2}):(\d{2})$"),
    re.compile(r"^(\d{4})/(\d{2})/(\d{2})\s+(\d{2}):(\d{2}):(\d{2})$"),
]

_GOOGLE_ID_RE = re.compile(r"/d/([a-zA-Z0-9_-]+)")
_GOOGLE_GID_RE = re.compile(r"gid=(\d+)")


# ---------- cell coercion ----------
def _naive_local(dt: datetime) -> datetime:
    if dt.tzinfo is not None:
        return dt.astimezone().replace(tzinfo=None)
    return dt


def _from_serial(value: float) -> Optional[datetime]:
    if not math.isfinite(value) or value < 0 or value > _MAX_SERIAL:
        return None
    # serials before 1900-03-01 are shifted by the fictitious 1900-02-29
    days = value + 1 if value < 60 else value
    try:
        ts = pd.to_datetime(days, unit="D", origin=EXCEL_EPOCH).round("s")
    except (ValueError, OverflowError, pd.errors.OutOfBoundsDatetime):
        return None
    return ts.to_pydatetime()


def _from_text(value: str) -> Optional[datetime]:
    cleaned = value.replace("\n", " ").strip()
    if not cleaned:
        return None

    for pattern in _DATE_PATTERNS:
        m = pattern.match(cleaned)
        if m:
            y, mo, d, h, mi, s = (int(g) for g in m.groups())
            try:
                return datetime(y, mo, d, h, mi, s)
            except ValueError:
                return None

    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        try:
            ts = pd.to_datetime(cleaned, errors="coerce")
        except (ValueError, TypeError, OverflowError):
            return None
    if ts is None or pd.isna(ts):
        return None
    return _naive_local(ts.to_pydatetime())


def parse_cell_datetime(value: Any) -> Optional[datetime]:
    """Best-effort conversion of a date cell. Never raises; None on failure."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else _naive_local(value.to_pydatetime())
    if isinstance(value, datetime):
        return _naive_local(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, numbers.Real):
        return _from_serial(float(value))
    if isinstance(value, str):
        return _from_text(value)
    return None


def to_number(value: Any) -> float:
    """Numeric cell -> float; anything missing or non-numeric becomes 0.0."""
    if value is None or isinstance(value, (datetime, date)):
        return 0.0
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0.0
    try:
        out = float(value)
    except (TypeError, ValueError):
        return 0.0
    return out if math.isfinite(out) else 0.0


def to_optional_number(value: Any) -> Optional[float]:
    """Like to_number, but blank or non-numeric cells stay None."""
    if value is None or isinstance(value, (datetime, date)):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    return out if math.isfinite(out) else None


def _is_blank(value: Any) -> bool:
    if value is None or value == "":
        return True
    return isinstance(value, numbers.Real) and not isinstance(value, bool) and value == 0


def to_text(value: Any) -> str:
    return "" if _is_blank(value) else cell_text(value)


def to_optional_text(value: Any) -> Optional[str]:
    return None if _is_blank(value) else cell_text(value)


def _is_empty_row(row: Sequence[Any]) -> bool:
    return all(cell is None or cell == "" for cell in row)


# ---------- workbook decoding ----------
def _frame_to_rows(df: pd.DataFrame) -> List[List[Any]]:
    df = df.astype(object).where(pd.notna(df), None)
    return df.values.tolist()


def _read_delimited(buffer: bytes) -> List[List[Any]]:
    """Read the buffer as delimited text, trying each of TEXT_ENCODINGS in turn."""
    if not buffer.strip():
        return []
    decode_err: Optional[UnicodeDecodeError] = None
    for encoding in TEXT_ENCODINGS:
        try:
            df = pd.read_csv(io.BytesIO(buffer), header=None, dtype=object, sep=None,
                             engine="python", encoding=encoding,
                             keep_default_na=False, na_values=[""])
        except UnicodeDecodeError as err:
            decode_err = err
            continue
        return _frame_to_rows(df)
    raise decode_err


def read_sheet_rows(buffer: bytes, file_name: Optional[str] = None) -> Tuple[str, List[List[Any]]]:
    """Decode the first sheet of a workbook into raw rows (None for empty cells).

    Returns (sheet_name, rows). Buffers that are not workbooks are read as
    delimited text; a buffer that is neither raises WorkbookReadError.
    """
    try:
        with pd.ExcelFile(io.BytesIO(buffer)) as book:
            sheet_name = book.sheet_names[0]
            # only truly empty cells are missing; texts like "NA" stay as-is
            df = book.parse(sheet_name, header=None, dtype=object,
                            keep_default_na=False, na_values=[""])
        return str(sheet_name), _frame_to_rows(df)
    except (ValueError, KeyError, ImportError, zipfile.BadZipFile, InvalidFileException) as excel_err:
        logger.debug("%sNot a workbook (%s); trying delimited text", _label(file_name), excel_err)
        try:
            rows = _read_delimited(buffer)
        except (ValueError, csv.Error) as text_err:
            raise WorkbookReadError(
                f"The file is not an xlsx workbook and could not be read as delimited text "
                f"({text_err}). Save it as .xlsx, or as CSV in UTF-8 or CP949.",
                file_name,
            ) from text_err
        return "Sheet1", rows


def _label(file_name: Optional[str]) -> str:
    return f"[{file_name}] " if file_name else ""


# ---------- row extraction ----------
def _pick(row: Sequence[Any], cols: Sequence[int]) -> Any:
    """First non-None value among the candidate columns."""
    for idx in cols:
        if idx < len(row) and row[idx] is not None:
            return row[idx]
    return None


def extract_record(row: Sequence[Any], plan: SchemaPlan) -> TradeRecord:
    """Coerce one data row into a TradeRecord using a resolved plan."""
    def get(name: str) -> Any:
        return _pick(row, plan.columns.get(name, ()))

    commission = to_number(get("commission"))
    swap = to_number(get("swap"))
    gross_profit = to_number(get("gross_profit"))

    raw_net = get("net_profit")
    if plan.has_net_profit and raw_net is not None and raw_net != "":
        net_profit = to_number(raw_net)
    else:
        net_profit = commission + swap + gross_profit

    return TradeRecord(
        entry_time=parse_cell_datetime(get("entry_time")),
        exit_time=parse_cell_datetime(get("exit_time")),
        position_id=to_text(get("position_id")),
        symbol=to_text(get("symbol")),
        side=to_text(get("side")),
        volume=to_number(get("volume")),
        entry_price=to_number(get("entry_price")),
        exit_price=to_number(get("exit_price")),
        stop_loss=to_optional_number(get("stop_loss")),
        take_profit=to_optional_number(get("take_profit")),
        commission=commission,
        swap=swap,
        gross_profit=gross_profit,
        net_profit=net_profit,
        account_id=to_optional_text(get("account_id")),
        entry_basis=to_optional_text(get("entry_basis")),
        note=to_optional_text(get("note")),
    )


def parse_trade_file(buffer: bytes, file_name: Optional[str] = None) -> List[TradeRecord]:
    """Parse a broker trade-history export.

    Parameters
    ----------
    buffer: bytes
        Raw workbook bytes. Only the first sheet is read.
    file_name: Optional[str]
        Used to prefix log lines and error messages.

    Returns
    -------
    List[TradeRecord]
        Records in source row order. Rows where both net and gross profit
        are exactly 0 (pending orders, balance operations, break-even
        trades) are left out.

    Raises
    ------
    TradeFileError
        When the sheet cannot be interpreted. The list is never empty.
    """
    label = _label(file_name)
    logger.info("%sParsing trade file, buffer size: %d bytes", label, len(buffer))

    sheet_name, rows = read_sheet_rows(buffer, file_name)
    logger.info("%sSheet %r has %d rows", label, sheet_name, len(rows))

    if len(rows) < 2:
        logger.warning("%sSheet has less than 2 rows", label)
        raise InsufficientRowsError(len(rows), file_name)

    header_idx = find_header_row(rows)
    if header_idx == -1:
        samples = sample_rows(rows)
        logger.warning("%sHeader row not found; top rows: %s", label, samples)
        raise HeaderNotFoundError(samples, SUPPORTED_LAYOUTS, file_name)

    try:
        plan = resolve_schema(rows[header_idx], file_name)
    except MissingColumnsError:
        logger.warning("%sMissing required columns in header row %d", label, header_idx + 1)
        raise
    logger.info("%sFound headers: %s", label, ", ".join(plan.header.found()))
    logger.info("%sLayout detected: %s", label, plan.layout)

    data_rows = [row for row in rows[header_idx + 1:] if row and not _is_empty_row(row)]

    records: List[TradeRecord] = []
    skipped = 0
    for row in data_rows:
        record = extract_record(row, plan)
        if record.net_profit == 0 and record.gross_profit == 0:
            skipped += 1
            continue
        records.append(record)

    logger.info("%sParsed %d trade records, skipped %d rows (profit=0)", label, len(records), skipped)

    if not records:
        logger.warning("%sNo valid records (data rows=%d, skipped=%d)", label, len(data_rows), skipped)
        raise NoValidRecordsError(len(data_rows), skipped, file_name)

    return records


# ---------- preview ----------
@dataclass
class ExcelPreview:
    sheet_name: str
    headers: List[str]
    rows: List[List[str]] = field(default_factory=list)
    total_rows: int = 0

    def to_row(self) -> dict:
        return {
            "sheet_name": self.sheet_name,
            "headers": list(self.headers),
            "rows": [list(r) for r in self.rows],
            "total_rows": self.total_rows,
        }


def get_excel_preview(buffer: bytes, max_rows: int = 10) -> ExcelPreview:
    """First rows under the header row, as text. Works on unrecognized sheets too."""
    sheet_name, rows = read_sheet_rows(buffer)
    header_idx = find_header_row(rows)
    start = header_idx if header_idx >= 0 else 0

    headers = [cell_text(c).strip() for c in (rows[start] if rows else [])]
    data_rows = rows[start + 1:]
    preview = [[cell_text(c) for c in (row or [])] for row in data_rows[:max(0, max_rows)]]
    return ExcelPreview(sheet_name=sheet_name, headers=headers, rows=preview, total_rows=len(data_rows))


# ---------- google sheets ----------
def parse_google_sheet_url(url: str) -> Optional[Tuple[str, str]]:
    """Return (spreadsheet_id, gid) from a Google Sheets URL, or None."""
    m = _GOOGLE_ID_RE.search(url or "")
    if not m:
        return None
    gid_match = _GOOGLE_GID_RE.search(url)
    gid = gid_match.group(1) if gid_match else "0"
    return m.group(1), gid


def google_sheet_export_url(spreadsheet_id: str, gid: str = "0") -> str:
    return f"https://docs.google.com/spreadsheets/d/{spreadsheet_id}/export?format=xlsx&gid={gid}"
