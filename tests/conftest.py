import io
import os
import sys
from datetime import datetime
from typing import Optional

import pytest
from openpyxl import Workbook

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from tradelog.models import TradeRecord  # noqa: E402

EXPLICIT_HEADER = [
    "진입시간", "청산시간", "포지션", "통화", "종류", "거래량",
    "진입가격", "청산가격", "커미션", "스왑", "수익",
]

MT5_HEADER = [
    "시간", "포지션", "통화", "종류", "거래량", "가격",
    "S / L", "T / P", "시간", "가격", "커미션", "스왑", "수익",
]


def build_workbook(rows, title: str = "Sheet1") -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = title
    for row in rows:
        ws.append(row)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


@pytest.fixture
def xlsx():
    """Factory: list of rows -> xlsx bytes."""
    return build_workbook


def make_record(
    exit_time: Optional[datetime],
    net_profit: float,
    symbol: str = "EURUSD",
    volume: float = 1.0,
    gross_profit: Optional[float] = None,
    commission: float = 0.0,
    swap: float = 0.0,
) -> TradeRecord:
    return TradeRecord(
        entry_time=exit_time,
        exit_time=exit_time,
        position_id="P",
        symbol=symbol,
        side="buy",
        volume=volume,
        entry_price=1.0,
        exit_price=1.0,
        stop_loss=None,
        take_profit=None,
        commission=commission,
        swap=swap,
        gross_profit=net_profit if gross_profit is None else gross_profit,
        net_profit=net_profit,
    )


@pytest.fixture
def record():
    return make_record
