"""Tests for header-row detection and layout resolution."""

import pytest

from tradelog.errors import MissingColumnsError
from tradelog.schema import (
    GENERAL_LAYOUT,
    MT5_LAYOUT,
    CompactSchema,
    ExplicitSchema,
    HeaderIndex,
    cell_text,
    find_header_row,
    missing_columns,
    resolve_schema,
    sample_rows,
)

from conftest import EXPLICIT_HEADER, MT5_HEADER


def test_find_header_row_skips_report_preamble():
    rows = [
        ["Trade History Report", None],
        ["Name:", "Kim"],
        [None, None],
        MT5_HEADER,
        ["2024.03.04 09:00:00", 1001],
    ]
    assert find_header_row(rows) == 3


def test_header_marker_may_be_a_substring():
    rows = [["no", "header"], ["포지션", "진입시간 (KST)"]]
    assert find_header_row(rows) == 1


def test_plain_time_needs_position_in_same_row():
    assert find_header_row([["시간", "가격"], ["a", "b"]]) == -1
    assert find_header_row([["시간", "포지션"]]) == 0


def test_time_marker_is_exact_match():
    # "거래시간" contains 시간 but is not the bare time marker
    assert find_header_row([["거래시간", "포지션"]]) == -1


def test_sample_rows_preview():
    rows = [["a", None, " b "], [None, None], [1.0, 2.5]]
    assert sample_rows(rows) == ["a, b", "(empty row)", "1, 2.5"]


def test_cell_text_renders_whole_floats_as_integers():
    assert cell_text(None) == ""
    assert cell_text(12345.0) == "12345"
    assert cell_text(1.25) == "1.25"
    assert cell_text("P1") == "P1"


def test_header_index_keeps_duplicates_in_order():
    header = HeaderIndex.from_row(MT5_HEADER)
    assert header.positions["시간"] == [0, 8]
    assert header.positions["가격"] == [5, 9]
    assert header.first("포지션") == 1
    assert header.first("실수익") is None


def test_resolve_compact_schema():
    plan = resolve_schema(MT5_HEADER)
    assert isinstance(plan, CompactSchema)
    assert plan.layout == MT5_LAYOUT
    assert plan.time_cols == (0, 8)
    assert plan.price_cols == (5, 9)
    assert plan.columns["entry_time"] == (0,)
    assert plan.columns["exit_price"] == (9,)
    assert plan.columns["stop_loss"] == (6,)
    assert plan.has_net_profit is False


def test_resolve_explicit_schema_with_typo_fallback():
    header = ["진입시간", "청산시간", "포지션", "전입가격", "청산가격", "수익", "실수익"]
    plan = resolve_schema(header)
    assert isinstance(plan, ExplicitSchema)
    assert plan.layout == GENERAL_LAYOUT
    assert plan.columns["entry_price"] == (3,)
    assert plan.columns["exit_time"] == (1,)
    assert plan.has_net_profit is True


def test_duplicate_time_columns_with_entry_time_header_are_explicit():
    header = MT5_HEADER + ["진입시간", "청산시간"]
    plan = resolve_schema(header)
    assert isinstance(plan, ExplicitSchema)


def test_missing_columns_for_explicit_layout():
    with pytest.raises(MissingColumnsError) as exc:
        resolve_schema(["진입시간", "청산시간", "포지션", "통화"], file_name="a.xlsx")
    err = exc.value
    assert err.layout == GENERAL_LAYOUT
    assert err.missing == ["수익"]
    assert err.found == ["진입시간", "청산시간", "포지션", "통화"]
    assert str(err).startswith("[a.xlsx] ")
    assert "수익" in str(err)


def test_single_time_column_falls_back_to_explicit_requirements():
    with pytest.raises(MissingColumnsError) as exc:
        resolve_schema(["시간", "포지션", "가격", "가격", "수익"])
    assert exc.value.missing == ["진입시간", "청산시간"]


def test_missing_columns_for_compact_layout():
    with pytest.raises(MissingColumnsError) as exc:
        resolve_schema(["시간", "포지션", "가격", "시간", "가격"])
    err = exc.value
    assert err.layout == MT5_LAYOUT
    assert err.missing == ["수익"]
    assert err.to_dict()["context"]["layout"] == "MT5"


def test_compact_requirements_count_entry_and_exit_columns():
    header = HeaderIndex.from_row(["시간", "포지션", "가격", "시간", "수익"])
    assert missing_columns(header, MT5_LAYOUT) == ["가격 (2 required: entry/exit)"]

    header = HeaderIndex.from_row(["시간", "포지션", "수익"])
    assert missing_columns(header, MT5_LAYOUT) == [
        "가격",
        "시간 (2 required: entry/exit)",
        "가격 (2 required: entry/exit)",
    ]


def test_plans_carry_layout_as_a_field():
    header = HeaderIndex.from_row(MT5_HEADER)
    with pytest.raises(TypeError):
        CompactSchema(header=header, columns={})
    with pytest.raises(TypeError):
        ExplicitSchema(header=header, columns={}, layout=MT5_LAYOUT)

    plan = resolve_schema(MT5_HEADER)
    assert "layout='MT5'" in repr(plan)
    assert resolve_schema(EXPLICIT_HEADER) != plan


def test_explicit_header_resolves_every_optional_field():
    plan = resolve_schema(EXPLICIT_HEADER)
    assert plan.columns["symbol"] == (3,)
    assert plan.columns["note"] == ()
