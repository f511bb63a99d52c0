"""Tests for the Flask JSON endpoints."""

import io

import pytest

from tradelog.app import allowed_file, create_app
from tradelog.config import Settings

from conftest import EXPLICIT_HEADER, build_workbook


@pytest.fixture
def client():
    app = create_app(Settings(secret_key="test", log_level="WARNING"))
    app.config["TESTING"] = True
    return app.test_client()


def _trades_workbook() -> bytes:
    return build_workbook([
        EXPLICIT_HEADER,
        ["2024.01.01 09:00:00", "2024.01.01 10:00:00", "P1", "EURUSD", "buy", 1, 1.1, 1.105, -2, 0, 50],
        ["2024.01.09 09:00:00", "2024.01.09 10:00:00", "P2", "XAUUSD", "sell", 1, 2000, 2010, -3, 0, -20],
    ])


def _upload(client, url, payload: bytes, name="trades.xlsx", **form):
    data = {"file": (io.BytesIO(payload), name), **form}
    return client.post(url, data=data, content_type="multipart/form-data")


def test_allowed_file():
    assert allowed_file("history.XLSX")
    assert allowed_file("history.csv")
    assert not allowed_file("history.pdf")
    assert not allowed_file("history")


def test_analyze_full_range(client):
    resp = _upload(client, "/api/analyze", _trades_workbook())
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["file_name"] == "trades.xlsx"
    assert body["record_count"] == 2
    assert body["date_bounds"] == {"min": "2024-01-01", "max": "2024-01-09"}
    assert body["date_range"]["is_full_range"] is True
    summary = body["analysis"]["summary"]
    assert summary["total_trades"] == 2
    assert summary["total_profit"] == 25
    assert [d["day"] for d in body["analysis"]["daily"]] == ["2024-01-01", "2024-01-09"]


def test_analyze_with_date_range(client):
    resp = _upload(client, "/api/analyze", _trades_workbook(), start_date="2024-01-05")
    body = resp.get_json()
    assert body["date_range"]["is_full_range"] is False
    assert body["analysis"]["summary"]["total_trades"] == 1
    assert body["analysis"]["by_symbol"][0]["symbol"] == "XAUUSD"


def test_analyze_reports_parse_errors(client):
    payload = build_workbook([EXPLICIT_HEADER, ["2024.01.01 09:00:00", None, "P1", "EURUSD", "buy", 1, 1, 1, 0, 0, 0]])
    resp = _upload(client, "/api/analyze", payload, name="empty.xlsx")
    assert resp.status_code == 422
    body = resp.get_json()
    assert body["error"] == "NoValidRecordsError"
    assert body["file_name"] == "empty.xlsx"
    assert body["context"] == {"total_rows": 1, "skipped_rows": 1}


def test_analyze_requires_a_file(client):
    resp = client.post("/api/analyze", data={}, content_type="multipart/form-data")
    assert resp.status_code == 400


def test_analyze_rejects_other_extensions(client):
    resp = _upload(client, "/api/analyze", b"%PDF-1.4", name="report.pdf")
    assert resp.status_code == 400


def test_preview(client):
    resp = _upload(client, "/api/preview", _trades_workbook(), max_rows="1")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["headers"] == EXPLICIT_HEADER
    assert body["total_rows"] == 2
    assert len(body["rows"]) == 1


def test_google_sheet_endpoint(client):
    resp = client.get("/api/google-sheet", query_string={
        "url": "https://docs.google.com/spreadsheets/d/abc123/edit#gid=42",
    })
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["spreadsheet_id"] == "abc123"
    assert body["gid"] == "42"
    assert body["export_url"].endswith("/d/abc123/export?format=xlsx&gid=42")

    bad = client.get("/api/google-sheet", query_string={"url": "https://example.com"})
    assert bad.status_code == 400
