"""
app.py
------

Thin Flask JSON API in front of the parser and the analytics module. The
dashboard uploads a trade-history export and receives every derived view
in one response; rendering stays on the client.

To run the application:
    1. Install the package (``pip install -e .``).
    2. Execute ``python -m tradelog.app``.
    3. POST a file to http://localhost:5004/api/analyze.
"""

from typing import Optional

from flask import Flask, jsonify, request
from werkzeug.utils import secure_filename

from .analytics import analyze, exit_date_bounds
from .config import Settings, load_settings
from .errors import TradeFileError
from .logging_utils import setup_logging
from .models import DateRange
from .parser import (
    get_excel_preview,
    google_sheet_export_url,
    parse_google_sheet_url,
    parse_trade_file,
)

ALLOWED_EXTENSIONS = {"xlsx", "xls", "csv"}


def allowed_file(filename: str) -> bool:
    return "." in filename and filename.rsplit(".", 1)[1].lower() in ALLOWED_EXTENSIONS


def _uploaded_file():
    """(file_name, bytes) from the multipart 'file' field, or an error response."""
    f = request.files.get("file")
    if not f or f.filename == "":
        return None, (jsonify({"error": "Please choose a file."}), 400)
    if not allowed_file(f.filename):
        return None, (jsonify({"error": "Only .xlsx, .xls and .csv files are supported."}), 400)
    return (secure_filename(f.filename) or "upload", f.read()), None


def create_app(settings: Optional[Settings] = None) -> Flask:
    settings = settings or load_settings()
    setup_logging(settings.log_level)

    app = Flask(__name__)
    app.config["SECRET_KEY"] = settings.secret_key
    app.config["MAX_CONTENT_LENGTH"] = settings.max_content_length

    @app.errorhandler(TradeFileError)
    def handle_trade_file_error(err: TradeFileError):
        return jsonify(err.to_dict()), 422

    # ---------- routes ----------
    @app.route("/api/analyze", methods=["POST"])
    def api_analyze():
        upload, error = _uploaded_file()
        if error:
            return error
        file_name, buffer = upload

        records = parse_trade_file(buffer, file_name=file_name)
        date_range = DateRange.between(
            request.form.get("start_date", "").strip(),
            request.form.get("end_date", "").strip(),
        )
        first, last = exit_date_bounds(records)
        return jsonify({
            "file_name": file_name,
            "record_count": len(records),
            "date_bounds": {"min": first, "max": last},
            "date_range": {
                "start_date": date_range.start_date,
                "end_date": date_range.end_date,
                "is_full_range": date_range.is_full_range,
            },
            "analysis": analyze(records, date_range),
        })

    @app.route("/api/preview", methods=["POST"])
    def api_preview():
        upload, error = _uploaded_file()
        if error:
            return error
        file_name, buffer = upload
        max_rows = request.form.get("max_rows", settings.preview_rows, type=int)
        preview = get_excel_preview(buffer, max_rows=max_rows)
        return jsonify({"file_name": file_name, **preview.to_row()})

    @app.route("/api/google-sheet")
    def api_google_sheet():
        url = (request.args.get("url") or "").strip()
        parsed = parse_google_sheet_url(url)
        if parsed is None:
            return jsonify({"error": "Not a valid Google Sheets URL."}), 400
        spreadsheet_id, gid = parsed
        return jsonify({
            "spreadsheet_id": spreadsheet_id,
            "gid": gid,
            "export_url": google_sheet_export_url(spreadsheet_id, gid),
        })

    return app


# Run directly
if __name__ == "__main__":
    app = create_app()
    app.run(host="0.0.0.0", port=5004, debug=True, use_reloader=False)
