"""
errors.py
---------

Exceptions raised while reading a trade-history file. Every error carries
a human readable message (shown to the user as-is) plus the structured
context the message was built from, so callers can render it differently.
"""

from typing import Any, Dict, List, Optional


class TradeFileError(Exception):
    """Base class for unrecoverable ingestion errors."""

    def __init__(self, message: str, file_name: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.file_name = file_name

    def __str__(self) -> str:
        prefix = f"[{self.file_name}] " if self.file_name else ""
        return f"{prefix}{self.message}"

    def context(self) -> Dict[str, Any]:
        """Structured details for API responses."""
        return {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": str(self),
            "file_name": self.file_name,
            "context": self.context(),
        }


class WorkbookReadError(TradeFileError):
    """The buffer is neither a spreadsheet workbook nor delimited text."""


class InsufficientRowsError(TradeFileError):
    def __init__(self, row_count: int, file_name: Optional[str] = None) -> None:
        self.row_count = row_count
        super().__init__(
            f"The sheet does not contain enough data (found {row_count} rows, need at least 2).",
            file_name,
        )

    def context(self) -> Dict[str, Any]:
        return {"row_count": self.row_count}


class HeaderNotFoundError(TradeFileError):
    def __init__(self, sample_rows: List[str], supported_layouts: List[str],
                 file_name: Optional[str] = None) -> None:
        self.sample_rows = sample_rows
        self.supported_layouts = supported_layouts
        preview = "\n".join(f"  row {i + 1}: {text}" for i, text in enumerate(sample_rows))
        layouts = "\n".join(f"  - {layout}" for layout in supported_layouts)
        super().__init__(
            "Could not recognize the column header row.\n\n"
            f"Supported layouts:\n{layouts}\n\n"
            f"First {len(sample_rows)} rows of the file:\n{preview}",
            file_name,
        )

    def context(self) -> Dict[str, Any]:
        return {"sample_rows": list(self.sample_rows)}


class MissingColumnsError(TradeFileError):
    def __init__(self, layout: str, missing: List[str], found: List[str],
                 required: str, file_name: Optional[str] = None) -> None:
        self.layout = layout
        self.missing = missing
        self.found = found
        self.required = required
        super().__init__(
            "Required columns are missing.\n\n"
            f"Missing: {', '.join(missing)}\n\n"
            f"Columns found in the file:\n{', '.join(found) or '(no columns)'}\n\n"
            f"Required for the {layout} layout:\n  - {required}",
            file_name,
        )

    def context(self) -> Dict[str, Any]:
        return {"layout": self.layout, "missing": list(self.missing), "found": list(self.found)}


class NoValidRecordsError(TradeFileError):
    def __init__(self, total_rows: int, skipped_rows: int,
                 file_name: Optional[str] = None) -> None:
        self.total_rows = total_rows
        self.skipped_rows = skipped_rows
        if total_rows == 0:
            reason = "No data rows were found below the header row."
        else:
            reason = "Every data row was filtered out because its profit is 0."
        super().__init__(
            "No valid trade records were found.\n"
            f"{reason}\n\n"
            f"Data rows: {total_rows}\n"
            f"Skipped rows (profit = 0): {skipped_rows}\n\n"
            "Check that:\n"
            "  - the profit column (수익) contains non-zero values\n"
            "  - dates use a supported format (e.g. 2024.01.01 12:00:00)",
            file_name,
        )

    def context(self) -> Dict[str, Any]:
        return {"total_rows": self.total_rows, "skipped_rows": self.skipped_rows}
