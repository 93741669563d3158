"""
TabularParser: turns an uploaded CSV / Excel / JSON file into row records.

A record is a flat ``dict`` of column name → scalar (str, int, float, bool,
None) or, for JSON sources, an array left as-is. The parser is stateless:
one instance can serve any number of uploads concurrently.
"""

from __future__ import annotations

import io
import json
import logging
import os
from typing import Any, Optional

import pandas as pd

from excel_analytics.services.coercion import is_present, try_parse_finite_number
from excel_analytics.services.errors import (
    EmptyFileError,
    FileTooLargeError,
    ParseError,
    UnsupportedFormatError,
)

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 5 * 1024 * 1024  # 5MB
MAX_FLATTEN_DEPTH = 10

SUPPORTED_FORMATS = ("csv", "xlsx", "xls", "json")

EXTENSION_FORMATS: dict[str, str] = {
    ".csv": "csv",
    ".xlsx": "xlsx",
    ".xls": "xls",
    ".json": "json",
}

MIME_FORMATS: dict[str, str] = {
    "text/csv": "csv",
    "application/csv": "csv",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": "xlsx",
    "application/vnd.ms-excel": "xls",
    "application/json": "json",
    "text/json": "json",
}

_ZIP_MAGIC = b"PK\x03\x04"
_OLE_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


def flatten_record(obj: dict, max_depth: int = MAX_FLATTEN_DEPTH, prefix: str = "", depth: int = 1) -> dict:
    """
    Flatten nested objects into ``parent_child`` keys.

    Arrays are leaves. An object sitting deeper than ``max_depth`` key
    segments is kept whole as the value of its (already long) key.
    """
    flat: dict[str, Any] = {}
    for key, value in obj.items():
        name = f"{prefix}{key}"
        if isinstance(value, dict) and depth < max_depth:
            flat.update(flatten_record(value, max_depth, f"{name}_", depth + 1))
        else:
            flat[name] = value
    return flat


def _is_empty_row(row: dict) -> bool:
    return not any(is_present(v) for v in row.values())


class TabularParser:
    def __init__(self, max_bytes: int = MAX_UPLOAD_BYTES, max_flatten_depth: int = MAX_FLATTEN_DEPTH):
        self.max_bytes = max_bytes
        self.max_flatten_depth = max_flatten_depth

    # ── Format resolution ─────────────────────────────────────────────

    def detect_format(
        self,
        content: bytes,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> str:
        """Extension first, then MIME type, then a look at the bytes."""
        if filename:
            ext = os.path.splitext(filename)[1].lower()
            if ext:
                if ext not in EXTENSION_FORMATS:
                    raise UnsupportedFormatError(
                        f"File type '{ext}' not supported. Upload CSV, Excel or JSON files."
                    )
                return EXTENSION_FORMATS[ext]

        if content_type:
            mime = content_type.split(";")[0].strip().lower()
            if mime in MIME_FORMATS:
                return MIME_FORMATS[mime]

        return self._sniff(content)

    def _sniff(self, content: bytes) -> str:
        if content.startswith(_ZIP_MAGIC):
            return "xlsx"
        if content.startswith(_OLE_MAGIC):
            return "xls"
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError:
            raise UnsupportedFormatError("Could not recognise the file format.")
        if "\x00" in text:
            raise UnsupportedFormatError("Could not recognise the file format.")
        if text.lstrip()[:1] in ("[", "{"):
            return "json"
        return "csv"

    # ── Entry point ───────────────────────────────────────────────────

    def parse(
        self,
        content: bytes,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
        fmt: Optional[str] = None,
        sheet_name: Optional[str] = None,
    ) -> list[dict]:
        if len(content) > self.max_bytes:
            raise FileTooLargeError(
                f"File too large ({len(content) / 1024 / 1024:.1f}MB). "
                f"Maximum {self.max_bytes / 1024 / 1024:.0f}MB."
            )
        if not content:
            raise EmptyFileError("Uploaded file is empty.")

        if fmt is not None:
            fmt = fmt.lower().lstrip(".")
            if fmt not in SUPPORTED_FORMATS:
                raise UnsupportedFormatError(f"Unsupported format '{fmt}'.")
        else:
            fmt = self.detect_format(content, filename, content_type)

        if fmt == "csv":
            records = self.parse_csv(content)
        elif fmt in ("xlsx", "xls"):
            records = self.parse_excel(content, fmt, sheet_name)
        else:
            records = self.parse_json(content)

        if not records:
            raise EmptyFileError("No data rows found in file.")

        logger.info(
            "Parsed %s file %s: %d rows, %d columns",
            fmt, filename or "<upload>", len(records), len(records[0]),
        )
        return records

    # ── CSV ───────────────────────────────────────────────────────────

    def parse_csv(self, content: bytes) -> list[dict]:
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ParseError(f"CSV file is not valid UTF-8 text: {exc}") from exc

        if not text.strip():
            raise EmptyFileError("CSV file is empty.")

        try:
            df = pd.read_csv(
                io.StringIO(text),
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
            )
        except pd.errors.EmptyDataError as exc:
            raise EmptyFileError("CSV file is empty.") from exc
        except pd.errors.ParserError as exc:
            raise ParseError(f"Failed to parse CSV: {exc}") from exc

        # Every data row one field longer than the header makes pandas
        # promote the first column to the index.
        if not isinstance(df.index, pd.RangeIndex):
            raise ParseError("Failed to parse CSV: data rows have more fields than the header.")

        headers = [str(c).strip() for c in df.columns]
        df = df.fillna("")

        records = []
        for values in df.itertuples(index=False, name=None):
            row = {}
            for header, raw in zip(headers, values):
                value = raw.strip()
                number = try_parse_finite_number(value)
                row[header] = number if number is not None else value
            if not _is_empty_row(row):
                records.append(row)
        return records

    # ── Excel ─────────────────────────────────────────────────────────

    def parse_excel(self, content: bytes, fmt: str = "xlsx", sheet_name: Optional[str] = None) -> list[dict]:
        """Read one sheet (the first unless ``sheet_name`` is given)."""
        engine = "xlrd" if fmt == "xls" else "openpyxl"
        try:
            df = pd.read_excel(
                io.BytesIO(content),
                sheet_name=sheet_name if sheet_name is not None else 0,
                dtype=object,
                engine=engine,
            )
        except ImportError:
            raise
        except Exception as exc:
            raise ParseError(f"Failed to parse Excel: {exc}") from exc

        headers = [str(c).strip() for c in df.columns]

        records = []
        for values in df.itertuples(index=False, name=None):
            row = {}
            for header, raw in zip(headers, values):
                row[header] = self._excel_cell(raw)
            if not _is_empty_row(row):
                records.append(row)
        return records

    @staticmethod
    def _excel_cell(raw: Any) -> Any:
        if raw is None or (isinstance(raw, float) and pd.isna(raw)) or raw is pd.NaT:
            return None
        if isinstance(raw, bool):
            return raw
        if hasattr(raw, "isoformat"):
            return raw.isoformat()
        if isinstance(raw, str):
            value = raw.strip()
            number = try_parse_finite_number(value)
            return number if number is not None else value
        number = try_parse_finite_number(raw)
        return number if number is not None else raw

    # ── JSON ──────────────────────────────────────────────────────────

    def parse_json(self, content: bytes) -> list[dict]:
        try:
            # NaN / Infinity literals are not finite numbers; treat them as missing.
            payload = json.loads(content.decode("utf-8-sig"), parse_constant=lambda _: None)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ParseError(f"Invalid JSON format: {exc}") from exc

        items = payload if isinstance(payload, list) else [payload]
        records = []
        for index, item in enumerate(items):
            if not isinstance(item, dict):
                raise ParseError(
                    f"Invalid JSON format: item {index} is {type(item).__name__}, expected an object."
                )
            records.append(flatten_record(item, self.max_flatten_depth))
        return records


def parse_file(content: bytes, filename: Optional[str] = None, content_type: Optional[str] = None) -> list[dict]:
    """Convenience wrapper using the default limits."""
    return TabularParser().parse(content, filename=filename, content_type=content_type)
