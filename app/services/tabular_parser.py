"""
app/services/tabular_parser.py

Turns uploaded CSV/Excel bytes into a header list plus row documents.

CSV is read with the stdlib streaming reader so values stay as the text the
file holds; Excel workbooks go through pandas/openpyxl and keep native cell
types. Completely empty rows are dropped in both cases.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

from app.domain.row_document import RowDocument, is_blank, normalize_cell

logger = logging.getLogger(__name__)

EXCEL_EXTENSIONS = {".xls", ".xlsx"}


class TabularParseError(ValueError):
    """
    Raised when an uploaded file cannot be read as a table.
    """


@dataclass(frozen=True)
class ParsedTable:
    headers: list[str]
    rows: list[RowDocument] = field(default_factory=list)
    skipped_empty_rows: int = 0

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return len(self.headers)


def _clean_headers(raw_headers: list[object]) -> list[str]:
    headers = [str(header).strip() if header is not None else "" for header in raw_headers]
    if not headers or all(header == "" for header in headers):
        raise TabularParseError("Header row is missing.")
    blank_positions = [str(index + 1) for index, header in enumerate(headers) if header == ""]
    if blank_positions:
        raise TabularParseError(f"Header row has empty column names at positions {', '.join(blank_positions)}.")
    duplicates = sorted({header for header in headers if headers.count(header) > 1})
    if duplicates:
        raise TabularParseError(f"Duplicate column names: {', '.join(duplicates)}.")
    return headers


class TabularParser:
    """
    Stateless CSV/Excel reader.
    """

    def parse(self, *, file_name: str, content: bytes) -> ParsedTable:
        extension = Path(file_name).suffix.lower()
        if extension in EXCEL_EXTENSIONS:
            return self.parse_excel(content)
        return self.parse_csv(content)

    def parse_csv(self, content: bytes) -> ParsedTable:
        text_stream = io.TextIOWrapper(io.BytesIO(content), encoding="utf-8-sig", newline="")
        try:
            reader = csv.reader(text_stream)
            try:
                raw_headers = next(reader)
            except StopIteration as exc:
                raise TabularParseError("CSV file is empty.") from exc
            headers = _clean_headers(list(raw_headers))

            rows: list[RowDocument] = []
            skipped = 0
            for line_number, values in enumerate(reader, start=2):
                if all(value.strip() == "" for value in values):
                    skipped += 1
                    continue
                if len(values) > len(headers):
                    raise TabularParseError(
                        f"Line {line_number} has {len(values)} values but the header has {len(headers)} columns."
                    )
                padded = values + [""] * (len(headers) - len(values))
                rows.append(
                    {
                        header: (None if value.strip() == "" else value.strip())
                        for header, value in zip(headers, padded)
                    }
                )
        except UnicodeDecodeError as exc:
            raise TabularParseError("CSV must be UTF-8 encoded.") from exc
        except csv.Error as exc:
            raise TabularParseError(f"Invalid CSV format: {exc}") from exc
        finally:
            text_stream.detach()

        return ParsedTable(headers=headers, rows=rows, skipped_empty_rows=skipped)

    def parse_excel(self, content: bytes) -> ParsedTable:
        try:
            frame = pd.read_excel(io.BytesIO(content), sheet_name=0, dtype=object)
        except Exception as exc:
            raise TabularParseError(f"Failed to read Excel workbook: {exc}") from exc

        headers = _clean_headers([None if str(column).startswith("Unnamed:") else column for column in frame.columns])
        frame = frame.astype(object).where(pd.notnull(frame), None)

        rows: list[RowDocument] = []
        skipped = 0
        for record in frame.to_dict(orient="records"):
            document = {str(key).strip(): normalize_cell(value) for key, value in record.items()}
            if all(is_blank(value) for value in document.values()):
                skipped += 1
                continue
            rows.append(document)

        logger.debug("Excel workbook parsed columns=%d rows=%d", len(headers), len(rows))
        return ParsedTable(headers=headers, rows=rows, skipped_empty_rows=skipped)
