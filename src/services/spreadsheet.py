"""Spreadsheet codec for the guestbook document.

The guestbook is an .xlsx workbook whose first worksheet holds a fixed
header row followed by one row per entry. openpyxl does the actual
(de)serialization; this module only knows the row layout.
"""

import io
import zipfile
from datetime import date, datetime
from typing import Any, Iterator, Sequence

from openpyxl import Workbook, load_workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.utils.exceptions import InvalidFileException

from src.config import GUESTBOOK_HEADER, GUESTBOOK_SHEET_TITLE


XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class SpreadsheetDecodeError(Exception):
    """Raised when downloaded bytes are not a readable workbook."""


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


class GuestbookWorkbook:
    """Handle on an in-memory guestbook workbook."""

    def __init__(self, workbook: Workbook):
        self.workbook = workbook
        self.worksheet = workbook.worksheets[0]

    @classmethod
    def new(cls) -> "GuestbookWorkbook":
        """Create a workbook holding only the header row."""
        workbook = Workbook()
        worksheet = workbook.active
        worksheet.title = GUESTBOOK_SHEET_TITLE
        worksheet.append(list(GUESTBOOK_HEADER))
        return cls(workbook)

    @classmethod
    def load(cls, data: bytes) -> "GuestbookWorkbook":
        """Decode workbook bytes.

        Raises:
            SpreadsheetDecodeError: If data is not a valid .xlsx workbook
        """
        try:
            workbook = load_workbook(io.BytesIO(data))
        except (
            InvalidFileException,
            zipfile.BadZipFile,
            KeyError,
            ValueError,
            OSError,
            SyntaxError,
        ) as e:
            raise SpreadsheetDecodeError(f"Failed to decode workbook: {str(e)}") from e
        if not workbook.worksheets:
            raise SpreadsheetDecodeError("Workbook has no worksheets")
        return cls(workbook)

    def append_row(self, values: Sequence[Any]) -> None:
        """Append one row after the last used row.

        Control characters xlsx cannot store are dropped, and text starting
        with "=" is kept as text rather than becoming a formula.
        """
        cleaned = [
            ILLEGAL_CHARACTERS_RE.sub("", value) if isinstance(value, str) else value
            for value in values
        ]
        self.worksheet.append(cleaned)
        for cell in self.worksheet[self.worksheet.max_row]:
            if cell.data_type == "f":
                cell.data_type = "s"

    def data_rows(self) -> Iterator[tuple[str, ...]]:
        """Yield every row after the header as a tuple of strings.

        Rows shorter than the header are padded with empty strings.
        """
        width = len(GUESTBOOK_HEADER)
        for row in self.worksheet.iter_rows(min_row=2, values_only=True):
            cells = [_cell_text(value) for value in row[:width]]
            cells.extend([""] * (width - len(cells)))
            yield tuple(cells)

    @property
    def row_count(self) -> int:
        """Number of rows including the header."""
        return self.worksheet.max_row

    def to_bytes(self) -> bytes:
        buffer = io.BytesIO()
        self.workbook.save(buffer)
        return buffer.getvalue()
