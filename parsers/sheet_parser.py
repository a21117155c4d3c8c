"""
Spreadsheet parser for supplier price and cost lists.

Turns a CSV export (or an uploaded .xlsx) into headers plus rows of
header -> cell mappings. Supplier sheets often start with a title block,
so the header row is detected rather than assumed to be the first line.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from io import BytesIO, StringIO
from typing import Optional, Union
import csv
import math
import numbers
import re
import structlog

import pandas as pd

from config.matching import HEADER_ROW_KEYWORDS
from exceptions import SheetParseError
from utils.text_utils import normalize

logger = structlog.get_logger(__name__)

CellValue = Union[str, int, float]

_HAS_LETTERS = re.compile(r"[a-zA-Z\u00C0-\u024F]")
_NOT_NUMERIC = re.compile(r"[^0-9.,-]")
_NOT_DIGIT = re.compile(r"[^0-9]")


@dataclass
class ParsedSheet:
    """Header row and data rows of a sheet."""
    headers: list[str] = field(default_factory=list)
    rows: list[dict[str, CellValue]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True if no header row was found."""
        return not self.headers


# ===================
# NUMBERS
# ===================

def smart_parse_int(value: Optional[CellValue]) -> Optional[int]:
    """
    Parse a currency cell into integer units.

    - 150000 → 150000
    - "$ 150.000" → 150000 (dot + 3 digits is a thousands separator)
    - "1.234,56" → 1235 (both present: the last one is the decimal mark)
    - "1,234.56" → 1235
    - "232588.5" → 232589
    - "BAÚL BERLIM 1,40" → None (letters mean it's a label, not a number)

    Decimals are rounded half-up.

    Returns:
        Integer value, or None if the cell is not a number
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float, Decimal)):
        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return None
        return _round_units(Decimal(str(value)))

    text = str(value).strip()
    if not text or _HAS_LETTERS.search(text):
        return None

    # Drop currency symbols and spaces
    text = _NOT_NUMERIC.sub("", text)
    if not text:
        return None

    last_dot = text.rfind(".")
    last_comma = text.rfind(",")

    if last_dot > -1 and last_comma > -1:
        decimal_idx = max(last_dot, last_comma)
        integer, decimals = text[:decimal_idx], text[decimal_idx + 1:]
    elif last_dot > -1 or last_comma > -1:
        separator_idx = max(last_dot, last_comma)
        after = text[separator_idx + 1:]
        if len(after) == 3:
            integer, decimals = text, ""
        else:
            integer, decimals = text[:separator_idx], after
    else:
        integer, decimals = text, ""

    sign = "-" if integer.startswith("-") else ""
    integer = _NOT_DIGIT.sub("", integer)
    decimals = _NOT_DIGIT.sub("", decimals)
    if not integer and not decimals:
        return None

    try:
        number = Decimal(f"{sign}{integer or '0'}.{decimals or '0'}")
    except InvalidOperation:
        return None

    return _round_units(number)


def _round_units(number: Decimal) -> int:
    return int(number.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# ===================
# SHEETS
# ===================

def parse_csv(csv_text: Optional[str]) -> ParsedSheet:
    """
    Parse CSV text exported from a spreadsheet.

    Args:
        csv_text: Raw CSV

    Returns:
        ParsedSheet (empty if the text has no content)

    Raises:
        SheetParseError: If the CSV is malformed
    """
    if not csv_text or not csv_text.strip():
        return ParsedSheet()

    csv_text = csv_text.lstrip("\ufeff")

    try:
        # pandas sizes the frame from the first line; title rows are often
        # narrower than the header, so name every column up front
        width = max((len(record) for record in csv.reader(StringIO(csv_text))), default=0)
        if width == 0:
            return ParsedSheet()
        df = pd.read_csv(
            StringIO(csv_text),
            header=None,
            names=range(width),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError:
        return ParsedSheet()
    except Exception as e:
        logger.error("csv_read_failed", error=str(e))
        raise SheetParseError(
            message="Failed to read CSV data",
            details={"original_error": str(e)}
        )

    return _sheet_from_frame(df)


def parse_sheet_file(content: bytes, filename: str) -> ParsedSheet:
    """
    Parse an uploaded .csv or .xlsx file (first worksheet).

    Raises:
        SheetParseError: If the file type is unsupported or unreadable
    """
    lower_name = (filename or "").lower()
    logger.info("parsing_sheet_file", filename=filename, size=len(content))

    if lower_name.endswith(".csv"):
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError:
            text = content.decode("latin-1")
        return parse_csv(text)

    if lower_name.endswith(".xlsx"):
        try:
            df = pd.read_excel(
                BytesIO(content),
                sheet_name=0,
                header=None,
                dtype=object,
                engine="openpyxl",
            )
        except Exception as e:
            logger.error("excel_read_failed", filename=filename, error=str(e))
            raise SheetParseError(
                message="Failed to read Excel file",
                details={"original_error": str(e)}
            )
        return _sheet_from_frame(df)

    raise SheetParseError(
        message="File must be a .csv or .xlsx file",
        details={"filename": filename}
    )


def _sheet_from_frame(df: pd.DataFrame) -> ParsedSheet:
    """Detect the header row and build header -> cell mappings."""
    grid = [
        [_clean_cell(cell) for cell in record]
        for record in df.itertuples(index=False, name=None)
    ]

    header_index = _find_header_row(grid)
    if header_index is None:
        return ParsedSheet()

    headers = [str(cell).strip() for cell in grid[header_index]]

    rows = []
    for record in grid[header_index + 1:]:
        if all(_is_blank(cell) for cell in record):
            continue
        row: dict[str, CellValue] = {}
        for idx, header in enumerate(headers):
            # Unnamed columns can't be resolved; first duplicate wins
            if not header or header in row:
                continue
            row[header] = record[idx] if idx < len(record) else ""
        rows.append(row)

    logger.info(
        "sheet_parsed",
        header_row=header_index,
        headers=headers,
        row_count=len(rows)
    )

    return ParsedSheet(headers=headers, rows=rows)


def _find_header_row(grid: list[list[CellValue]]) -> Optional[int]:
    """
    Most likely header row.

    1. First row containing a known header keyword
    2. First row with at least two non-empty cells
    3. First non-empty row
    """
    for idx, record in enumerate(grid):
        if any(normalize(cell).lower() in HEADER_ROW_KEYWORDS for cell in record):
            return idx

    for idx, record in enumerate(grid):
        if sum(1 for cell in record if not _is_blank(cell)) >= 2:
            return idx

    for idx, record in enumerate(grid):
        if any(not _is_blank(cell) for cell in record):
            return idx

    return None


def _clean_cell(cell) -> CellValue:
    if cell is None:
        return ""
    if isinstance(cell, float):
        if math.isnan(cell):
            return ""
        return int(cell) if cell.is_integer() else cell
    if isinstance(cell, numbers.Integral) and not isinstance(cell, bool):
        return int(cell)
    return str(cell).replace("\ufeff", "").strip()


def _is_blank(cell: CellValue) -> bool:
    return isinstance(cell, str) and cell == ""
