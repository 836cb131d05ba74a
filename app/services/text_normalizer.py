"""Pure helpers that turn workbook cell text into structured values.

Nothing in here touches the database or keeps state between calls; the
workbook-wide category lookup is passed in explicitly as a ``WorkbookContext``.
"""

import math
import re
from datetime import date
from typing import Any, Optional, Sequence, Tuple

from app.schemas.run_import import ParsedSku, WorkbookContext

LOCATION_PREFIX = "Location:"
MACHINE_HEADER_MARKER = " - Machine "
SKU_SEPARATOR = " - "

_NULL_NUMBER_TOKENS = {"", "-", "n/a"}
_DATE_RE = re.compile(r"^\s*(\d{1,2})/(\d{1,2})/(\d{4})\s*$")
_LOCATION_HEADER_RE = re.compile(r"^(?P<name>.+?)\s*\((?P<date>[^)]+)\)$")
_TRAILING_DATE_RE = re.compile(r"\((\d{1,2}/\d{1,2}/\d{4})\)\s*$")
_TRAILING_PAREN_RE = re.compile(r"\(([^)]+)\)\s*$")


def normalize_string(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def cell_text(row: Optional[Sequence[Any]], index: int) -> str:
    if not row or index >= len(row):
        return ""
    return normalize_string(row[index]) or ""


def is_row_empty(row: Optional[Sequence[Any]]) -> bool:
    if not row:
        return True
    return all(normalize_string(cell) is None for cell in row)


def is_row_mostly_empty(row: Optional[Sequence[Any]]) -> bool:
    """True when the coil table columns (0-11) carry nothing."""
    if not row:
        return True
    return all(normalize_string(cell) is None for cell in row[:12])


def parse_optional_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None

    text = str(value).strip()
    if text.lower() in _NULL_NUMBER_TOKENS:
        return None
    try:
        number = float(text.replace(",", ""))
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_date(value: Optional[str]) -> Optional[date]:
    """Parse a ``d/m/yyyy`` string; anything else (or an impossible date) is None."""
    if not value:
        return None
    match = _DATE_RE.match(value)
    if not match:
        return None
    day, month, year = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_sku(value: Optional[str], context: Optional[WorkbookContext] = None) -> ParsedSku:
    context = context or WorkbookContext()
    parts = [part.strip() for part in (value or "").split(SKU_SEPARATOR)]
    parts = [part for part in parts if part]

    if not parts:
        return ParsedSku(code="", name="", type=None, category=None)

    code, others = parts[0], parts[1:]
    category = context.category_for(code)

    if not others:
        return ParsedSku(code=code, name="", type=None, category=category)
    if len(others) == 1:
        return ParsedSku(code=code, name=others[0], type=None, category=category)

    return ParsedSku(
        code=code,
        name=SKU_SEPARATOR.join(others[:-1]),
        type=others[-1],
        category=category,
    )


def parse_location_header(value: str) -> Tuple[str, Optional[date]]:
    """Split ``Location: <name> (<date>)`` into the name and run date."""
    trimmed = value.replace(LOCATION_PREFIX, "", 1).strip()
    match = _LOCATION_HEADER_RE.match(trimmed)
    if not match:
        return trimmed, None
    return match.group("name").strip(), parse_date(match.group("date").strip())


def is_machine_header(value: str) -> bool:
    """Cell text is trimmed, so a header with nothing after the marker ends in " - Machine"."""
    return MACHINE_HEADER_MARKER in value or value.endswith(MACHINE_HEADER_MARKER.rstrip())


def parse_machine_code(value: str) -> str:
    """Text after the machine marker; empty string when there is none."""
    if MACHINE_HEADER_MARKER not in value:
        return ""
    after_marker = value.split(MACHINE_HEADER_MARKER, 1)[1]
    return after_marker.strip()


def parse_machine_info(value: str) -> Tuple[str, Optional[str], Optional[str], Optional[date]]:
    """Parse ``<name>[, <category>][ (<type>)][ (<d/m/yyyy>)]``.

    Returns ``(name, category, machine_type_name, run_date)``.
    """
    remaining = (value or "").strip()
    if not remaining:
        return "", None, None, None

    run_date = None
    date_match = _TRAILING_DATE_RE.search(remaining)
    if date_match:
        # An impossible date such as 31/02 is still dropped, leaving run_date null.
        run_date = parse_date(date_match.group(1))
        remaining = remaining[: date_match.start()].strip()

    machine_type_name = None
    type_match = _TRAILING_PAREN_RE.search(remaining)
    if type_match:
        machine_type_name = type_match.group(1).strip() or None
        remaining = remaining[: type_match.start()].strip()

    name_parts = [part.strip() for part in remaining.split(",")]
    name_parts = [part for part in name_parts if part]
    if not name_parts:
        return "", None, machine_type_name, run_date

    category = ", ".join(name_parts[1:]) or None
    return name_parts[0], category, machine_type_name, run_date
