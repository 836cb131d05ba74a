"""Decode an uploaded ``.xlsx`` buffer into plain string grids, one per sheet."""

from dataclasses import dataclass, field
from datetime import date, datetime
from io import BytesIO
from typing import Any, List

from openpyxl import load_workbook

from app.core.exceptions import UnexpectedSheetFormatError


@dataclass
class SheetGrid:
    """Non-blank rows of one worksheet.

    ``row_numbers[i]`` is the 1-based worksheet row that ``rows[i]`` came
    from. Grids built by hand may leave it empty, in which case rows are
    numbered by position.
    """

    name: str
    rows: List[List[str]] = field(default_factory=list)
    row_numbers: List[int] = field(default_factory=list)

    def source_row(self, index: int) -> int:
        if index < len(self.row_numbers):
            return self.row_numbers[index]
        if self.row_numbers:
            return self.row_numbers[-1] + (index - len(self.row_numbers) + 1)
        return index + 1


def _cell_to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return value.strftime("%d/%m/%Y")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def read_workbook(payload: bytes) -> List[SheetGrid]:
    try:
        workbook = load_workbook(filename=BytesIO(payload), data_only=True)
    except Exception as exc:
        raise UnexpectedSheetFormatError(f"Invalid workbook: {exc}") from exc

    try:
        sheets = []
        for worksheet in workbook.worksheets:
            rows: List[List[str]] = []
            row_numbers: List[int] = []
            # Fully blank rows are spacing only; they never end a coil table.
            for number, values in enumerate(worksheet.iter_rows(values_only=True), start=1):
                cells = [_cell_to_text(value) for value in values]
                if not any(cells):
                    continue
                rows.append(cells)
                row_numbers.append(number)
            width = max((len(row) for row in rows), default=0)
            sheets.append(
                SheetGrid(
                    name=worksheet.title,
                    rows=[row + [""] * (width - len(row)) for row in rows],
                    row_numbers=row_numbers,
                )
            )
        return sheets
    finally:
        workbook.close()
