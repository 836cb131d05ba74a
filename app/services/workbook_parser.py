"""Scan run workbook sheets into parsed locations, machines and coil rows.

Sheet 0 is the control sheet (SKU code -> category lookup). Every later sheet
is a location sheet laid out as::

    Location: <name> (<d/m/yyyy>)
    <address>
    <anything> - Machine <code>
    <name>[, <category>][ (<machine type>)][ (<d/m/yyyy>)]
    (blank rows)
    ... | ... | ... | ... | Coil | SKU | Current | Par | Need | Forecast | Total | Notes
    <coil rows>
    (blank row ends the block)
"""

import enum
import logging
from typing import Callable, Dict, List, Optional, Sequence

from app.core.exceptions import UnexpectedSheetFormatError
from app.schemas.run_import import (
    ParsedCoilItemRow,
    ParsedLocation,
    ParsedMachineBlock,
    ParsedMachineLocation,
    ParsedMachineType,
    ParsedRun,
    ParsedRunWorkbook,
    WorkbookContext,
)
from app.services.pick_entries import derive_run_date, flatten_pick_entries
from app.services.text_normalizer import (
    LOCATION_PREFIX,
    cell_text,
    is_machine_header,
    is_row_empty,
    is_row_mostly_empty,
    normalize_string,
    parse_location_header,
    parse_machine_code,
    parse_machine_info,
    parse_optional_number,
    parse_sku,
)
from app.services.workbook_reader import SheetGrid

logger = logging.getLogger(__name__)

COIL_COLUMN = 4
SKU_COLUMN = 5
CURRENT_COLUMN = 6
PAR_COLUMN = 7
NEED_COLUMN = 8
FORECAST_COLUMN = 9
TOTAL_COLUMN = 10
NOTES_COLUMN = 11

CONTROL_CODE_HEADER = "item code"
CONTROL_CATEGORY_HEADER = "category"


class ScanState(enum.Enum):
    SEEKING_LOCATION_HEADER = "seeking_location_header"
    SEEKING_MACHINE_BLOCK = "seeking_machine_block"
    IN_MACHINE_INFO = "in_machine_info"
    SEEKING_COIL_HEADER = "seeking_coil_header"
    IN_COIL_ROWS = "in_coil_rows"
    DONE = "done"
    REJECTED = "rejected"


TERMINAL_STATES = {ScanState.DONE, ScanState.REJECTED}


def build_workbook_context(control_sheet: Optional[SheetGrid]) -> WorkbookContext:
    if control_sheet is None:
        return WorkbookContext()

    code_index = category_index = None
    header_row = None
    for index, row in enumerate(control_sheet.rows):
        labels = [(cell or "").strip().lower() for cell in row]
        if CONTROL_CODE_HEADER in labels and CONTROL_CATEGORY_HEADER in labels:
            code_index = labels.index(CONTROL_CODE_HEADER)
            category_index = labels.index(CONTROL_CATEGORY_HEADER)
            header_row = index
            break

    if header_row is None:
        return WorkbookContext()

    category_by_code: Dict[str, str] = {}
    fallback_category = None
    for row in control_sheet.rows[header_row + 1:]:
        code = cell_text(row, code_index)
        category = cell_text(row, category_index)
        if not code:
            continue
        if category:
            category_by_code[code.lower()] = category
            if fallback_category is None:
                fallback_category = category

    return WorkbookContext(
        category_by_code=category_by_code, fallback_category=fallback_category
    )


class LocationSheetScanner:
    """Finite-state scanner over the rows of one location sheet.

    Each state has one handler; a handler reads the row under the cursor,
    advances the cursor and returns the next state. ``scan`` runs handlers
    until a terminal state is reached.
    """

    def __init__(self, sheet: SheetGrid, context: WorkbookContext):
        self.sheet = sheet
        self.rows: List[List[str]] = sheet.rows
        self.context = context
        self.cursor = 0
        self.state = ScanState.SEEKING_LOCATION_HEADER
        self.location: Optional[ParsedLocation] = None
        self.machine: Optional[ParsedMachineBlock] = None
        self._handlers: Dict[ScanState, Callable[[], ScanState]] = {
            ScanState.SEEKING_LOCATION_HEADER: self._seek_location_header,
            ScanState.SEEKING_MACHINE_BLOCK: self._seek_machine_block,
            ScanState.IN_MACHINE_INFO: self._read_machine_info,
            ScanState.SEEKING_COIL_HEADER: self._seek_coil_header,
            ScanState.IN_COIL_ROWS: self._read_coil_row,
        }

    def scan(self) -> Optional[ParsedLocation]:
        while self.state not in TERMINAL_STATES:
            self.state = self._handlers[self.state]()
        if self.state is ScanState.REJECTED:
            return None
        return self.location

    # -- helpers ------------------------------------------------------------

    def _row(self) -> Sequence[str]:
        return self.rows[self.cursor]

    def _at_end(self) -> bool:
        return self.cursor >= len(self.rows)

    def _row_number(self) -> int:
        return self.sheet.source_row(self.cursor)

    def _skip_blank_rows(self) -> None:
        while not self._at_end() and is_row_empty(self._row()):
            self.cursor += 1

    def _fail(self, message: str, value: Optional[str] = None) -> UnexpectedSheetFormatError:
        return UnexpectedSheetFormatError(
            message, sheet=self.sheet.name, row=self._row_number(), value=value
        )

    def _close_machine(self) -> None:
        if self.machine is not None:
            self.location.machines.append(self.machine)
            self.machine = None

    # -- state handlers -----------------------------------------------------

    def _seek_location_header(self) -> ScanState:
        self._skip_blank_rows()
        if self._at_end():
            return ScanState.REJECTED

        header = cell_text(self._row(), 0)
        if not header.startswith(LOCATION_PREFIX):
            return ScanState.REJECTED

        name, run_date = parse_location_header(header)
        if not name:
            return ScanState.REJECTED
        self.cursor += 1

        address = None
        if not self._at_end() and not is_machine_header(cell_text(self._row(), 0)):
            address = normalize_string(cell_text(self._row(), 0))
            self.cursor += 1

        self.location = ParsedLocation(
            sheet_name=self.sheet.name,
            name=name,
            address=address,
            run_date=run_date,
            machines=[],
        )
        return ScanState.SEEKING_MACHINE_BLOCK

    def _seek_machine_block(self) -> ScanState:
        while not self._at_end():
            header = cell_text(self._row(), 0)
            if is_machine_header(header):
                code = parse_machine_code(header)
                if not code:
                    raise self._fail(
                        f'Unable to parse machine code for location "{self.location.name}" from "{header}"',
                        value=header,
                    )
                self.machine = ParsedMachineBlock(
                    code=code,
                    name="",
                    location=ParsedMachineLocation(
                        name=self.location.name, address=self.location.address
                    ),
                    coil_items=[],
                )
                self.cursor += 1
                return ScanState.IN_MACHINE_INFO
            self.cursor += 1
        return ScanState.DONE

    def _read_machine_info(self) -> ScanState:
        info = "" if self._at_end() else cell_text(self._row(), 0)
        name, category, machine_type_name, run_date = parse_machine_info(info)
        if not name:
            raise self._fail(
                f'Unexpected sheet format: machine "{self.machine.code}" has no name',
                value=info,
            )

        self.machine.name = name
        self.machine.run_date = run_date
        if machine_type_name or category:
            self.machine.machine_type = ParsedMachineType(
                name=machine_type_name or "", category=category
            )
        self.cursor += 1
        return ScanState.SEEKING_COIL_HEADER

    def _seek_coil_header(self) -> ScanState:
        self._skip_blank_rows()
        if self._at_end() or cell_text(self._row(), COIL_COLUMN).lower() != "coil":
            raise self._fail(
                f"Unexpected sheet format: missing coil header near row {self._row_number()}",
                value=None if self._at_end() else cell_text(self._row(), COIL_COLUMN),
            )
        self.cursor += 1
        return ScanState.IN_COIL_ROWS

    def _read_coil_row(self) -> ScanState:
        if self._at_end():
            self._close_machine()
            return ScanState.DONE

        row = self._row()
        if is_machine_header(cell_text(row, 0)):
            self._close_machine()
            return ScanState.SEEKING_MACHINE_BLOCK

        if is_row_mostly_empty(row):
            self._close_machine()
            self.cursor += 1
            self._skip_blank_rows()
            return ScanState.SEEKING_MACHINE_BLOCK

        coil_code = cell_text(row, COIL_COLUMN)
        sku_raw = cell_text(row, SKU_COLUMN)
        if coil_code or sku_raw:
            self.machine.coil_items.append(self._parse_coil_item(row))
        self.cursor += 1
        return ScanState.IN_COIL_ROWS

    def _parse_coil_item(self, row: Sequence[str]) -> ParsedCoilItemRow:
        return ParsedCoilItemRow(
            coil_code=cell_text(row, COIL_COLUMN),
            sku=parse_sku(cell_text(row, SKU_COLUMN), self.context),
            current=parse_optional_number(cell_text(row, CURRENT_COLUMN)),
            par=parse_optional_number(cell_text(row, PAR_COLUMN)),
            need=parse_optional_number(cell_text(row, NEED_COLUMN)),
            forecast=parse_optional_number(cell_text(row, FORECAST_COLUMN)),
            total=parse_optional_number(cell_text(row, TOTAL_COLUMN)),
            notes=normalize_string(cell_text(row, NOTES_COLUMN)),
        )


def parse_location_sheet(sheet: SheetGrid, context: WorkbookContext) -> Optional[ParsedLocation]:
    return LocationSheetScanner(sheet, context).scan()


def parse_run_workbook(sheets: List[SheetGrid]) -> ParsedRunWorkbook:
    if not sheets:
        return ParsedRunWorkbook(run=None)

    context = build_workbook_context(sheets[0])
    locations: List[ParsedLocation] = []
    for sheet in sheets[1:]:
        location = parse_location_sheet(sheet, context)
        if location is None:
            logger.info("run_workbook_sheet_skipped sheet=%s", sheet.name)
            continue
        locations.append(location)

    if not locations:
        return ParsedRunWorkbook(run=None)

    machines = [machine for location in locations for machine in location.machines]
    pick_entries = flatten_pick_entries(machines)
    logger.info(
        "run_workbook_parsed locations=%d machines=%d pick_entries=%d categories=%d",
        len(locations),
        len(machines),
        len(pick_entries),
        len(context.category_by_code),
    )
    return ParsedRunWorkbook(
        run=ParsedRun(
            run_date=derive_run_date(locations),
            locations=locations,
            pick_entries=pick_entries,
        )
    )
