"""
Unit tests for the run workbook scanner.

Covers:
  - Control sheet category lookup
  - Location sheet acceptance / rejection
  - Machine blocks, coil rows and block termination
  - Fatal structural errors vs. degraded field values
  - Pick-entry flattening and run date derivation
"""

from datetime import date

import pytest

from app.core.exceptions import UnexpectedSheetFormatError
from app.schemas.run_import import WorkbookContext
from app.services.workbook_parser import (
    LocationSheetScanner,
    ScanState,
    build_workbook_context,
    parse_location_sheet,
    parse_run_workbook,
)
from app.services.workbook_reader import SheetGrid
from tests.helpers import (
    COIL_HEADER,
    blank,
    coil_row,
    control_sheet,
    location_sheet,
    machine_block,
    pad,
    sample_sheets,
)


# ===========================================================================
# Control sheet
# ===========================================================================


class TestWorkbookContext:
    def test_builds_lookup_and_first_category_fallback(self):
        context = build_workbook_context(control_sheet({"SKU1": "Snacks", "SKU2": "Drinks"}))
        assert context.category_by_code == {"sku1": "Snacks", "sku2": "Drinks"}
        assert context.fallback_category == "Snacks"

    def test_fallback_follows_row_order(self):
        sheet = SheetGrid(
            name="Summary",
            rows=[
                pad("Category", "Item Code"),
                pad("", "SKU0"),
                pad("Frozen", "SKU9"),
                pad("Candy", "SKU1"),
            ],
        )
        context = build_workbook_context(sheet)
        assert context.fallback_category == "Frozen"
        assert context.category_by_code == {"sku9": "Frozen", "sku1": "Candy"}

    def test_missing_header_gives_empty_context(self):
        sheet = SheetGrid(name="Summary", rows=[pad("Run Summary"), pad("SKU1", "Snacks")])
        context = build_workbook_context(sheet)
        assert context.category_by_code == {}
        assert context.fallback_category is None


# ===========================================================================
# Location sheets
# ===========================================================================


class TestLocationSheet:
    def test_parses_header_address_and_machines(self):
        location = parse_location_sheet(sample_sheets()[1], WorkbookContext())
        assert location.sheet_name == "Downtown"
        assert location.name == "Downtown HQ"
        assert location.address == "123 Main St"
        assert location.run_date == date(2025, 11, 5)
        assert [m.code for m in location.machines] == ["M-100", "M-200"]

    def test_machine_info_and_coil_rows(self):
        location = parse_location_sheet(sample_sheets()[1], WorkbookContext())
        machine = location.machines[0]
        assert machine.name == "Lobby Snack"
        assert machine.machine_type.name == "Combo"
        assert machine.machine_type.category == "Snacks"
        assert machine.run_date == date(2025, 11, 6)
        assert machine.location.name == "Downtown HQ"
        assert machine.location.address == "123 Main St"
        assert [row.coil_code for row in machine.coil_items] == ["A1", "A2", "A3"]
        first = machine.coil_items[0]
        assert (first.current, first.par, first.need, first.forecast, first.total) == (
            2.0,
            10.0,
            8.0,
            9.0,
            8.0,
        )
        assert machine.coil_items[2].notes == "check expiry"

    def test_machine_without_type_or_category(self):
        location = parse_location_sheet(sample_sheets()[1], WorkbookContext())
        assert location.machines[1].machine_type is None

    def test_rejects_sheet_without_location_prefix(self):
        sheet = SheetGrid(name="Notes", rows=[pad("Driver notes"), pad("Bring keys")])
        assert parse_location_sheet(sheet, WorkbookContext()) is None

    def test_rejects_empty_sheet(self):
        assert parse_location_sheet(SheetGrid(name="Empty", rows=[]), WorkbookContext()) is None

    def test_leading_blank_rows_are_skipped(self):
        sheet = SheetGrid(name="Uptown", rows=[blank(), pad("Location: Uptown (01/12/2025)"), pad("")])
        location = parse_location_sheet(sheet, WorkbookContext())
        assert location.name == "Uptown"
        assert location.address is None

    def test_location_without_machines(self):
        sheet = location_sheet("Location: Annex (01/12/2025)", "1 Side St", [pad("free text")])
        location = parse_location_sheet(sheet, WorkbookContext())
        assert location.machines == []

    def test_back_to_back_blocks_without_blank_separator(self):
        rows = [
            pad("Location: Depot"),
            pad("9 Yard Rd"),
            pad("Depot - Machine D1"),
            pad("Front"),
            list(COIL_HEADER),
            coil_row("C1", "SKU1 - Chips", total=3),
            pad("Depot - Machine D2"),
            pad("Back"),
            list(COIL_HEADER),
            coil_row("C1", "SKU2 - Soda", total=4),
        ]
        location = parse_location_sheet(SheetGrid(name="Depot", rows=rows), WorkbookContext())
        assert [m.code for m in location.machines] == ["D1", "D2"]
        assert [len(m.coil_items) for m in location.machines] == [1, 1]

    def test_row_blank_up_to_notes_column_ends_block(self):
        rows = [
            pad("Location: Depot"),
            pad("9 Yard Rd"),
            pad("Depot - Machine D1"),
            pad("Front"),
            list(COIL_HEADER),
            coil_row("C1", "SKU1 - Chips", total=3),
            pad() + ["page 2"],
            coil_row("C2", "SKU2 - Soda", total=4),
        ]
        rows = [row + [""] * (13 - len(row)) for row in rows]
        location = parse_location_sheet(SheetGrid(name="Depot", rows=rows), WorkbookContext())
        assert [row.coil_code for row in location.machines[0].coil_items] == ["C1"]

    def test_row_with_only_notes_is_ignored_but_does_not_end_block(self):
        rows = [
            pad("Location: Depot"),
            pad("9 Yard Rd"),
            pad("Depot - Machine D1"),
            pad("Front"),
            list(COIL_HEADER),
            pad("", "", "", "", "", "", "", "", "", "", "", "restock later"),
            coil_row("C2", "SKU2 - Soda", total=4),
        ]
        location = parse_location_sheet(SheetGrid(name="Depot", rows=rows), WorkbookContext())
        assert [row.coil_code for row in location.machines[0].coil_items] == ["C2"]

    def test_unparseable_par_degrades_to_null(self):
        sheet = location_sheet(
            "Location: Depot",
            "",
            machine_block("D1", "Front", [coil_row("C1", "SKU1 - Chips", par="lots", total=3)]),
        )
        row = parse_location_sheet(sheet, WorkbookContext()).machines[0].coil_items[0]
        assert row.par is None
        assert row.total == 3.0


# ===========================================================================
# Fatal structural errors
# ===========================================================================


class TestStructuralErrors:
    def test_machine_header_without_code(self):
        sheet = location_sheet(
            "Location: Depot",
            "",
            machine_block("D1", "Front", [coil_row("C1", "SKU1", total=1)]),
            [pad("Depot - Machine "), pad("Back")],
        )
        with pytest.raises(UnexpectedSheetFormatError) as exc_info:
            parse_location_sheet(sheet, WorkbookContext())
        assert "machine code" in str(exc_info.value)
        assert exc_info.value.sheet == "Downtown"

    def test_missing_coil_header_names_the_row(self):
        rows = [
            pad("Location: Depot"),
            pad(""),
            pad("Depot - Machine D1"),
            pad("Front"),
            blank(),
            coil_row("C1", "SKU1", total=1),
        ]
        with pytest.raises(UnexpectedSheetFormatError) as exc_info:
            parse_location_sheet(SheetGrid(name="Depot", rows=rows), WorkbookContext())
        assert exc_info.value.row == 6
        assert "near row 6" in str(exc_info.value)

    def test_machine_without_name(self):
        rows = [
            pad("Location: Depot"),
            pad(""),
            pad("Depot - Machine D1"),
            pad(" (06/11/2025)"),
            list(COIL_HEADER),
        ]
        with pytest.raises(UnexpectedSheetFormatError):
            parse_location_sheet(SheetGrid(name="Depot", rows=rows), WorkbookContext())

    def test_error_in_later_sheet_aborts_whole_workbook(self):
        bad = SheetGrid(
            name="Broken",
            rows=[pad("Location: Broken"), pad(""), pad("Broken - Machine "), pad("X")],
        )
        with pytest.raises(UnexpectedSheetFormatError):
            parse_run_workbook(sample_sheets() + [bad])


class TestScannerStates:
    def test_ends_in_done_for_location_sheet(self):
        scanner = LocationSheetScanner(sample_sheets()[1], WorkbookContext())
        scanner.scan()
        assert scanner.state is ScanState.DONE

    def test_ends_in_rejected_for_other_sheet(self):
        scanner = LocationSheetScanner(SheetGrid(name="x", rows=[pad("hello")]), WorkbookContext())
        assert scanner.scan() is None
        assert scanner.state is ScanState.REJECTED

    def test_coil_rows_run_to_end_of_sheet(self):
        rows = [
            pad("Location: Depot"),
            pad(""),
            pad("Depot - Machine D1"),
            pad("Front"),
            list(COIL_HEADER),
            coil_row("C1", "SKU1", total=1),
        ]
        location = parse_location_sheet(SheetGrid(name="Depot", rows=rows), WorkbookContext())
        assert len(location.machines[0].coil_items) == 1


# ===========================================================================
# Whole workbook
# ===========================================================================


class TestParseRunWorkbook:
    def test_flattens_only_rows_with_positive_total(self):
        run = parse_run_workbook(sample_sheets()).run
        assert [
            (e.coil_item.coil.machine.code, e.coil_item.coil.code) for e in run.pick_entries
        ] == [("M-100", "A1"), ("M-100", "A3"), ("M-200", "B1")]

    def test_pick_entry_carries_context_and_quantities(self):
        entry = parse_run_workbook(sample_sheets()).run.pick_entries[0]
        assert entry.coil_item.sku.code == "SKU1"
        assert entry.coil_item.sku.category == "Snacks"
        assert entry.coil_item.coil.machine.location.name == "Downtown HQ"
        assert entry.coil_item.coil.machine.machine_type.name == "Combo"
        assert entry.count == 8.0
        assert entry.total == 8.0
        assert entry.need == 8.0

    def test_unmapped_sku_gets_fallback_category(self):
        entry = parse_run_workbook(sample_sheets()).run.pick_entries[1]
        assert entry.coil_item.sku.code == "SKU3"
        assert entry.coil_item.sku.category == "Snacks"

    def test_run_date_is_earliest_date(self):
        assert parse_run_workbook(sample_sheets()).run.run_date == date(2025, 11, 5)

    def test_run_date_from_machine_when_location_undated(self):
        sheets = [
            control_sheet(),
            location_sheet(
                "Location: Depot",
                "",
                machine_block("D1", "Front (20/03/2025)", [coil_row("C1", "SKU1", total=1)]),
                machine_block("D2", "Back (10/07/2025)", [coil_row("C1", "SKU1", total=1)]),
            ),
        ]
        assert parse_run_workbook(sheets).run.run_date == date(2025, 3, 20)

    def test_no_location_sheets(self):
        sheets = [control_sheet(), SheetGrid(name="Notes", rows=[pad("nothing")])]
        assert parse_run_workbook(sheets).run is None

    def test_negative_and_missing_totals_are_dropped(self):
        sheets = [
            control_sheet(),
            location_sheet(
                "Location: Depot",
                "",
                machine_block(
                    "D1",
                    "Front",
                    [
                        coil_row("C1", "SKU1", total=-2),
                        coil_row("C2", "SKU2", total=""),
                        coil_row("C3", "SKU3", total="n/a"),
                        coil_row("C4", "SKU4", total="1"),
                    ],
                ),
            ),
        ]
        run = parse_run_workbook(sheets).run
        assert [e.coil_item.coil.code for e in run.pick_entries] == ["C4"]

    def test_locations_keep_sheet_order(self):
        second = location_sheet(
            "Location: Uptown (04/11/2025)",
            "",
            machine_block("U1", "Hall", [coil_row("C1", "SKU1", total=2)], location_name="Uptown"),
            name="Uptown",
        )
        run = parse_run_workbook(sample_sheets() + [second]).run
        assert [loc.name for loc in run.locations] == ["Downtown HQ", "Uptown"]
        assert run.pick_entries[-1].coil_item.coil.machine.code == "U1"
        assert run.run_date == date(2025, 11, 4)
