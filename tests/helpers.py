"""Builders for run workbooks used across the test modules."""

from io import BytesIO

from openpyxl import Workbook

from app.services.workbook_reader import SheetGrid

WIDTH = 12
COIL_HEADER = ["", "", "", "", "Coil", "SKU", "Current", "Par", "Need", "Forecast", "Total", "Notes"]


def pad(*cells):
    row = [str(cell) if cell is not None else "" for cell in cells]
    return row + [""] * (WIDTH - len(row))


def blank():
    return pad()


def coil_row(coil, sku, current="", par="", need="", forecast="", total="", notes=""):
    return pad("", "", "", "", coil, sku, current, par, need, forecast, total, notes)


def control_sheet(categories=None, name="Summary"):
    rows = [pad("Run Summary"), pad("Item Code", "Description", "Category")]
    for code, category in (categories or {}).items():
        rows.append(pad(code, f"{code} description", category))
    return SheetGrid(name=name, rows=rows)


def machine_block(code, info, coil_rows, location_name="Downtown HQ"):
    return [
        pad(f"{location_name} - Machine {code}"),
        pad(info),
        blank(),
        list(COIL_HEADER),
        *coil_rows,
        blank(),
    ]


def location_sheet(header, address, *blocks, name="Downtown"):
    rows = [pad(header), pad(address)]
    for block in blocks:
        rows.extend(block)
    return SheetGrid(name=name, rows=rows)


def sample_sheets():
    """Control sheet plus one location with two machines and three stocked coils."""
    return [
        control_sheet({"SKU1": "Snacks", "SKU2": "Drinks"}),
        location_sheet(
            "Location: Downtown HQ (05/11/2025)",
            "123 Main St",
            machine_block(
                "M-100",
                "Lobby Snack, Snacks (Combo) (06/11/2025)",
                [
                    coil_row("A1", "SKU1 - Trail Mix - Snack", 2, 10, 8, 9, 8),
                    coil_row("A2", "SKU2 - Water", 5, 12, 7, 7, 0),
                    coil_row("A3", "SKU3 - A - B - C", 1, 6, 5, 5, 5, "check expiry"),
                ],
            ),
            machine_block(
                "M-200",
                "Break Room",
                [coil_row("B1", "SKU1 - Trail Mix - Snack", 0, 10, 10, 10, 10)],
            ),
        ),
    ]


def to_xlsx(sheets):
    workbook = Workbook()
    workbook.remove(workbook.active)
    for sheet in sheets:
        worksheet = workbook.create_sheet(title=sheet.name)
        for row in sheet.rows:
            worksheet.append([_to_cell(cell) for cell in row])
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def _to_cell(value):
    if value == "":
        return None
    if value.isdigit():
        return int(value)
    return value
