from datetime import date
from typing import Iterable, List, Optional

from app.schemas.run_import import (
    ParsedCoil,
    ParsedCoilItem,
    ParsedLocation,
    ParsedMachine,
    ParsedMachineBlock,
    ParsedPickEntry,
)


def has_stock_to_report(total: Optional[float]) -> bool:
    return total is not None and total > 0


def flatten_pick_entries(machines: Iterable[ParsedMachineBlock]) -> List[ParsedPickEntry]:
    """One entry per coil row with a positive total, in sheet/machine/row order."""
    entries: List[ParsedPickEntry] = []
    for machine in machines:
        summary = ParsedMachine(
            code=machine.code,
            name=machine.name,
            run_date=machine.run_date,
            machine_type=machine.machine_type.model_copy() if machine.machine_type else None,
            location=machine.location.model_copy() if machine.location else None,
        )
        for row in machine.coil_items:
            if not has_stock_to_report(row.total):
                continue
            entries.append(
                ParsedPickEntry(
                    coil_item=ParsedCoilItem(
                        sku=row.sku.model_copy(),
                        coil=ParsedCoil(code=row.coil_code, machine=summary),
                    ),
                    count=row.total,
                    current=row.current,
                    par=row.par,
                    need=row.need,
                    forecast=row.forecast,
                    total=row.total,
                    notes=row.notes,
                )
            )
    return entries


def derive_run_date(locations: Iterable[ParsedLocation]) -> Optional[date]:
    dates = []
    for location in locations:
        dates.append(location.run_date)
        dates.extend(machine.run_date for machine in location.machines)
    dates = [value for value in dates if value is not None]
    return min(dates) if dates else None
