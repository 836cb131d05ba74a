"""Persist a parsed run workbook as a new Run with its pick entries.

Dimension records (locations, machine types, machines, coils, SKUs and coil
items) are matched by natural key and created or patched in place; the Run and
its PickEntry rows are always new. Everything for one import is written in a
single transaction and rolled back as a unit on any failure.
"""

import enum
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    NoPickEntriesError,
    RunImportError,
    RunPersistenceError,
    UnexpectedSheetFormatError,
)
from app.models.location import Location
from app.models.machine import DEFAULT_MACHINE_TYPE_NAME, Coil, Machine, MachineType
from app.models.run import PickEntry, Run, RunStatus
from app.models.sku import DEFAULT_SKU_TYPE, SKU, CoilItem
from app.schemas.run_import import (
    ParsedMachine,
    ParsedMachineLocation,
    ParsedMachineType,
    ParsedPickEntry,
    ParsedRun,
    ParsedRunWorkbook,
    ParsedSku,
    RunImportSummary,
)
from app.services.timezones import (
    determine_scheduled_for,
    resolve_company_timezone,
    validate_timezone,
)
from app.services.workbook_parser import parse_run_workbook
from app.services.workbook_reader import SheetGrid, read_workbook

logger = logging.getLogger(__name__)


def normalize_integer(value: Optional[float], fallback: Optional[int] = None) -> Optional[int]:
    if value is None or not math.isfinite(value):
        return fallback
    return int(math.floor(value + 0.5))


class CountPolicy(enum.Enum):
    """Which parsed quantity becomes a pick entry's persisted count."""

    USE_COUNT = "count"
    USE_NEED = "need"
    USE_FORECAST = "forecast"
    USE_TOTAL_WITH_FALLBACK = "total"

    @classmethod
    def from_pointer(cls, pointer: Optional[str]) -> "CountPolicy":
        normalized = (pointer or "").strip().lower()
        for policy in cls:
            if policy.value == normalized:
                return policy
        return cls.USE_TOTAL_WITH_FALLBACK

    def select_count(self, entry: ParsedPickEntry) -> int:
        if self is CountPolicy.USE_COUNT:
            return normalize_integer(entry.count, 0)
        if self is CountPolicy.USE_NEED:
            return normalize_integer(entry.need, 0)
        if self is CountPolicy.USE_FORECAST:
            return normalize_integer(entry.forecast, 0)
        for candidate in (entry.count, entry.need, entry.forecast):
            value = normalize_integer(candidate)
            if value is not None:
                return value
        return 0


@dataclass
class ResolutionCache:
    """Natural-key memo of records resolved inside one import transaction.

    Owned by a single transaction attempt and dropped with it; records held
    here are never reused after a rollback.
    """

    locations: Dict[str, Location] = field(default_factory=dict)
    machine_types: Dict[str, MachineType] = field(default_factory=dict)
    machines: Dict[str, Machine] = field(default_factory=dict)
    coils: Dict[Tuple[int, str], Coil] = field(default_factory=dict)
    skus: Dict[str, Tuple[SKU, CountPolicy]] = field(default_factory=dict)
    coil_items: Dict[Tuple[int, int], CoilItem] = field(default_factory=dict)


@dataclass
class RunImportResult:
    workbook: ParsedRunWorkbook
    run: Run
    summary: RunImportSummary


# ---------------------------------------------------------------------------
# Resolvers
# ---------------------------------------------------------------------------


def resolve_location(
    db: Session,
    cache: ResolutionCache,
    company_id: str,
    parsed: Optional[ParsedMachineLocation],
) -> Optional[Location]:
    name = (parsed.name if parsed else "").strip()
    if not name:
        return None
    if name in cache.locations:
        return cache.locations[name]

    address = (parsed.address or "").strip() or None
    location = (
        db.query(Location)
        .filter(Location.company_id == company_id, Location.name == name)
        .first()
    )
    if location:
        if address and location.address != address:
            location.address = address
    else:
        location = Location(company_id=company_id, name=name, address=address)
        db.add(location)
        db.flush()

    cache.locations[name] = location
    return location


def resolve_machine_type(
    db: Session, cache: ResolutionCache, parsed: Optional[ParsedMachineType]
) -> MachineType:
    name = ((parsed.name if parsed else "") or "").strip() or DEFAULT_MACHINE_TYPE_NAME
    if name in cache.machine_types:
        return cache.machine_types[name]

    category = ((parsed.category if parsed else None) or "").strip() or None
    machine_type = db.query(MachineType).filter(MachineType.name == name).first()
    if machine_type:
        if category and machine_type.description != category:
            machine_type.description = category
    else:
        machine_type = MachineType(name=name, description=category)
        db.add(machine_type)
        db.flush()

    cache.machine_types[name] = machine_type
    return machine_type


def resolve_machine(
    db: Session,
    cache: ResolutionCache,
    company_id: str,
    parsed: ParsedMachine,
    machine_type: MachineType,
    location: Optional[Location],
) -> Machine:
    code = (parsed.code or "").strip()
    if not code:
        raise UnexpectedSheetFormatError("Encountered a machine without a code in the workbook.")
    if code in cache.machines:
        return cache.machines[code]

    description = (parsed.name or "").strip() or None
    machine = (
        db.query(Machine)
        .filter(Machine.company_id == company_id, Machine.code == code)
        .first()
    )
    if machine:
        if location is not None and machine.location_id != location.id:
            machine.location_id = location.id
        if machine.machine_type_id != machine_type.id:
            machine.machine_type_id = machine_type.id
        if description and machine.description != description:
            machine.description = description
    else:
        machine = Machine(
            company_id=company_id,
            code=code,
            description=description,
            machine_type_id=machine_type.id,
            location_id=location.id if location else None,
        )
        db.add(machine)
        db.flush()

    cache.machines[code] = machine
    return machine


def resolve_coil(db: Session, cache: ResolutionCache, machine: Machine, code: str) -> Coil:
    code = (code or "").strip()
    if not code:
        raise UnexpectedSheetFormatError(
            f'Encountered a coil without a code in machine "{machine.code}".'
        )
    key = (machine.id, code)
    if key in cache.coils:
        return cache.coils[key]

    coil = (
        db.query(Coil)
        .filter(Coil.machine_id == machine.id, Coil.code == code)
        .first()
    )
    if not coil:
        coil = Coil(machine_id=machine.id, code=code)
        db.add(coil)
        db.flush()

    cache.coils[key] = coil
    return coil


def resolve_sku(
    db: Session, cache: ResolutionCache, parsed: ParsedSku
) -> Tuple[SKU, CountPolicy]:
    code = (parsed.code or "").strip()
    if not code:
        raise UnexpectedSheetFormatError("Encountered a SKU without a code in the workbook.")
    if code in cache.skus:
        return cache.skus[code]

    name = (parsed.name or "").strip() or None
    sku_type = (parsed.type or "").strip() or DEFAULT_SKU_TYPE
    category = (parsed.category or "").strip() or None

    sku = db.query(SKU).filter(SKU.code == code).first()
    if sku:
        if name and sku.name != name:
            sku.name = name
        if sku.type != sku_type:
            sku.type = sku_type
        if category and sku.category != category:
            sku.category = category
    else:
        sku = SKU(code=code, name=name or code, type=sku_type, category=category)
        db.add(sku)
        db.flush()

    resolved = (sku, CountPolicy.from_pointer(sku.count_needed_pointer))
    cache.skus[code] = resolved
    return resolved


def resolve_coil_item(
    db: Session, cache: ResolutionCache, coil: Coil, sku: SKU, par: Optional[float]
) -> CoilItem:
    key = (coil.id, sku.id)
    if key in cache.coil_items:
        return cache.coil_items[key]

    par_value = normalize_integer(par, 0)
    coil_item = (
        db.query(CoilItem)
        .filter(CoilItem.coil_id == coil.id, CoilItem.sku_id == sku.id)
        .first()
    )
    if coil_item:
        if coil_item.par != par_value:
            coil_item.par = par_value
    else:
        coil_item = CoilItem(coil_id=coil.id, sku_id=sku.id, par=par_value)
        db.add(coil_item)
        db.flush()

    cache.coil_items[key] = coil_item
    return coil_item


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


def persist_pick_entry(
    db: Session,
    cache: ResolutionCache,
    company_id: str,
    run_record: Run,
    entry: ParsedPickEntry,
) -> PickEntry:
    machine = entry.coil_item.coil.machine

    location = resolve_location(db, cache, company_id, machine.location)
    machine_type = resolve_machine_type(db, cache, machine.machine_type)
    machine_record = resolve_machine(db, cache, company_id, machine, machine_type, location)
    coil = resolve_coil(db, cache, machine_record, entry.coil_item.coil.code)
    sku, policy = resolve_sku(db, cache, entry.coil_item.sku)
    coil_item = resolve_coil_item(db, cache, coil, sku, entry.par)

    pick_entry = PickEntry(
        run_id=run_record.id,
        coil_item_id=coil_item.id,
        count=policy.select_count(entry),
        current=normalize_integer(entry.current),
        par=normalize_integer(entry.par),
        need=normalize_integer(entry.need),
        forecast=normalize_integer(entry.forecast),
        total=normalize_integer(entry.total),
    )
    db.add(pick_entry)
    return pick_entry


def _write_run(
    db: Session,
    run: ParsedRun,
    company_id: str,
    scheduled_for,
    timeout_seconds: float,
) -> Run:
    started = time.monotonic()
    cache = ResolutionCache()

    run_record = Run(
        company_id=company_id,
        status=RunStatus.CREATED.value,
        scheduled_for=scheduled_for,
    )
    db.add(run_record)
    db.flush()

    for entry in run.pick_entries:
        if time.monotonic() - started > timeout_seconds:
            raise RunPersistenceError(
                f"Run import exceeded the {timeout_seconds:g}s transaction timeout."
            )
        persist_pick_entry(db, cache, company_id, run_record, entry)

    db.flush()
    return run_record


def persist_run_from_workbook(
    db: Session,
    run: ParsedRun,
    company_id: str,
    time_zone: Optional[str] = None,
    *,
    timeout_seconds: Optional[float] = None,
    max_attempts: Optional[int] = None,
) -> Run:
    scheduled_for = determine_scheduled_for(run.run_date, time_zone)
    timeout_seconds = timeout_seconds or settings.RUN_IMPORT_TRANSACTION_TIMEOUT_SECONDS
    max_attempts = max(1, max_attempts or settings.RUN_IMPORT_MAX_ATTEMPTS)

    last_error: Optional[Exception] = None
    for attempt in range(1, max_attempts + 1):
        try:
            run_record = _write_run(db, run, company_id, scheduled_for, timeout_seconds)
            db.commit()
        except IntegrityError as exc:
            # A concurrent import created one of the same natural keys first.
            db.rollback()
            last_error = exc
            logger.warning(
                "run_import_conflict company_id=%s attempt=%d/%d error=%s",
                company_id,
                attempt,
                max_attempts,
                exc.orig,
            )
            continue
        except RunImportError:
            db.rollback()
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("run_import_persist_failed company_id=%s", company_id)
            raise RunPersistenceError(f"Unable to persist run: {exc}") from exc
        except Exception:
            db.rollback()
            raise

        db.refresh(run_record)
        return run_record

    raise RunPersistenceError(
        f"Unable to persist run after {max_attempts} attempts due to conflicting writes."
    ) from last_error


# ---------------------------------------------------------------------------
# Pipeline entry points
# ---------------------------------------------------------------------------


def summarize_run(run: Optional[ParsedRun]) -> RunImportSummary:
    if run is None:
        return RunImportSummary(runs=0, machines=0, pick_entries=0)
    machine_codes = {entry.coil_item.coil.machine.code for entry in run.pick_entries}
    return RunImportSummary(
        runs=1, machines=len(machine_codes), pick_entries=len(run.pick_entries)
    )


def preview_run_workbook(payload: bytes) -> Tuple[ParsedRunWorkbook, RunImportSummary]:
    workbook = parse_run_workbook(read_workbook(payload))
    return workbook, summarize_run(workbook.run)


def import_run_workbook(
    db: Session,
    *,
    company_id: str,
    payload: Optional[bytes] = None,
    sheets: Optional[List[SheetGrid]] = None,
    timezone: Optional[str] = None,
) -> RunImportResult:
    override = validate_timezone(timezone)

    if sheets is None:
        sheets = read_workbook(payload or b"")
    workbook = parse_run_workbook(sheets)
    run = workbook.run
    if run is None or not run.pick_entries:
        raise NoPickEntriesError()

    time_zone = resolve_company_timezone(db, company_id, override)
    run_record = persist_run_from_workbook(db, run, company_id, time_zone)
    summary = summarize_run(run)

    logger.info(
        "run_import_completed company_id=%s run_id=%s machines=%d pick_entries=%d time_zone=%s",
        company_id,
        run_record.id,
        summary.machines,
        summary.pick_entries,
        time_zone,
    )
    return RunImportResult(workbook=workbook, run=run_record, summary=summary)
