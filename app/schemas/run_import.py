from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel


# ---------------------------------------------------------------------------
# Parsed workbook structures (transient, discarded after persistence)
# ---------------------------------------------------------------------------


class ParsedSku(BaseModel):
    code: str
    name: str
    type: Optional[str] = None
    category: Optional[str] = None


class ParsedMachineType(BaseModel):
    name: str
    category: Optional[str] = None


class ParsedMachineLocation(BaseModel):
    name: str
    address: Optional[str] = None


class ParsedCoilItemRow(BaseModel):
    coil_code: str
    sku: ParsedSku
    current: Optional[float] = None
    par: Optional[float] = None
    need: Optional[float] = None
    forecast: Optional[float] = None
    total: Optional[float] = None
    notes: Optional[str] = None


class ParsedMachineBlock(BaseModel):
    code: str
    name: str
    run_date: Optional[date] = None
    machine_type: Optional[ParsedMachineType] = None
    location: Optional[ParsedMachineLocation] = None
    coil_items: List[ParsedCoilItemRow] = []


class ParsedLocation(BaseModel):
    sheet_name: str
    name: str
    address: Optional[str] = None
    run_date: Optional[date] = None
    machines: List[ParsedMachineBlock] = []


class ParsedMachine(BaseModel):
    code: str
    name: str
    run_date: Optional[date] = None
    machine_type: Optional[ParsedMachineType] = None
    location: Optional[ParsedMachineLocation] = None


class ParsedCoil(BaseModel):
    code: str
    machine: ParsedMachine


class ParsedCoilItem(BaseModel):
    sku: ParsedSku
    coil: ParsedCoil


class ParsedPickEntry(BaseModel):
    coil_item: ParsedCoilItem
    count: Optional[float] = None
    current: Optional[float] = None
    par: Optional[float] = None
    need: Optional[float] = None
    forecast: Optional[float] = None
    total: Optional[float] = None
    notes: Optional[str] = None


class ParsedRun(BaseModel):
    run_date: Optional[date] = None
    locations: List[ParsedLocation] = []
    pick_entries: List[ParsedPickEntry] = []


class ParsedRunWorkbook(BaseModel):
    run: Optional[ParsedRun] = None


class WorkbookContext(BaseModel):
    """Workbook-wide lookups built from the control sheet."""

    category_by_code: Dict[str, str] = {}
    fallback_category: Optional[str] = None

    def category_for(self, code: str) -> Optional[str]:
        if code:
            category = self.category_by_code.get(code.strip().lower())
            if category:
                return category
        return self.fallback_category


# ---------------------------------------------------------------------------
# API payloads
# ---------------------------------------------------------------------------


class RunImportSummary(BaseModel):
    runs: int
    machines: int
    pick_entries: int


class RunImportRunOut(BaseModel):
    id: int
    status: str
    scheduled_for: Optional[datetime]
    created_at: datetime

    model_config = {"from_attributes": True}


class RunImportResponse(BaseModel):
    summary: RunImportSummary
    run: RunImportRunOut
    workbook: Optional[ParsedRunWorkbook] = None


class RunPreviewResponse(BaseModel):
    summary: RunImportSummary
    workbook: ParsedRunWorkbook


class PickEntryResponse(BaseModel):
    id: int
    coil_item_id: int
    sku_code: str
    coil_code: str
    machine_code: str
    count: int
    current: Optional[int]
    par: Optional[int]
    need: Optional[int]
    forecast: Optional[int]
    total: Optional[int]
    is_picked: bool


class RunDetailResponse(BaseModel):
    id: int
    company_id: str
    status: str
    scheduled_for: Optional[datetime]
    created_at: datetime
    pick_entries: List[PickEntryResponse]
