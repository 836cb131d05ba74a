from app.models.company import Company
from app.models.location import Location
from app.models.machine import Coil, Machine, MachineType
from app.models.run import PickEntry, Run, RunStatus
from app.models.sku import SKU, CoilItem

__all__ = [
    "Coil",
    "CoilItem",
    "Company",
    "Location",
    "Machine",
    "MachineType",
    "PickEntry",
    "Run",
    "RunStatus",
    "SKU",
]
