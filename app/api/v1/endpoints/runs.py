from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.deps import get_current_company
from app.db.session import get_db
from app.models.company import Company
from app.models.run import Run
from app.schemas.run_import import PickEntryResponse, RunDetailResponse

router = APIRouter()


@router.get("/{run_id}", response_model=RunDetailResponse)
def get_run(
    run_id: int,
    db: Session = Depends(get_db),
    company: Company = Depends(get_current_company),
):
    run = (
        db.query(Run)
        .filter(Run.id == run_id, Run.company_id == company.id)
        .first()
    )
    if not run:
        raise HTTPException(status_code=404, detail="Run not found")

    entries = [
        PickEntryResponse(
            id=entry.id,
            coil_item_id=entry.coil_item_id,
            sku_code=entry.coil_item.sku.code,
            coil_code=entry.coil_item.coil.code,
            machine_code=entry.coil_item.coil.machine.code,
            count=entry.count,
            current=entry.current,
            par=entry.par,
            need=entry.need,
            forecast=entry.forecast,
            total=entry.total,
            is_picked=entry.is_picked,
        )
        for entry in run.pick_entries
    ]
    return RunDetailResponse(
        id=run.id,
        company_id=run.company_id,
        status=run.status,
        scheduled_for=run.scheduled_for,
        created_at=run.created_at,
        pick_entries=entries,
    )
