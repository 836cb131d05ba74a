from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.company import Company


def get_current_company(
    x_company_id: str = Header(..., alias="X-Company-Id"),
    db: Session = Depends(get_db),
) -> Company:
    company = db.query(Company).filter(Company.id == x_company_id.strip()).first()
    if not company:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Company not found"
        )
    return company
