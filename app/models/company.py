import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String

from app.db.base import Base


class Company(Base):
    __tablename__ = "companies"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    # IANA identifier, e.g. "America/Los_Angeles"; runs are scheduled at local midnight here
    time_zone = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
