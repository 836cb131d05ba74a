import enum
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.db.base import Base


class RunStatus(str, enum.Enum):
    CREATED = "CREATED"


class PickEntry(Base):
    __tablename__ = "pick_entries"

    id = Column(Integer, primary_key=True, index=True)
    run_id = Column(
        Integer,
        ForeignKey("runs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    coil_item_id = Column(
        Integer,
        ForeignKey("coil_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    count = Column(Integer, nullable=False, default=0)
    current = Column(Integer, nullable=True)
    par = Column(Integer, nullable=True)
    need = Column(Integer, nullable=True)
    forecast = Column(Integer, nullable=True)
    total = Column(Integer, nullable=True)
    is_picked = Column(Boolean, nullable=False, default=False)

    coil_item = relationship("CoilItem", lazy="joined")


class Run(Base):
    __tablename__ = "runs"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(
        String(36),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status = Column(String(20), nullable=False, default=RunStatus.CREATED.value)
    scheduled_for = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    pick_entries = relationship(
        "PickEntry", cascade="all, delete-orphan", order_by="PickEntry.id"
    )
