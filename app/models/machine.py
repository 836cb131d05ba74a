from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base

DEFAULT_MACHINE_TYPE_NAME = "General"


class MachineType(Base):
    __tablename__ = "machine_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, unique=True)
    description = Column(String(500), nullable=True)


class Machine(Base):
    __tablename__ = "machines"
    __table_args__ = (
        UniqueConstraint("company_id", "code", name="uq_machines_company_code"),
    )

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(
        String(36),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    code = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    machine_type_id = Column(
        Integer,
        ForeignKey("machine_types.id", ondelete="RESTRICT"),
        nullable=False,
    )
    location_id = Column(
        Integer,
        ForeignKey("locations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    machine_type = relationship("MachineType")
    location = relationship("Location")


class Coil(Base):
    __tablename__ = "coils"
    __table_args__ = (
        UniqueConstraint("machine_id", "code", name="uq_coils_machine_code"),
    )

    id = Column(Integer, primary_key=True, index=True)
    machine_id = Column(
        Integer,
        ForeignKey("machines.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    code = Column(String(50), nullable=False)

    machine = relationship("Machine")
