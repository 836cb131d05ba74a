from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base

DEFAULT_SKU_TYPE = "General"


class SKU(Base):
    __tablename__ = "skus"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(100), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    type = Column(String(100), nullable=False, default=DEFAULT_SKU_TYPE)
    category = Column(String(255), nullable=True)
    # Which parsed quantity becomes a pick entry's count: count | need | forecast | total
    count_needed_pointer = Column(String(20), nullable=False, default="total")


class CoilItem(Base):
    __tablename__ = "coil_items"
    __table_args__ = (
        UniqueConstraint("coil_id", "sku_id", name="uq_coil_items_coil_sku"),
    )

    id = Column(Integer, primary_key=True, index=True)
    coil_id = Column(
        Integer,
        ForeignKey("coils.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sku_id = Column(
        Integer,
        ForeignKey("skus.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    par = Column(Integer, nullable=False, default=0)

    coil = relationship("Coil")
    sku = relationship("SKU")
