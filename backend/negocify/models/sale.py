from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from negocify.database import Base, BigIntId


class SaleType(Base):
    """Payment channel with its commission percentage (e.g. card: 2.95)."""

    __tablename__ = "tipo_venta"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    commission: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)


class Sale(Base):
    __tablename__ = "venta"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    gross_amount: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    net_amount: Mapped[int | None] = mapped_column(Integer, default=0)
    date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    warehouse_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("almacen.id"), nullable=False, index=True
    )
    sale_type_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("tipo_venta.id"), nullable=False
    )

    sale_type = relationship("SaleType", lazy="joined")
