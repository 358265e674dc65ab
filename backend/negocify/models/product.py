from sqlalchemy import CheckConstraint, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from negocify.database import Base, BigIntId


class ProductType(Base):
    __tablename__ = "tipo_producto"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)


class Product(Base):
    __tablename__ = "producto"
    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_producto_stock_non_negative"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    product_type_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("tipo_producto.id"), nullable=False
    )
    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    min_stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    warehouse_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("almacen.id"), nullable=False, index=True
    )

    product_type = relationship("ProductType")
    warehouse = relationship("Warehouse")
