from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from negocify.database import Base, BigIntId


class Warehouse(Base):
    __tablename__ = "almacen"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    address: Mapped[str | None] = mapped_column(String(255))


class Role(Base):
    """Static reference data: "administrador", "empleado"."""

    __tablename__ = "rol"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)


class UserRoleWarehouse(Base):
    """Ternary user ↔ role ↔ warehouse binding.

    A user holds at most one role per warehouse. Reassignment replaces all of
    a user's rows inside one transaction (see services.users).
    """

    __tablename__ = "usuario_rol_almacen"
    __table_args__ = (
        UniqueConstraint("user_id", "warehouse_id", name="uq_usuario_rol_almacen_user_warehouse"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("usuario.id", ondelete="CASCADE"), nullable=False, index=True
    )
    warehouse_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("almacen.id", ondelete="CASCADE"), nullable=False
    )
    role_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("rol.id"), nullable=False
    )

    user = relationship("User", back_populates="role_assignments")
    warehouse = relationship("Warehouse")
    role = relationship("Role")
