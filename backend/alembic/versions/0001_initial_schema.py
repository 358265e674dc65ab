"""Initial schema: users, warehouses, role bindings, products, sales.

Revision ID: 0001
Revises: (none)
Create Date: 2026-10-19

Run with:
    alembic upgrade head
    python -m negocify.cli seed-roles
"""

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa


def upgrade() -> None:
    # ── Identity ─────────────────────────────────────────────

    op.create_table(
        "usuario",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("surname", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(20)),
    )
    op.create_index("ix_usuario_email", "usuario", ["email"], unique=True)

    op.create_table(
        "administradores_sistema",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.BigInteger(),
            sa.ForeignKey("usuario.id", ondelete="CASCADE"),
            nullable=False, unique=True,
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    # ── Warehouses and roles ─────────────────────────────────

    op.create_table(
        "almacen",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("address", sa.String(255)),
    )

    op.create_table(
        "rol",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(50), nullable=False, unique=True),
    )

    op.create_table(
        "usuario_rol_almacen",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.BigInteger(),
            sa.ForeignKey("usuario.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "warehouse_id", sa.BigInteger(),
            sa.ForeignKey("almacen.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("role_id", sa.BigInteger(), sa.ForeignKey("rol.id"), nullable=False),
        sa.UniqueConstraint(
            "user_id", "warehouse_id", name="uq_usuario_rol_almacen_user_warehouse"
        ),
    )
    op.create_index("ix_usuario_rol_almacen_user_id", "usuario_rol_almacen", ["user_id"])

    # ── Inventory ────────────────────────────────────────────

    op.create_table(
        "tipo_producto",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
    )

    op.create_table(
        "producto",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column(
            "product_type_id", sa.BigInteger(),
            sa.ForeignKey("tipo_producto.id"), nullable=False,
        ),
        sa.Column("stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("min_stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("warehouse_id", sa.BigInteger(), sa.ForeignKey("almacen.id"), nullable=False),
        sa.CheckConstraint("stock >= 0", name="ck_producto_stock_non_negative"),
    )
    op.create_index("ix_producto_warehouse_id", "producto", ["warehouse_id"])

    # ── Sales ────────────────────────────────────────────────

    op.create_table(
        "tipo_venta",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("commission", sa.Numeric(10, 2), nullable=False),
    )

    op.create_table(
        "venta",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("gross_amount", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("net_amount", sa.Integer(), server_default="0"),
        sa.Column("date", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("warehouse_id", sa.BigInteger(), sa.ForeignKey("almacen.id"), nullable=False),
        sa.Column("sale_type_id", sa.BigInteger(), sa.ForeignKey("tipo_venta.id"), nullable=False),
    )
    op.create_index("ix_venta_warehouse_id", "venta", ["warehouse_id"])


def downgrade() -> None:
    op.drop_index("ix_venta_warehouse_id", table_name="venta")
    op.drop_table("venta")
    op.drop_table("tipo_venta")
    op.drop_index("ix_producto_warehouse_id", table_name="producto")
    op.drop_table("producto")
    op.drop_table("tipo_producto")
    op.drop_index("ix_usuario_rol_almacen_user_id", table_name="usuario_rol_almacen")
    op.drop_table("usuario_rol_almacen")
    op.drop_table("rol")
    op.drop_table("almacen")
    op.drop_table("administradores_sistema")
    op.drop_index("ix_usuario_email", table_name="usuario")
    op.drop_table("usuario")
