"""Model registry: every table is declared here, once.

Importing this package registers all tables on `Base.metadata`
(Alembic autogenerate, test schema creation).
"""

from negocify.models.user import SystemAdministrator, User
from negocify.models.warehouse import Role, UserRoleWarehouse, Warehouse
from negocify.models.product import Product, ProductType
from negocify.models.sale import Sale, SaleType

__all__ = [
    "Product",
    "ProductType",
    "Role",
    "Sale",
    "SaleType",
    "SystemAdministrator",
    "User",
    "UserRoleWarehouse",
    "Warehouse",
]
