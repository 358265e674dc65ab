"""FastAPI dependencies for authentication and authorization.

Dependencies:
  get_current_principal   → run the authentication gate, attach the
                            Principal to request.state, return it
  require_any_admin       → restrict to administrators of anything
                            (system admin or "administrador" somewhere)
  require_warehouse_role  → helper for handlers: raise 403 unless the
                            principal passes is_authorized()
"""

from collections.abc import Iterable

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from negocify.auth.authentication import authenticate
from negocify.auth.permissions import is_authorized, require_admin
from negocify.auth.principal import Principal
from negocify.database import get_db
from negocify.middleware.exceptions import PermissionDeniedError


# ── Core principal dependency ────────────────────────────────

async def get_current_principal(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Principal:
    """Authenticate the request and stash the Principal on request.state.

    Permissions are recomputed from the database on every call.
    """
    principal = await authenticate(request.headers.get("Authorization"), db)
    request.state.principal = principal
    return principal


# ── Admin of anything ────────────────────────────────────────

async def require_any_admin(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> Principal:
    """Restrict to system admins and warehouse administrators.

    Usage:
        @router.post("/")
        async def create_sale_type(principal: Principal = Depends(require_any_admin)):
            ...
    """
    if not await require_admin(db, principal.user.id):
        raise PermissionDeniedError("Administrator access required")
    return principal


# ── Warehouse-scoped check ───────────────────────────────────

def require_warehouse_role(
    principal: Principal,
    required_roles: Iterable[str],
    warehouse_id,
) -> None:
    """Raise 403 unless `principal` holds one of `required_roles` in the warehouse.

    An empty `required_roles` accepts any role in the warehouse.
    """
    if not is_authorized(principal, required_roles, warehouse_id):
        raise PermissionDeniedError("Access denied to this warehouse")
