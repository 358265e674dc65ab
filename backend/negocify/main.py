from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from negocify.config import settings
from negocify.middleware.exceptions import register_exception_handlers
from negocify.middleware.security import SecurityHeadersMiddleware
from negocify.routers import auth, health, products, sale_types, sales, users

app = FastAPI(
    title="Negocify",
    description="Multi-warehouse inventory and sales management",
    version="0.1.0",
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware (outermost first) ─────────────────────────────
app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────
# Public
app.include_router(health.router)
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])

# Authenticated; permissions are resolved per request
app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(products.router, prefix="/api/products", tags=["products"])
app.include_router(sale_types.router, prefix="/api/sale-types", tags=["sale-types"])
app.include_router(sales.router, prefix="/api/sales", tags=["sales"])
