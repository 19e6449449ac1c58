"""API routers."""

from app.routers.assignments import router as assignments_router
from app.routers.audit import router as audit_router
from app.routers.auth import router as auth_router
from app.routers.companies import router as companies_router
from app.routers.reference import router as reference_router
from app.routers.tickets import router as tickets_router
from app.routers.users import router as users_router

__all__ = [
    "assignments_router",
    "audit_router",
    "auth_router",
    "companies_router",
    "reference_router",
    "tickets_router",
    "users_router",
]
