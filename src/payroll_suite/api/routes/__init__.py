"""API routes."""

from payroll_suite.api.routes.auth import router as auth_router
from payroll_suite.api.routes.employees import router as employees_router
from payroll_suite.api.routes.health import router as health_router
from payroll_suite.api.routes.payroll import router as payroll_router
from payroll_suite.api.routes.self_service import router as self_service_router

__all__ = [
    "auth_router",
    "employees_router",
    "health_router",
    "payroll_router",
    "self_service_router",
]
