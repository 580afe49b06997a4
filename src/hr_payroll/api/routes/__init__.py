"""API routes."""

from hr_payroll.api.routes.catalog import router as catalog_router
from hr_payroll.api.routes.health import router as health_router
from hr_payroll.api.routes.payslips import router as payslips_router
from hr_payroll.api.routes.periods import router as periods_router

__all__ = ["catalog_router", "health_router", "payslips_router", "periods_router"]
