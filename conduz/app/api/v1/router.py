"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from conduz.app.api.v1.endpoints import (
    admin_drivers, admin_weekly, admin_financing, driver_portal
)

router = APIRouter()

# Admin payroll back office
router.include_router(admin_drivers.router)
router.include_router(admin_weekly.router)
router.include_router(admin_financing.router)

# Driver portal (read-only payroll + loan requests)
router.include_router(driver_portal.router)
