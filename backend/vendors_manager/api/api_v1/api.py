"""API router aggregation"""
from fastapi import APIRouter

from vendors_manager.api.api_v1.endpoints import (
    access_control, auth, contracts, currencies, exchange_rates, groups, imports,
    invoices, rate_cards, reporting, roles, system, team_members, timesheet_entries,
    users, vendor_assignments, vendors,
)

api_router = APIRouter()

# Authentication
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])

# Access control (admin)
api_router.include_router(users.router, prefix="/access-control/users", tags=["Users"])
api_router.include_router(groups.router, prefix="/access-control/groups", tags=["Permission groups"])
api_router.include_router(
    vendor_assignments.router, prefix="/access-control/vendor-assignments", tags=["Vendor assignments"]
)
api_router.include_router(access_control.router, prefix="/access-control", tags=["Access control"])

# Vendors and commercials
api_router.include_router(vendors.router, prefix="/vendors", tags=["Vendors"])
api_router.include_router(contracts.router, prefix="/contracts", tags=["Contracts"])
api_router.include_router(invoices.router, prefix="/invoices", tags=["Invoices"])
api_router.include_router(rate_cards.router, prefix="/rate-cards", tags=["Rate cards"])
api_router.include_router(roles.router, prefix="/roles", tags=["Roles"])

# People and time
api_router.include_router(team_members.router, prefix="/team-members", tags=["Team members"])
api_router.include_router(timesheet_entries.router, prefix="/timesheet-entries", tags=["Timesheets"])
api_router.include_router(imports.router, prefix="/import", tags=["CSV import"])

# Currency
api_router.include_router(exchange_rates.router, prefix="/exchange-rates", tags=["Exchange rates"])
api_router.include_router(currencies.router, prefix="/currencies", tags=["Currencies"])

# Delivery reporting
api_router.include_router(reporting.router, prefix="/reporting", tags=["Reporting"])

# System
api_router.include_router(system.router, prefix="/system", tags=["System"])
