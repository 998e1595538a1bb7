# Importing this package registers every table on Base.metadata

from vendors_manager.models.user import User
from vendors_manager.models.access_control import (
    PermissionGroup,
    ProtectableResource,
    ResourcePermission,
    UserResourcePermission,
    user_group_members,
)
from vendors_manager.models.auth_token import PasswordResetToken, InvitationAuditLog, EmailRateLimit
from vendors_manager.models.vendor import Vendor, Tag, DeliveryManagerVendor, vendor_tags
from vendors_manager.models.contract import Contract
from vendors_manager.models.invoice import Invoice
from vendors_manager.models.role import Role
from vendors_manager.models.rate_card import RateCard
from vendors_manager.models.team_member import TeamMember, TimesheetEntry
from vendors_manager.models.exchange_rate import ExchangeRate
from vendors_manager.models.reporting import (
    WeeklyReport,
    WeeklyReportAchievement,
    WeeklyReportFocus,
    VendorTimelineMilestone,
    VendorRaidItem,
    VendorResourceItem,
)

__all__ = [
    "User",
    "PermissionGroup",
    "ProtectableResource",
    "ResourcePermission",
    "UserResourcePermission",
    "user_group_members",
    "PasswordResetToken",
    "InvitationAuditLog",
    "EmailRateLimit",
    "Vendor",
    "Tag",
    "DeliveryManagerVendor",
    "vendor_tags",
    "Contract",
    "Invoice",
    "Role",
    "RateCard",
    "TeamMember",
    "TimesheetEntry",
    "ExchangeRate",
    "WeeklyReport",
    "WeeklyReportAchievement",
    "WeeklyReportFocus",
    "VendorTimelineMilestone",
    "VendorRaidItem",
    "VendorResourceItem",
]
