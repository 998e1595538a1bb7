"""
Permission levels and resource access rules

Levels form a total order: denied < view < write < admin.
Every API action maps to the minimum level it needs.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional, Tuple


PERMISSION_HIERARCHY: Dict[str, int] = {
    "denied": 0,
    "view": 1,
    "write": 2,
    "admin": 3,
}

PERMISSION_LABELS: Dict[str, str] = {
    "denied": "Denied",
    "view": "View Only",
    "write": "View & Write",
    "admin": "Admin",
}

PERMISSION_DESCRIPTIONS: Dict[str, str] = {
    "denied": "No access to the system",
    "view": "Can view all data but cannot make changes",
    "write": "Can view and modify data",
    "admin": "Full access including user management and settings",
}

ACTION_PERMISSIONS: Dict[str, str] = {
    "read": "view",
    "create": "write",
    "update": "write",
    "delete": "write",
    "manage_users": "admin",
    "manage_settings": "admin",
}

DENIED_MESSAGE = "Your account has been denied access to this system."


def permission_rank(level: Optional[str]) -> int:
    """Unknown or missing levels rank as denied"""
    return PERMISSION_HIERARCHY.get(level or "denied", 0)


def has_permission(user_level: Optional[str], required_level: str) -> bool:
    return permission_rank(user_level) >= permission_rank(required_level)


def can_perform_action(user_level: Optional[str], action: str) -> bool:
    required = ACTION_PERMISSIONS.get(action)
    if required is None:
        return False
    return has_permission(user_level, required)


def check_permission(user_level: Optional[str], action: str) -> Tuple[bool, Optional[str]]:
    """
    Check an action against a permission level

    Returns:
        (allowed, reason) - reason is only set when refused
    """
    if user_level == "denied":
        return False, DENIED_MESSAGE

    required = ACTION_PERMISSIONS.get(action)
    if required is None:
        return False, f'Unknown action "{action}".'

    if has_permission(user_level, required):
        return True, None

    required_label = PERMISSION_LABELS[required]
    user_label = PERMISSION_LABELS.get(user_level or "denied", user_level)
    return False, f'This action requires "{required_label}" permission. You have "{user_label}" permission.'


@dataclass(frozen=True)
class AccessSubject:
    """The user side of a resource check"""
    user_id: int
    permission_level: str
    is_active: bool = True
    is_super_user: bool = False
    group_ids: FrozenSet[int] = field(default_factory=frozenset)


@dataclass(frozen=True)
class ResourceRule:
    """Grants attached to one protectable resource"""
    resource_key: str
    resource_type: str = "page"
    is_active: bool = True
    group_ids: FrozenSet[int] = field(default_factory=frozenset)
    user_ids: FrozenSet[int] = field(default_factory=frozenset)

    @property
    def is_restricted(self) -> bool:
        return bool(self.group_ids) or bool(self.user_ids)


@dataclass(frozen=True)
class ResourcePermissionCheck:
    allowed: bool
    resource_key: str
    resource_type: str = "page"
    reason: Optional[str] = None


def evaluate_resource_access(
    subject: Optional[AccessSubject],
    resource_key: str,
    rule: Optional[ResourceRule],
) -> ResourcePermissionCheck:
    """
    Decide whether a user may open a resource

    Order:
    1. missing or inactive user - refused
    2. denied level - refused, whatever the grants say
    3. super-user or admin - allowed
    4. unknown/inactive resource or resource without grants - allowed
    5. otherwise a direct user grant or a granted group is required
    """
    resource_type = rule.resource_type if rule else "page"

    if subject is None or not subject.is_active:
        return ResourcePermissionCheck(False, resource_key, resource_type, "User not found or inactive")

    if subject.permission_level == "denied":
        return ResourcePermissionCheck(False, resource_key, resource_type, DENIED_MESSAGE)

    if subject.is_super_user or subject.permission_level == "admin":
        return ResourcePermissionCheck(True, resource_key, resource_type, "Administrator access")

    if rule is None or not rule.is_active:
        return ResourcePermissionCheck(True, resource_key, resource_type, "Resource not protected")

    if not rule.is_restricted:
        return ResourcePermissionCheck(True, resource_key, resource_type, "No restrictions configured")

    if subject.user_id in rule.user_ids:
        return ResourcePermissionCheck(True, resource_key, resource_type, "Granted to user")

    if subject.group_ids & rule.group_ids:
        return ResourcePermissionCheck(True, resource_key, resource_type, "Granted through group membership")

    return ResourcePermissionCheck(False, resource_key, resource_type, "You do not have access to this resource")
