"""
Permission keys, roles, and the default role -> permission mapping.

The identity provider tells us WHO the caller is and which org role they hold;
which actions that role may perform is decided here. Checks go through the
Permission enum, never bare strings, so a typo fails at import time.

DESIGN PRINCIPLES:
- One permission per guarded action
- Admin holds every permission
- Drivers can only submit tickets
"""

from __future__ import annotations

from enum import Enum


class Permission(str, Enum):
    USERS_MANAGE = "users:manage"
    STACKS_DELETE = "stacks:delete"
    LOCATIONS_DELETE = "locations:delete"
    TICKETS_CREATE = "tickets:create"
    TICKETS_MANAGE = "tickets:manage"
    INVOICES_MANAGE = "invoices:manage"
    INVENTORY_WRITE = "inventory:write"


class Role(str, Enum):
    ADMIN = "admin"
    BOOKKEEPER = "bookkeeper"
    DRIVER = "driver"


# Each permission is defined as: (permission, name, description)
PERMISSION_DEFINITIONS = [
    (Permission.USERS_MANAGE, "Manage Users", "Invite, remove, and change roles of org members"),
    (Permission.STACKS_DELETE, "Delete Stacks", "Delete stacks (history keeps an orphaned reference)"),
    (Permission.LOCATIONS_DELETE, "Delete Locations", "Delete locations without transaction history"),
    (Permission.TICKETS_CREATE, "Create Tickets", "Submit sale and barn-to-barn tickets"),
    (Permission.TICKETS_MANAGE, "Manage Tickets", "Approve, reject, and delete any pending ticket"),
    (Permission.INVOICES_MANAGE, "Manage Invoices", "Compile invoices and change invoice status"),
    (Permission.INVENTORY_WRITE, "Write Inventory", "Record, edit, and delete ledger transactions"),
]


ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.ADMIN: frozenset(Permission),
    Role.BOOKKEEPER: frozenset({
        Permission.INVENTORY_WRITE,
        Permission.TICKETS_CREATE,
        Permission.TICKETS_MANAGE,
        Permission.INVOICES_MANAGE,
    }),
    Role.DRIVER: frozenset({
        Permission.TICKETS_CREATE,
    }),
}


def parse_role(value: str | None) -> Role | None:
    """Accept 'admin' as well as provider-prefixed forms like 'org:admin'."""
    if not value:
        return None
    key = value.strip().lower()
    if key.startswith("org:"):
        key = key[4:]
    try:
        return Role(key)
    except ValueError:
        return None


def permissions_for_role(role: Role | None) -> frozenset[Permission]:
    if role is None:
        return frozenset()
    return ROLE_PERMISSIONS.get(role, frozenset())
