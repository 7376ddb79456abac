"""Per-row edit permissions for the customer table.

Rules:
  - Country Manager: may do everything, everywhere.
  - Manager: may do everything on customers in their own region,
    including assignment; nothing elsewhere.
  - Engineer: may edit remarks, notes and invoices of customers assigned
    to them; never assigns.
  - Anyone else (admin, Guest, unknown role): read only.

Capability names match the `Permissions` fields:
  can_edit_remarks, can_edit_notes, can_edit_invoices, can_assign
"""

from __future__ import annotations

from .errors import PermissionDeniedError
from .models import CustomerData, Permissions, Role, ViewerContext


ENTRY_ROLES = {Role.COUNTRY_MANAGER, Role.MANAGER, Role.ENGINEER}


def _uniform(allowed: bool) -> Permissions:
    return Permissions(
        can_edit_remarks=allowed,
        can_edit_notes=allowed,
        can_edit_invoices=allowed,
        can_assign=allowed,
    )


def resolve_permissions(viewer: ViewerContext, item: CustomerData) -> Permissions:
    role = Role.parse(viewer.role)

    if role is Role.COUNTRY_MANAGER:
        return _uniform(True)

    if role is Role.MANAGER:
        return _uniform(item.region == viewer.region)

    if role is Role.ENGINEER:
        assigned = item.assigned_engineer_id == viewer.uid
        return Permissions(
            can_edit_remarks=assigned,
            can_edit_notes=assigned,
            can_edit_invoices=assigned,
            can_assign=False,
        )

    return _uniform(False)


def require_permission(permissions: Permissions, name: str) -> None:
    if not getattr(permissions, name):
        raise PermissionDeniedError(f"Missing permission: {name}")


def is_admin(viewer: ViewerContext) -> bool:
    return Role.parse(viewer.role) is Role.ADMIN


def can_enter_records(viewer: ViewerContext) -> bool:
    return Role.parse(viewer.role) in ENTRY_ROLES


FIELD_PERMISSIONS = {
    "remarks": "can_edit_remarks",
    "notes": "can_edit_notes",
    "assigned_engineer_id": "can_assign",
}


def required_for_fields(fields: set[str]) -> list[str]:
    return [FIELD_PERMISSIONS[f] for f in sorted(fields) if f in FIELD_PERMISSIONS]
