"""Role-gated organization navigation."""

from __future__ import annotations

import uuid

from expensify_shared.schemas.common import MemberRole

# (name, path suffix, admin only), in display order
NAVIGATION_SECTIONS: list[tuple[str, str, bool]] = [
    ("Dashboard", "", False),
    ("Expenses", "/expenses", False),
    ("Categories", "/categories", True),
    ("Members", "/members", True),
    ("Reports", "/reports", True),
]


def visible_sections(organization_id: uuid.UUID, role: MemberRole) -> list[dict]:
    """Sections of the org the given role may navigate to."""
    base = f"/org/{organization_id}"
    return [
        {"name": name, "href": f"{base}{suffix}", "admin_only": admin_only}
        for name, suffix, admin_only in NAVIGATION_SECTIONS
        if not admin_only or role == MemberRole.ADMIN
    ]
