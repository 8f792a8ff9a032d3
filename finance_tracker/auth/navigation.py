"""
Privilege-Filtered Navigation

A pure function of (current path, privileges). Entries without a
privilege key are always shown. Keyed entries are shown when the key is
granted, or when privileges are not known yet; hiding them during the
loading window would flash an empty menu.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from finance_tracker.auth.guard import ROUTES
from finance_tracker.models.auth import PrivilegeKey, PrivilegeSet


class NavEntry(BaseModel):
    """A sidebar entry as configured."""
    model_config = ConfigDict(frozen=True)

    label: str
    path: str
    icon: str = ""
    privilege: Optional[PrivilegeKey] = None


class NavItem(BaseModel):
    """A sidebar entry as rendered."""
    model_config = ConfigDict(frozen=True)

    label: str
    path: str
    icon: str = ""
    active: bool = False


NAV_ENTRIES: tuple[NavEntry, ...] = (
    NavEntry(label="Dashboard", path=ROUTES["dashboard"], icon="🏠"),
    NavEntry(
        label="Add Expense",
        path=ROUTES["add_expense"],
        icon="➖",
        privilege=PrivilegeKey.ADD_EXPENSE,
    ),
    NavEntry(
        label="Add Income",
        path=ROUTES["add_income"],
        icon="➕",
        privilege=PrivilegeKey.ADD_INCOME,
    ),
    NavEntry(
        label="Reports & Analytics",
        path=ROUTES["reports"],
        icon="📊",
        privilege=PrivilegeKey.VIEW_REPORTS,
    ),
    NavEntry(
        label="Upload Bills",
        path=ROUTES["bills"],
        icon="🧾",
        privilege=PrivilegeKey.UPLOAD_BILLS,
    ),
    NavEntry(
        label="Download Reports",
        path=ROUTES["downloads"],
        icon="⬇️",
        privilege=PrivilegeKey.DOWNLOAD_REPORTS,
    ),
)


def is_visible(entry: NavEntry, privileges: Optional[PrivilegeSet]) -> bool:
    if entry.privilege is None or privileges is None:
        return True
    return privileges.allows(entry.privilege)


def visible_entries(
    current_path: str,
    privileges: Optional[PrivilegeSet],
    entries: tuple[NavEntry, ...] = NAV_ENTRIES,
) -> list[NavItem]:
    """
    Entries to render, in order.

    At most one item is active: the first whose path equals current_path
    exactly.
    """
    items = []
    active_taken = False
    for entry in entries:
        if not is_visible(entry, privileges):
            continue
        active = not active_taken and entry.path == current_path
        active_taken = active_taken or active
        items.append(NavItem(label=entry.label, path=entry.path, icon=entry.icon, active=active))
    return items
