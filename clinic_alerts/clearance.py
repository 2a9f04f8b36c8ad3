"""Clearance rules for dosing holds.

A hold names the roles that must clear it (``requires_clearance_from``) and
collects free-text clearance entries such as ``"Jane Doe (Counselor)"`` in
``cleared_by``.  A required role counts as cleared when any entry contains the
role name, ignoring case.  Stored records predate the typed :class:`Role`
enum, so matching stays on text.

The per-role view is for display only.  Whether a hold blocks dosing is
decided by its ``status``, which only the collaborator changes
(:func:`resolve_status` is the rule it applies when a clearance is appended).
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Set, Union

from clinic_alerts.models import DosingHold, HoldStatus, Role

RoleLike = Union[Role, str]


def _role_text(role: RoleLike) -> str:
    if isinstance(role, Role):
        return role.value
    return str(role)


def role_matches(cleared_by: Iterable[str], role: RoleLike) -> bool:
    """Return True when any clearance entry names ``role``."""

    needle = _role_text(role).lower()
    return any(needle in str(entry).lower() for entry in cleared_by)


def clearance_matches(hold: DosingHold) -> Dict[str, bool]:
    """Map each required role of ``hold`` to whether it has been cleared."""

    return {
        _role_text(role): role_matches(hold.cleared_by, role)
        for role in hold.requires_clearance_from
    }


def outstanding_roles(hold: DosingHold) -> List[str]:
    """Return the required roles that no clearance entry satisfies yet."""

    return [role for role, matched in clearance_matches(hold).items() if not matched]


def all_roles_cleared(requires: Sequence[RoleLike], cleared_by: Sequence[str]) -> bool:
    return all(role_matches(cleared_by, role) for role in requires)


def is_fully_cleared(hold: DosingHold) -> bool:
    """Return True when every required role matched (vacuous when none)."""

    return all_roles_cleared(hold.requires_clearance_from, hold.cleared_by)


def is_blocking(hold: DosingHold) -> bool:
    """Return True while the hold's authoritative status is ``active``."""

    return hold.status == HoldStatus.ACTIVE


def resolve_status(
    requires: Sequence[RoleLike],
    cleared_by: Sequence[str],
    current: HoldStatus,
) -> HoldStatus:
    """Return the status after a clearance entry has been appended.

    Only ``active`` holds move, and only to ``cleared``.
    """

    if current == HoldStatus.ACTIVE and all_roles_cleared(requires, cleared_by):
        return HoldStatus.CLEARED
    return current


def roles_in_label(label: str) -> Set[Role]:
    """Return the typed roles named anywhere in a clearance entry."""

    text = (label or "").lower()
    return {role for role in Role if role.value.lower() in text}


def format_clearance(actor: str, role: Optional[RoleLike]) -> str:
    """Build the conventional ``"<actor> (<Role>)"`` clearance entry."""

    actor = (actor or "").strip()
    if role is None or not _role_text(role).strip():
        return actor
    return f"{actor} ({_role_text(role).strip()})"


__all__ = [
    "role_matches",
    "clearance_matches",
    "outstanding_roles",
    "all_roles_cleared",
    "is_fully_cleared",
    "is_blocking",
    "resolve_status",
    "roles_in_label",
    "format_clearance",
]
