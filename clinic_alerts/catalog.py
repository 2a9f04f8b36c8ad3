"""Fixed catalog of patient precaution types.

Precaution records copy the icon and colour of their catalog entry when they
are created, so changing this table never alters existing records.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class PrecautionKind:
    id: str
    label: str
    icon: str
    color: str


FALLBACK_ICON = "FileText"
FALLBACK_COLOR = "#64748b"

PRECAUTION_CATALOG: Tuple[PrecautionKind, ...] = (
    PrecautionKind("water_off", "Water Off", "Droplets", "#3b82f6"),
    PrecautionKind("electric_off", "Electric Off", "Zap", "#eab308"),
    PrecautionKind("needs_assistance", "Needs Assistance", "UserCheck", "#8b5cf6"),
    PrecautionKind("fall_risk", "Fall Risk", "AlertTriangle", "#ef4444"),
    PrecautionKind("wheelchair", "Wheelchair User", "Home", "#06b6d4"),
    PrecautionKind("hearing_impaired", "Hearing Impaired", "Phone", "#f97316"),
    PrecautionKind("vision_impaired", "Vision Impaired", "Eye", "#a855f7"),
    PrecautionKind("cognitive", "Cognitive Impairment", "Brain", "#ec4899"),
    PrecautionKind("cardiac", "Cardiac Precaution", "Heart", "#dc2626"),
    PrecautionKind("custom", "Custom Precaution", FALLBACK_ICON, FALLBACK_COLOR),
)

_BY_ID: Dict[str, PrecautionKind] = {kind.id: kind for kind in PRECAUTION_CATALOG}


def get_precaution_kind(precaution_type: Optional[str]) -> Optional[PrecautionKind]:
    """Return the catalog entry for ``precaution_type`` if it exists."""

    if not precaution_type:
        return None
    return _BY_ID.get(precaution_type.strip().lower())


def precaution_style(
    precaution_type: Optional[str],
    icon: Optional[str] = None,
    color: Optional[str] = None,
) -> Tuple[str, str]:
    """Return the ``(icon, color)`` pair to store on a new precaution.

    Explicit values win; otherwise the catalog entry is used, falling back to
    the generic document icon for unknown types.
    """

    kind = get_precaution_kind(precaution_type)
    default_icon = kind.icon if kind else FALLBACK_ICON
    default_color = kind.color if kind else FALLBACK_COLOR
    return icon or default_icon, color or default_color


def catalog_choices() -> List[Dict[str, str]]:
    """Return the catalog as plain dictionaries for select inputs."""

    return [
        {"id": kind.id, "label": kind.label, "icon": kind.icon, "color": kind.color}
        for kind in PRECAUTION_CATALOG
    ]


__all__ = [
    "PrecautionKind",
    "PRECAUTION_CATALOG",
    "FALLBACK_ICON",
    "FALLBACK_COLOR",
    "get_precaution_kind",
    "precaution_style",
    "catalog_choices",
]
