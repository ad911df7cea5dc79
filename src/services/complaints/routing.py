"""Category to responsible-department routing table."""

from __future__ import annotations

from typing import Final

from src.models.enums import ComplaintCategory

DEFAULT_DEPARTMENT: Final[str] = "General Services"

_DEPARTMENTS: Final[dict[str, str]] = {
    ComplaintCategory.POTHOLE: "Public Works",
    ComplaintCategory.INFRASTRUCTURE: "Public Works",
    ComplaintCategory.GARBAGE: "Sanitation Dept",
    ComplaintCategory.POLLUTION: "Sanitation Dept",
    ComplaintCategory.ELECTRICITY: "Electrical Dept",
    ComplaintCategory.WATER: "Water Board",
}


def route(category: str) -> str:
    """Return the department responsible for *category*.

    Unknown or blank categories go to :data:`DEFAULT_DEPARTMENT`.
    """
    key = (category or "").strip().lower()
    return _DEPARTMENTS.get(key, DEFAULT_DEPARTMENT)


def known_departments() -> list[str]:
    """All department names the router can produce, default last."""
    names = list(dict.fromkeys(_DEPARTMENTS.values()))
    names.append(DEFAULT_DEPARTMENT)
    return names
