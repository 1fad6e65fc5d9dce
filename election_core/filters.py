from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Literal

Direction = Literal["asc", "desc"]

DEFAULT_SORT_FIELD = "combined_volume"
DEFAULT_SORT_DIRECTION: Direction = "desc"


@dataclass(frozen=True)
class SortState:
    field: str = DEFAULT_SORT_FIELD
    direction: Direction = DEFAULT_SORT_DIRECTION

    def toggle(self, field: str) -> "SortState":
        """Reselecting the active field flips direction; a new field starts descending."""
        if field == self.field:
            return replace(self, direction="asc" if self.direction == "desc" else "desc")
        return SortState(field=field, direction="desc")

    @property
    def ascending(self) -> bool:
        return self.direction == "asc"


@dataclass(frozen=True)
class ExplorerFilters:
    query: str = ""
    sort: SortState = field(default_factory=SortState)


def normalize_direction(value: object) -> Direction:
    d = str(value or "").strip().lower()
    if d in {"asc", "ascending"}:
        return "asc"
    return "desc"


def normalize_filters(raw: dict) -> ExplorerFilters:
    query = str(raw.get("query") or "").strip()

    sort_raw = raw.get("sort") or {}
    if isinstance(sort_raw, SortState):
        return ExplorerFilters(query=query, sort=sort_raw)

    sort_field = str(sort_raw.get("field") or raw.get("sort_field") or "").strip()
    if not sort_field:
        sort_field = DEFAULT_SORT_FIELD
    direction = normalize_direction(sort_raw.get("direction") or raw.get("sort_direction") or DEFAULT_SORT_DIRECTION)
    return ExplorerFilters(query=query, sort=SortState(field=sort_field, direction=direction))
