from __future__ import annotations

import logging
from dataclasses import asdict
from functools import lru_cache
from typing import Any, Dict, Optional, Tuple

import pandas as pd

from election_core.data import (
    dataset_signature,
    format_date,
    format_prob,
    format_volume,
    load_dataset,
    market_url,
    outcome_label,
    predicted_label,
)
from election_core.filters import Direction, ExplorerFilters, normalize_direction
from election_core.records import HORIZONS, RECORD_FIELDS, prob_field

logger = logging.getLogger(__name__)

SORTABLE_FIELDS: Tuple[str, ...] = tuple(f for f in RECORD_FIELDS if f not in {"d_market_slug", "r_market_slug"})

COLUMN_LABELS: Dict[str, str] = {
    "name": "Market",
    **{prob_field(d): f"{d}d" for d in HORIZONS},
    "d_won": "Won",
    "resolution_date": "Resolved",
    "combined_volume": "Volume",
}


def filter_markets(records: pd.DataFrame, query: str) -> pd.DataFrame:
    """Rows whose name contains `query`, case-insensitively. Empty query keeps all rows."""
    q = (query or "").strip()
    if not q or records.empty:
        return records.copy()
    mask = records["name"].astype(str).str.contains(q, case=False, regex=False, na=False)
    return records[mask].copy()


def _normalize_sort_values(s: pd.Series) -> pd.Series:
    # Booleans rank as 1/0 next to numeric columns; missing values stay NA so
    # na_position can put them at the "negative infinity" end.
    if pd.api.types.is_bool_dtype(s):
        return s.astype(int)
    return s


def sort_markets(records: pd.DataFrame, field: str, direction: Direction = "desc") -> pd.DataFrame:
    """Order rows by `field`.

    Missing values behave as negative infinity: last when descending, first when
    ascending. Ties keep their incoming order, so re-sorting is idempotent. An
    unknown field leaves the order untouched.
    """
    if field not in records.columns:
        if field:
            logger.debug("Unknown sort field %r; keeping input order", field)
        return records.copy()

    ascending = normalize_direction(direction) == "asc"
    return records.sort_values(
        field,
        ascending=ascending,
        na_position="first" if ascending else "last",
        kind="mergesort",
        key=_normalize_sort_values,
    )


def compute_view(
    records: pd.DataFrame,
    query: str = "",
    sort_field: str = "combined_volume",
    sort_direction: Direction = "desc",
) -> pd.DataFrame:
    """Filtered and ordered copy of `records`; the input frame is never modified."""
    view = filter_markets(records, query)
    view = sort_markets(view, sort_field, sort_direction)
    return view.reset_index(drop=True)


@lru_cache(maxsize=64)
def _cached_view(
    sig: Optional[Tuple[str, Tuple[str, float]]], query: str, sort_field: str, sort_direction: str
) -> pd.DataFrame:
    return compute_view(load_dataset(), query, sort_field, sort_direction)  # type: ignore[arg-type]


def cached_view(filters: ExplorerFilters) -> pd.DataFrame:
    """compute_view over the bundled dataset, memoised per (dataset, query, sort)."""
    view = _cached_view(dataset_signature(), filters.query, filters.sort.field, filters.sort.direction)
    return view.copy()


def build_display_table(records: pd.DataFrame) -> pd.DataFrame:
    columns = [
        "Market",
        *[COLUMN_LABELS[prob_field(d)] for d in HORIZONS],
        "Won",
        "Resolved",
        "Volume",
        "D Link",
        "R Link",
        "correct_7d",
        "correct_1d",
    ]
    if records.empty:
        return pd.DataFrame(columns=columns)

    display = pd.DataFrame(index=records.index)
    display["Market"] = records["name"].astype(str)
    for d in HORIZONS:
        display[COLUMN_LABELS[prob_field(d)]] = records[prob_field(d)].apply(format_prob)
    display["Won"] = records["d_won"].apply(outcome_label)
    display["Resolved"] = records["resolution_date"].apply(format_date)
    display["Volume"] = records["combined_volume"].apply(format_volume)
    display["D Link"] = records["d_market_slug"].apply(market_url)
    display["R Link"] = records["r_market_slug"].apply(market_url)

    actual = records["d_won"].apply(outcome_label)
    for d in (7, 1):
        predicted = records[prob_field(d)].apply(predicted_label)
        # A missing probability is never a correct call.
        display[f"correct_{d}d"] = predicted.eq(actual) & predicted.notna()
    return display[columns].reset_index(drop=True)


def compute_explorer(filters: ExplorerFilters, records: pd.DataFrame) -> Dict[str, Any]:
    view = compute_view(records, filters.query, filters.sort.field, filters.sort.direction)
    rows = view.astype(object).where(view.notna(), None).to_dict(orient="records")
    return {
        "filters": asdict(filters),
        "count": int(len(view)),
        "total": int(len(records)),
        "rows": rows,
        "display": build_display_table(view).to_dict(orient="records"),
    }
