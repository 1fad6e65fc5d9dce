from __future__ import annotations

import math
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator

HORIZONS: Tuple[int, ...] = (7, 6, 5, 4, 3, 2, 1)


def prob_field(day: int) -> str:
    return f"d_prob_{day}d"


PROB_FIELDS: Tuple[str, ...] = tuple(prob_field(d) for d in HORIZONS)

RECORD_FIELDS: Tuple[str, ...] = (
    "name",
    *PROB_FIELDS,
    "d_won",
    "resolution_date",
    "combined_volume",
    "d_market_slug",
    "r_market_slug",
)

_TRUE_TOKENS = {"TRUE", "T", "YES", "Y", "1"}
_FALSE_TOKENS = {"FALSE", "F", "NO", "N", "0", ""}


def parse_bool_sentinel(value: object) -> bool:
    """Map the dataset's boolean-like outcome values onto a real bool.

    Accepts real booleans, the "TRUE"/"FALSE" string sentinels (any case) and
    0/1. Anything else, including None, counts as False.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        token = value.strip().upper()
        if token in _TRUE_TOKENS:
            return True
        if token in _FALSE_TOKENS:
            return False
    return False


def _as_float(value: object) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        out = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if math.isnan(out) or math.isinf(out):
        return None
    return out


def parse_probability(value: object) -> Optional[float]:
    """Return a probability in [0, 1], or None when absent or unusable."""
    out = _as_float(value)
    if out is None or out < 0.0 or out > 1.0:
        return None
    return out


def _blank_to_none(value: object) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    s = str(value).strip()
    if not s or s.lower() in {"nan", "none", "null"}:
        return None
    return s


class MarketRecord(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = ""
    d_prob_7d: Optional[float] = None
    d_prob_6d: Optional[float] = None
    d_prob_5d: Optional[float] = None
    d_prob_4d: Optional[float] = None
    d_prob_3d: Optional[float] = None
    d_prob_2d: Optional[float] = None
    d_prob_1d: Optional[float] = None
    d_won: bool = False
    resolution_date: Optional[str] = None
    combined_volume: Optional[float] = None
    d_market_slug: Optional[str] = None
    r_market_slug: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def _coerce_name(cls, value: object) -> str:
        return "" if value is None else str(value)

    @field_validator(*PROB_FIELDS, mode="before")
    @classmethod
    def _coerce_probability(cls, value: object) -> Optional[float]:
        return parse_probability(value)

    @field_validator("d_won", mode="before")
    @classmethod
    def _coerce_outcome(cls, value: object) -> bool:
        return parse_bool_sentinel(value)

    @field_validator("combined_volume", mode="before")
    @classmethod
    def _coerce_volume(cls, value: object) -> Optional[float]:
        return _as_float(value)

    @field_validator("resolution_date", "d_market_slug", "r_market_slug", mode="before")
    @classmethod
    def _coerce_optional_str(cls, value: object) -> Optional[str]:
        return _blank_to_none(value)

    def prob(self, day: int) -> Optional[float]:
        return getattr(self, prob_field(day))
