from __future__ import annotations

import json
import logging
import os
from decimal import ROUND_HALF_UP, Decimal
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Optional, Tuple

import pandas as pd
from pydantic import ValidationError

from election_core.records import PROB_FIELDS, RECORD_FIELDS, MarketRecord

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parents[1] / "data"
DATA_FILE_NAME = "election_data.json"
DATA_PATH_ENV = "ELECTION_DATA_PATH"

POLYMARKET_MARKET_URL = "https://polymarket.com/market/{slug}"
MISSING = "—"


def get_data_path() -> Path:
    override = os.environ.get(DATA_PATH_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    return DATA_DIR / DATA_FILE_NAME


def file_signature(path: Path) -> Tuple[str, float]:
    return (path.name, path.stat().st_mtime)


def numericize(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce")
    return df


def empty_frame() -> pd.DataFrame:
    return records_to_frame([])


def records_to_frame(rows: object) -> pd.DataFrame:
    """Validate raw JSON rows into MarketRecords and lay them out as a DataFrame.

    Rows that are not JSON objects are skipped. Malformed optional fields never
    fail a row; they fall back to their absent value (see MarketRecord).
    """
    if not isinstance(rows, list):
        logger.warning("Expected a list of market rows, got %s; using an empty dataset", type(rows).__name__)
        rows = []

    records = []
    for idx, raw in enumerate(rows):
        if isinstance(raw, MarketRecord):
            records.append(raw)
            continue
        if not isinstance(raw, dict):
            logger.warning("Skipping row %d: expected an object, got %s", idx, type(raw).__name__)
            continue
        try:
            records.append(MarketRecord.model_validate(raw))
        except ValidationError as exc:
            logger.warning("Skipping row %d: %s", idx, exc)

    df = pd.DataFrame.from_records([r.model_dump() for r in records], columns=list(RECORD_FIELDS))
    df = numericize(df, [*PROB_FIELDS, "combined_volume"])
    df["d_won"] = df["d_won"].astype(bool)
    df["name"] = df["name"].astype(object)
    return df


def load_records(path: Path) -> pd.DataFrame:
    try:
        with open(path, encoding="utf-8") as fh:
            raw = json.load(fh)
    except FileNotFoundError:
        logger.warning("Dataset not found at %s", path)
        return empty_frame()
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Could not read dataset %s: %s", path, exc)
        return empty_frame()

    df = records_to_frame(raw)
    logger.info("Loaded %d markets from %s", len(df), path)
    return df


# ---------------- Public API ----------------
@lru_cache(maxsize=4)
def _load_dataset_cached(path_str: str, files_sig: Tuple[str, float]) -> pd.DataFrame:
    return load_records(Path(path_str))


def dataset_signature() -> Optional[Tuple[str, Tuple[str, float]]]:
    path = get_data_path()
    if not path.exists():
        return None
    return (str(path), file_signature(path))


def load_dataset() -> pd.DataFrame:
    """Return the bundled dataset, parsed once per file version.

    The returned frame is shared between callers and must be treated as
    read-only.
    """
    sig = dataset_signature()
    if sig is None:
        logger.warning("Dataset not found at %s", get_data_path())
        return empty_frame()
    return _load_dataset_cached(*sig)


# ---------------- Formatting ----------------
def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def format_prob(value: object) -> str:
    if value is None or pd.isna(value):
        return MISSING
    return f"{round_half_up(float(value) * 100, 1):.1f}%"


def format_pct(value: object, decimals: int = 1) -> str:
    """Format a value that is already a percentage (0-100)."""
    if value is None or pd.isna(value):
        return MISSING
    return f"{float(value):.{decimals}f}%"


def format_pp(value: object) -> str:
    if value is None or pd.isna(value):
        return MISSING
    return f"{float(value):+.1f}pp"


def format_volume(value: object) -> str:
    if value is None or pd.isna(value):
        return MISSING
    vol = float(value)
    if vol >= 1e9:
        return f"${vol / 1e9:.2f}B"
    if vol >= 1e6:
        return f"${vol / 1e6:.1f}M"
    if vol >= 1e3:
        return f"${vol / 1e3:.0f}K"
    return f"${vol:.0f}"


def format_date(value: object) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return MISSING
    ts = pd.to_datetime(value, errors="coerce")
    if pd.isna(ts):
        return MISSING
    return f"{ts:%b} {ts.day}, {ts.year}"


def outcome_label(d_won: object) -> str:
    return "D" if bool(d_won) else "R"


def predicted_label(prob: object) -> Optional[str]:
    """Party implied by a probability; 0.5 exactly counts as Republican."""
    if prob is None or pd.isna(prob):
        return None
    return "D" if float(prob) > 0.5 else "R"


def market_url(slug: object) -> Optional[str]:
    if slug is None or (not isinstance(slug, str) and pd.isna(slug)):
        return None
    s = str(slug).strip()
    if not s:
        return None
    return POLYMARKET_MARKET_URL.format(slug=s)
