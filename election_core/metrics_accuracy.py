from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

import pandas as pd

from election_core.data import outcome_label
from election_core.records import HORIZONS, prob_field

# Strictly greater: a 0.5 probability is a Republican-leaning call.
DEMOCRAT_THRESHOLD = 0.5


@dataclass(frozen=True)
class AccuracyPoint:
    day: int
    correct_count: int
    total_count: int
    accuracy_pct: Optional[float]


@dataclass(frozen=True)
class WinRatePoint:
    day: int
    predicted_pct: Optional[float]
    actual_pct: Optional[float]


def _pct(part: float, whole: float) -> Optional[float]:
    if not whole:
        return None
    return float(part) / float(whole) * 100.0


def _covered(records: pd.DataFrame, day: int) -> pd.DataFrame:
    """Rows that have a probability at the given horizon."""
    col = prob_field(day)
    if records.empty or col not in records.columns:
        return records.iloc[0:0]
    return records[records[col].notna()]


def _predicted_democrat(covered: pd.DataFrame, day: int) -> pd.Series:
    return covered[prob_field(day)].astype(float) > DEMOCRAT_THRESHOLD


def _actual_democrat(records: pd.DataFrame) -> pd.Series:
    if "d_won" not in records.columns:
        return pd.Series(False, index=records.index)
    return records["d_won"].astype(bool)


def accuracy_at(records: pd.DataFrame, day: int) -> AccuracyPoint:
    covered = _covered(records, day)
    total = int(len(covered))
    correct = int((_predicted_democrat(covered, day) == _actual_democrat(covered)).sum()) if total else 0
    return AccuracyPoint(day=day, correct_count=correct, total_count=total, accuracy_pct=_pct(correct, total))


def compute_statistics(records: pd.DataFrame) -> Dict[str, Any]:
    """Per-horizon accuracy and win-rate summary over the whole dataset.

    Accuracy and predicted win rate only count rows with a probability at that
    horizon. The actual Democrat win rate always uses every row, so it is the
    same at each horizon. Horizons with no data report None.
    """
    total_markets = int(len(records))
    actual_d_wins = int(_actual_democrat(records).sum())
    actual_pct = _pct(actual_d_wins, total_markets)

    accuracy_by_horizon: List[AccuracyPoint] = []
    win_rate_by_horizon: List[WinRatePoint] = []
    for day in HORIZONS:
        point = accuracy_at(records, day)
        accuracy_by_horizon.append(point)

        covered = _covered(records, day)
        predicted_d = int(_predicted_democrat(covered, day).sum()) if len(covered) else 0
        win_rate_by_horizon.append(
            WinRatePoint(day=day, predicted_pct=_pct(predicted_d, point.total_count), actual_pct=actual_pct)
        )

    return {
        "accuracy_by_horizon": [asdict(p) for p in accuracy_by_horizon],
        "win_rate_by_horizon": [asdict(p) for p in win_rate_by_horizon],
        "total_markets": total_markets,
        "actual_d_wins": actual_d_wins,
    }


def compute_confusion_matrix(records: pd.DataFrame, day: int) -> Dict[str, Any]:
    covered = _covered(records, day)
    total = int(len(covered))
    predicted_d = _predicted_democrat(covered, day) if total else pd.Series(dtype=bool)
    actual_d = _actual_democrat(covered)

    def cell(pred_d: bool, won_d: bool) -> Dict[str, Any]:
        if not total:
            return {"count": 0, "pct": None}
        count = int(((predicted_d == pred_d) & (actual_d == won_d)).sum())
        return {"count": count, "pct": _pct(count, total)}

    cells = {
        "predicted_r_actual_r": cell(False, False),
        "predicted_d_actual_r": cell(True, False),
        "predicted_r_actual_d": cell(False, True),
        "predicted_d_actual_d": cell(True, True),
    }
    correct = cells["predicted_r_actual_r"]["count"] + cells["predicted_d_actual_d"]["count"]
    return {"day": day, "total": total, "cells": cells, "accuracy_pct": _pct(correct, total)}


def compute_failed_predictions(records: pd.DataFrame, day: int) -> List[Dict[str, Any]]:
    covered = _covered(records, day)
    if covered.empty:
        return []
    predicted_d = _predicted_democrat(covered, day)
    actual_d = _actual_democrat(covered)
    missed = covered[predicted_d != actual_d]
    if missed.empty:
        return []

    missed = missed.sort_values("combined_volume", ascending=False, na_position="last", kind="mergesort")
    rows = []
    for _, r in missed.iterrows():
        actual = outcome_label(r["d_won"])
        predicted = "R" if actual == "D" else "D"
        volume = r.get("combined_volume")
        rows.append(
            {
                "name": str(r["name"]),
                "d_prob": float(r[prob_field(day)]),
                "predicted": predicted,
                "actual": actual,
                "error": f"Predicted {predicted}, {actual} won",
                "combined_volume": None if pd.isna(volume) else float(volume),
            }
        )
    return rows


def compute_directional_bias(records: pd.DataFrame) -> List[Dict[str, Any]]:
    """Mean Democrat probability minus Democrat win frequency, in percentage points.

    Both terms use the rows covered at that horizon. Positive values mean the
    market overestimated Democrats.
    """
    out = []
    for day in HORIZONS:
        covered = _covered(records, day)
        if covered.empty:
            out.append({"day": day, "total": 0, "mean_prob_pct": None, "actual_pct": None, "bias_pp": None})
            continue
        mean_prob_pct = float(covered[prob_field(day)].astype(float).mean()) * 100.0
        actual_pct = float(_actual_democrat(covered).mean()) * 100.0
        out.append(
            {
                "day": day,
                "total": int(len(covered)),
                "mean_prob_pct": mean_prob_pct,
                "actual_pct": actual_pct,
                "bias_pp": mean_prob_pct - actual_pct,
            }
        )
    return out
