from __future__ import annotations

from typing import Any, Dict, Optional

import altair as alt

from election_core.data import predicted_label

alt.data_transformers.disable_max_rows()

DEMOCRAT_COLOR = "#3b82f6"
REPUBLICAN_COLOR = "#e74c3c"
ACTUAL_COLOR = "#22c55e"
NEUTRAL_COLOR = "#95a5a6"
WEEK_OUT_COLOR = "#3498db"


def to_vega_spec(chart: alt.TopLevelMixin) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def party_color(label: Optional[str]) -> Optional[str]:
    if label == "D":
        return DEMOCRAT_COLOR
    if label == "R":
        return REPUBLICAN_COLOR
    return None


def prob_color(prob: object) -> Optional[str]:
    """Text colour for a probability cell: blue above 0.5, red otherwise, none when missing."""
    return party_color(predicted_label(prob))


def horizon_label(day: int) -> str:
    return "1 Day Before" if day == 1 else f"{day} Days Before"


def horizon_color(day: int) -> str:
    if day == 7:
        return WEEK_OUT_COLOR
    if day == 1:
        return REPUBLICAN_COLOR
    return NEUTRAL_COLOR
