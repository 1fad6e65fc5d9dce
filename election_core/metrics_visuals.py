from __future__ import annotations

from typing import Any, Dict, Iterable, List

import altair as alt
import pandas as pd

from election_core.charts import (
    ACTUAL_COLOR,
    DEMOCRAT_COLOR,
    REPUBLICAN_COLOR,
    horizon_color,
    horizon_label,
    to_vega_spec,
)
from election_core.metrics_accuracy import (
    compute_confusion_matrix,
    compute_directional_bias,
    compute_failed_predictions,
    compute_statistics,
)

PREDICTED_LABELS = {False: "Predicted Republican Win", True: "Predicted Democrat Win"}
ACTUAL_LABELS = {False: "Republican Actually Won", True: "Democrat Actually Won"}


def accuracy_chart(accuracy_by_horizon: List[Dict[str, Any]]) -> alt.LayerChart | None:
    df = pd.DataFrame(accuracy_by_horizon)
    if df.empty:
        return None
    df = df.dropna(subset=["accuracy_pct"])
    if df.empty:
        return None
    df["horizon"] = df["day"].map(horizon_label)
    df["color"] = df["day"].map(horizon_color)
    order = [horizon_label(d) for d in sorted(df["day"].unique(), reverse=True)]

    base = alt.Chart(df).encode(
        x=alt.X("horizon:O", sort=order, title="Days before market resolution", axis=alt.Axis(labelAngle=-30)),
        y=alt.Y(
            "accuracy_pct:Q",
            title="Accuracy",
            scale=alt.Scale(zero=False),
            axis=alt.Axis(gridDash=[4, 4], domain=False, ticks=False),
        ),
    )
    bars = base.mark_bar(cornerRadiusTopLeft=4, cornerRadiusTopRight=4).encode(
        color=alt.Color("color:N", scale=None),
        tooltip=[
            alt.Tooltip("horizon:O", title="Horizon"),
            alt.Tooltip("accuracy_pct:Q", title="Accuracy", format=".1f"),
            alt.Tooltip("correct_count:Q", title="Correct"),
            alt.Tooltip("total_count:Q", title="Markets"),
        ],
    )
    labels = base.mark_text(dy=-8, fontWeight="bold").encode(text=alt.Text("accuracy_pct:Q", format=".1f"))
    return alt.layer(bars, labels)


def win_rate_chart(win_rate_by_horizon: List[Dict[str, Any]], focus_days: Iterable[int]) -> alt.Chart | None:
    focus = set(focus_days)
    rows = []
    for p in win_rate_by_horizon:
        if p["day"] not in focus:
            continue
        for series, key in (("Predicted", "predicted_pct"), ("Actual", "actual_pct")):
            if p[key] is None:
                continue
            rows.append({"day": p["day"], "horizon": horizon_label(p["day"]), "series": series, "pct": p[key]})
    if not rows:
        return None
    df = pd.DataFrame(rows)
    order = [horizon_label(d) for d in sorted(df["day"].unique(), reverse=True)]
    return (
        alt.Chart(df)
        .mark_bar(cornerRadiusTopLeft=4, cornerRadiusTopRight=4)
        .encode(
            x=alt.X("horizon:N", sort=order, title=None, axis=alt.Axis(labelAngle=0)),
            xOffset=alt.XOffset("series:N", sort=["Predicted", "Actual"]),
            y=alt.Y("pct:Q", title="Democrat win rate (%)", scale=alt.Scale(domain=[0, 100])),
            color=alt.Color(
                "series:N",
                title=None,
                scale=alt.Scale(domain=["Predicted", "Actual"], range=[DEMOCRAT_COLOR, ACTUAL_COLOR]),
            ),
            tooltip=[
                alt.Tooltip("horizon:N", title="Horizon"),
                alt.Tooltip("series:N", title="Series"),
                alt.Tooltip("pct:Q", title="Rate", format=".1f"),
            ],
        )
    )


def bias_chart(bias_rows: List[Dict[str, Any]], focus_days: Iterable[int]) -> alt.LayerChart | None:
    focus = set(focus_days)
    df = pd.DataFrame([r for r in bias_rows if r["day"] in focus and r["bias_pp"] is not None])
    if df.empty:
        return None
    df["horizon"] = df["day"].map(horizon_label)
    df["lean"] = df["bias_pp"].map(lambda v: "Pro-Democrat" if v > 0 else "Pro-Republican")
    order = [horizon_label(d) for d in sorted(df["day"].unique(), reverse=True)]
    limit = max(10.0, float(df["bias_pp"].abs().max()) * 1.2)

    base = alt.Chart(df).encode(
        y=alt.Y("horizon:N", sort=order, title=None),
        x=alt.X(
            "bias_pp:Q",
            title="Directional bias (pp, positive = overestimated Democrats)",
            scale=alt.Scale(domain=[-limit, limit]),
        ),
    )
    bars = base.mark_bar().encode(
        color=alt.Color(
            "lean:N",
            title=None,
            scale=alt.Scale(domain=["Pro-Democrat", "Pro-Republican"], range=[DEMOCRAT_COLOR, REPUBLICAN_COLOR]),
        ),
        tooltip=[
            alt.Tooltip("horizon:N", title="Horizon"),
            alt.Tooltip("bias_pp:Q", title="Bias (pp)", format="+.1f"),
            alt.Tooltip("total:Q", title="Markets"),
        ],
    )
    rule = alt.Chart(pd.DataFrame({"x": [0]})).mark_rule(color="#333").encode(x="x:Q")
    labels = base.mark_text(align="left", dx=6, fontWeight="bold").encode(text=alt.Text("bias_pp:Q", format="+.1f"))
    return alt.layer(bars, rule, labels)


def confusion_chart(matrix: Dict[str, Any], color: str) -> alt.LayerChart | None:
    if not matrix["total"]:
        return None
    rows = []
    for pred_d in (False, True):
        for won_d in (False, True):
            key = f"predicted_{'d' if pred_d else 'r'}_actual_{'d' if won_d else 'r'}"
            c = matrix["cells"][key]
            rows.append(
                {
                    "predicted": PREDICTED_LABELS[pred_d],
                    "actual": ACTUAL_LABELS[won_d],
                    "count": c["count"],
                    "pct": c["pct"],
                    "label": f"{c['count']} ({c['pct']:.1f}%)",
                }
            )
    df = pd.DataFrame(rows)
    base = alt.Chart(df).encode(
        x=alt.X("predicted:N", sort=list(PREDICTED_LABELS.values()), title=None, axis=alt.Axis(labelAngle=0)),
        y=alt.Y("actual:N", sort=list(ACTUAL_LABELS.values()), title=None),
    )
    cells = base.mark_rect(cornerRadius=4).encode(
        color=alt.Color("count:Q", legend=None, scale=alt.Scale(range=["#f3f4f6", color])),
        tooltip=[
            alt.Tooltip("predicted:N", title="Prediction"),
            alt.Tooltip("actual:N", title="Outcome"),
            alt.Tooltip("count:Q", title="Markets"),
            alt.Tooltip("pct:Q", title="Share", format=".1f"),
        ],
    )
    text = base.mark_text(fontSize=16, fontWeight="bold").encode(text="label:N")
    return alt.layer(cells, text).properties(width=260, height=260)


def compute_visualizations(records: pd.DataFrame, *, focus_days: Iterable[int] = (7, 1)) -> Dict[str, Any]:
    focus_days = tuple(focus_days)
    stats = compute_statistics(records)
    bias = compute_directional_bias(records)
    confusion = {d: compute_confusion_matrix(records, d) for d in focus_days}
    failed = {d: compute_failed_predictions(records, d) for d in focus_days}

    charts: Dict[str, Any] = {}
    acc = accuracy_chart(stats["accuracy_by_horizon"])
    if acc is not None:
        charts["accuracy_over_time"] = to_vega_spec(acc)
    win = win_rate_chart(stats["win_rate_by_horizon"], focus_days)
    if win is not None:
        charts["win_rates"] = to_vega_spec(win)
    bias_spec = bias_chart(bias, focus_days)
    if bias_spec is not None:
        charts["bias"] = to_vega_spec(bias_spec)
    for d, matrix in confusion.items():
        chart = confusion_chart(matrix, DEMOCRAT_COLOR if d == max(focus_days) else REPUBLICAN_COLOR)
        if chart is not None:
            charts[f"confusion_{d}d"] = to_vega_spec(chart)

    return {
        "stats": stats,
        "bias": bias,
        "confusion": confusion,
        "failed": failed,
        "charts": charts,
    }
