import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import pandas as pd
import streamlit as st

from election_core.charts import horizon_label, party_color, prob_color
from election_core.data import format_pct, format_pp, format_prob, format_volume, get_data_path, load_dataset
from election_core.explorer import COLUMN_LABELS, SORTABLE_FIELDS, build_display_table, cached_view
from election_core.filters import ExplorerFilters, SortState
from election_core.metrics_visuals import compute_visualizations
from election_core.records import HORIZONS, prob_field

logger = logging.getLogger(__name__)

FOCUS_DAYS = (7, 1)
GITHUB_URL = "https://github.com/dhruv575/electionFetchingCode"


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-header {display: flex;justify-content: space-between;align-items: center;margin-bottom: 8px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;}
        .card-actions {font-size: 0.9rem;color: #2563eb;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str, actions: Optional[str] = None):
    container = st.container()
    container.markdown(
        f"""
        <div class="card">
          <div class="card-header">
            <div class="card-title">{title}</div>
            <div class="card-actions">{actions or ""}</div>
          </div>
        """,
        unsafe_allow_html=True,
    )
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_filter_summary(filters: ExplorerFilters, count: int, total: int) -> str:
    arrow = "↑" if filters.sort.ascending else "↓"
    chips = [
        f"Markets: {count} of {total}",
        f"Search: {filters.query}" if filters.query else "Search: All",
        f"Sort: {COLUMN_LABELS.get(filters.sort.field, filters.sort.field)} {arrow}",
    ]
    return "".join([f"<span class='chip'>{txt}</span>" for txt in chips])


def render_page_header(title: str, breadcrumb: str, filter_summary_html: str = "", export_df: Optional[pd.DataFrame] = None, export_name: str = "export.csv"):
    inject_base_styles()
    c1, c2 = st.columns([8, 2])
    with c1:
        st.markdown(
            f"<div class='app-top-bar'><div class='breadcrumb'>{breadcrumb}</div><div class='page-title'>{title}</div></div>",
            unsafe_allow_html=True,
        )
    with c2:
        if export_df is not None and not export_df.empty:
            st.download_button(
                "Export CSV",
                data=export_df.to_csv(index=False).encode("utf-8"),
                file_name=export_name,
                mime="text/csv",
            )
    if filter_summary_html:
        st.markdown(f"<div class='chip-row'>{filter_summary_html}</div>", unsafe_allow_html=True)


def _on_sort_field_change():
    chosen = st.session_state["sort_field_select"]
    st.session_state["sort_state"] = st.session_state["sort_state"].toggle(chosen)


def _on_reverse_sort():
    current: SortState = st.session_state["sort_state"]
    st.session_state["sort_state"] = current.toggle(current.field)


def _highlight_calls(display: pd.DataFrame, flags: pd.DataFrame, view: pd.DataFrame):
    prob_columns = {COLUMN_LABELS[prob_field(d)]: prob_field(d) for d in HORIZONS}

    def style_column(col: pd.Series) -> List[str]:
        source = prob_columns.get(col.name)
        if source is None:
            return [""] * len(col)
        flag_col = {"7d": "correct_7d", "1d": "correct_1d"}.get(col.name)
        styles = []
        for i, (text, prob) in enumerate(zip(col, view[source])):
            if text == "—":
                styles.append("")
                continue
            css = [f"color: {prob_color(prob)}"]
            if flag_col is not None:
                ok = flags[flag_col].iloc[i]
                css.append("background-color: rgba(34, 197, 94, 0.1)" if ok else "background-color: rgba(239, 68, 68, 0.1)")
            styles.append("; ".join(css))
        return styles

    def color_party(value: Any) -> str:
        color = party_color(value)
        return f"color: {color}; font-weight: 700" if color else ""

    return display.style.apply(style_column, axis=0).map(color_party, subset=["Won"])


# ---------- UI setup ----------
st.set_page_config(page_title="Polymarket Election Data", layout="wide")
inject_base_styles()
st.title("Polymarket Election Data")
st.caption(f"Data and code available on [GitHub]({GITHUB_URL}).")

dataset = load_dataset()
if dataset.empty:
    st.error(f"No markets found. Place election_data.json at {get_data_path()} or set ELECTION_DATA_PATH.")
    st.stop()

if "sort_state" not in st.session_state:
    st.session_state["sort_state"] = SortState()

with st.sidebar:
    st.markdown("### Navigate")
    nav_choice = st.radio("Navigate", ["Data Explorer", "Visualizations"], index=0)

    if nav_choice == "Data Explorer":
        st.markdown("---")
        st.markdown("### Explorer")
        search_term = st.text_input("Search markets...", "")
        sort_state: SortState = st.session_state["sort_state"]
        field_options = list(SORTABLE_FIELDS)
        st.selectbox(
            "Sort by",
            options=field_options,
            index=field_options.index(sort_state.field) if sort_state.field in field_options else 0,
            format_func=lambda f: COLUMN_LABELS.get(f, f),
            key="sort_field_select",
            on_change=_on_sort_field_change,
        )
        st.button(
            "Reverse order",
            on_click=_on_reverse_sort,
            help="Re-selecting the active column flips between ascending and descending.",
        )
    else:
        search_term = ""


# ----- Page renderers -----

def render_explorer_page():
    filters = ExplorerFilters(query=search_term.strip(), sort=st.session_state["sort_state"])
    try:
        view = cached_view(filters)
    except Exception:
        logger.exception("explorer view failed")
        st.error("Could not build the market table.")
        return

    render_page_header(
        "Data Explorer",
        "Home / Data Explorer",
        format_filter_summary(filters, len(view), len(dataset)),
        export_df=view,
        export_name="markets.csv",
    )
    with card("Markets", actions="Choose a column in the sidebar to sort"):
        if view.empty:
            st.info("No markets match the search.")
        else:
            display = build_display_table(view)
            flags = display[["correct_7d", "correct_1d"]]
            table = display.drop(columns=["correct_7d", "correct_1d"])
            st.dataframe(
                _highlight_calls(table, flags, view),
                use_container_width=True,
                hide_index=True,
                column_config={
                    "Market": st.column_config.TextColumn("Market", width="large"),
                    "D Link": st.column_config.LinkColumn("D", display_text="D"),
                    "R Link": st.column_config.LinkColumn("R", display_text="R"),
                },
            )
        st.caption(
            "Legend: probabilities show the Democrat win chance. Blue text = above 50% D, red text = 50% or below. "
            "Green background = correct prediction, red background = incorrect."
        )


def render_confusion(payload: Dict[str, Any], day: int):
    matrix = payload["confusion"][day]
    spec = payload["charts"].get(f"confusion_{day}d")
    if spec is None:
        st.info(f"No markets have a probability {horizon_label(day).lower()}.")
        return
    st.vega_lite_chart(spec, use_container_width=True)
    st.markdown(f"**{horizon_label(day)} • {format_pct(matrix['accuracy_pct'])} accuracy**")


def render_failed(rows: List[Dict[str, Any]]):
    if not rows:
        st.success("Every market with data was called correctly.")
        return
    df = pd.DataFrame(rows)
    display = pd.DataFrame(
        {
            "Market": df["name"],
            "D Prob": df["d_prob"].apply(format_prob),
            "Actual": df["actual"],
            "Error Type": df["error"],
            "Volume": df["combined_volume"].apply(format_volume),
        }
    )
    st.dataframe(display, use_container_width=True, hide_index=True)


def render_visualizations_page():
    try:
        payload = compute_visualizations(dataset, focus_days=FOCUS_DAYS)
    except Exception:
        logger.exception("visualizations failed")
        st.error("Could not compute the visual summaries.")
        return

    stats = payload["stats"]
    render_page_header("Visualizations", "Home / Visualizations")

    with card("How accurate were the prediction markets?"):
        st.caption(
            f"{horizon_label(FOCUS_DAYS[0])} (left) vs {horizon_label(FOCUS_DAYS[1]).lower()} (right) • "
            f"{stats['total_markets']} markets total"
        )
        cols = st.columns(len(FOCUS_DAYS))
        for col, day in zip(cols, FOCUS_DAYS):
            with col:
                render_confusion(payload, day)

    for day in FOCUS_DAYS:
        with card(f"Failed Predictions - {horizon_label(day)} Election"):
            render_failed(payload["failed"][day])

    with card("How biased were the prediction markets?"):
        st.caption("Directional bias in percentage points (positive = overestimated Democrat chances)")
        spec = payload["charts"].get("bias")
        if spec is None:
            st.info("Not enough data for a bias estimate.")
        else:
            st.vega_lite_chart(spec, use_container_width=True)
            by_day = {r["day"]: r for r in payload["bias"]}
            parts = [f"{format_pp(by_day[d]['bias_pp'])} {horizon_label(d).lower()}" for d in FOCUS_DAYS]
            st.caption("Interpretation: markets were off by " + ", ".join(parts) + ".")

    with card("Prediction Accuracy Over Time"):
        st.caption("How accurate were markets at each point before resolution?")
        spec = payload["charts"].get("accuracy_over_time")
        if spec is None:
            st.info("No horizon has probability data.")
        else:
            st.vega_lite_chart(spec, use_container_width=True)

    with card("Predicted vs Actual Democrat Win Rate"):
        st.caption("What percentage of races did markets predict Democrats would win vs actually won?")
        spec = payload["charts"].get("win_rates")
        if spec is None:
            st.info("No win-rate data.")
        else:
            st.vega_lite_chart(spec, use_container_width=True)
        rates = pd.DataFrame(stats["win_rate_by_horizon"])
        rates["Horizon"] = rates["day"].map(lambda d: f"{d}d")
        rates["Predicted"] = rates["predicted_pct"].apply(format_pct)
        rates["Actual"] = rates["actual_pct"].apply(format_pct)
        st.dataframe(rates[["Horizon", "Predicted", "Actual"]], use_container_width=True, hide_index=True)


if nav_choice == "Data Explorer":
    render_explorer_page()
else:
    render_visualizations_page()
