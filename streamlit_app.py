import hashlib
import logging
from typing import Optional, Tuple

import altair as alt
import numpy as np
import pandas as pd
import streamlit as st

from positions_dashboard.config import load_settings
from positions_dashboard.errors import PositionsError
from positions_dashboard.formatting import format_currency, format_percentage, is_gain
from positions_dashboard.logging_config import configure_logging
from positions_dashboard.pipeline import PipelineResult, PortfolioSession
from positions_dashboard.stats import PositionStats
from positions_dashboard.views import (
    SORT_KEYS,
    SortState,
    filter_groups,
    filter_positions,
    filter_strategy_legs,
    group_by_strategy,
    positions_frame,
    sort_groups,
    sort_positions,
    value_bond,
)


# ------------------------------------------------------------
# Page config / styling
# ------------------------------------------------------------
st.set_page_config(page_title="Trading Positions", layout="wide")
st.markdown(
    """
    <style>
        .metric-card {background: #0b132b; color: #e0e6ed; padding: 16px; border-radius: 14px; border: 1px solid #1f2a44;}
        .metric-value {font-size: 26px; font-weight: 700; margin: 0;}
        .metric-label {font-size: 12px; color: #9fb3c8; margin: 0;}
    </style>
    """,
    unsafe_allow_html=True,
)

SETTINGS = load_settings()
configure_logging(SETTINGS.log_level, SETTINGS.log_json, SETTINGS.quiet_loggers)
logger = logging.getLogger("streamlit_app")


# ------------------------------------------------------------
# Session state
# ------------------------------------------------------------
def _session() -> PortfolioSession:
    if "portfolio_session" not in st.session_state:
        st.session_state["portfolio_session"] = PortfolioSession()
        st.session_state["loaded_digest"] = None
    return st.session_state["portfolio_session"]


def _sort_state() -> SortState:
    return st.session_state.setdefault("sort_state", SortState())


def _load_current(session: PortfolioSession, uploaded) -> Optional[PipelineResult]:
    """Run the pipeline once per distinct upload; reruns reuse the session's result."""
    if uploaded is not None:
        data = uploaded.getvalue()
        digest = hashlib.sha1(data).hexdigest()
        if digest != st.session_state.get("loaded_digest"):
            session.load_bytes(data)
            st.session_state["loaded_digest"] = digest
        return session.result
    if SETTINGS.local_csv_path is not None:
        digest = f"local:{SETTINGS.local_csv_path}"
        if digest != st.session_state.get("loaded_digest"):
            session.load_file(SETTINGS.local_csv_path)
            st.session_state["loaded_digest"] = digest
        return session.result
    if st.session_state.get("loaded_digest") is not None:
        # Upload cleared: drop the previous snapshot
        session.close()
        st.session_state["loaded_digest"] = None
    return None


# ------------------------------------------------------------
# Rendering helpers
# ------------------------------------------------------------
def metric_card(label, value):
    st.markdown(
        f"""
        <div class="metric-card">
            <p class="metric-label">{label}</p>
            <p class="metric-value">{value}</p>
        </div>
        """,
        unsafe_allow_html=True,
    )


def _display_frame(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    for col in ("Avg Price", "Value", "Last", "Cost basis", "Market value", "P&L"):
        if col in df.columns:
            df[col] = df[col].map(format_currency)
    if "%Change" in df.columns:
        df["%Change"] = df["%Change"].map(format_percentage)
    return df


def _style_change(df: pd.DataFrame):
    def color(v):
        if v in (None, "", "-"):
            return ""
        return "color:#22c55e" if is_gain(v) else "color:#ef4444"

    styler = df.style
    if "%Change" in df.columns:
        styler = styler.map(color, subset=["%Change"])
    return styler


def render_stats(stats: PositionStats):
    c1, c2, c3 = st.columns(3)
    with c1:
        metric_card("Stock/ETF positions", stats.stocks)
    with c2:
        metric_card("Option positions", stats.options)
    with c3:
        metric_card("Bond/CD positions", stats.bonds)

    ch1, ch2 = st.columns(2)
    with ch1:
        if stats.strategies:
            strat_df = pd.DataFrame({"Strategy": list(stats.strategies), "Positions": list(stats.strategies.values())})
            bar = (
                alt.Chart(strat_df)
                .mark_bar()
                .encode(
                    x=alt.X("Positions:Q", title="Positions"),
                    y=alt.Y("Strategy:N", title=None, sort="-x"),
                    tooltip=["Strategy:N", "Positions:Q"],
                )
                .properties(height=200, title="Option Strategies")
            )
            st.altair_chart(bar, use_container_width=True)
        else:
            st.caption("No option strategies in this export.")
    with ch2:
        exp = stats.expirations
        exp_df = pd.DataFrame(
            {
                "Window": ["Next 7 days", "8-30 days", "31-90 days", ">90 days"],
                "Options": [exp.next_7_days, exp.next_8_to_30_days, exp.next_31_to_90_days, exp.over_90_days],
            }
        )
        exp_df["Soon"] = np.where(exp_df.index == 0, "soon", "later")
        bar = (
            alt.Chart(exp_df)
            .mark_bar()
            .encode(
                x=alt.X("Window:N", title=None, sort=None),
                y=alt.Y("Options:Q", title="Options"),
                color=alt.Color("Soon:N", scale=alt.Scale(domain=["soon", "later"], range=["#f59e0b", "#3b82f6"]), legend=None),
                tooltip=["Window:N", "Options:Q"],
            )
            .properties(height=200, title="Upcoming Expirations")
        )
        st.altair_chart(bar, use_container_width=True)


def render_sort_controls():
    state = _sort_state()
    cols = st.columns(len(SORT_KEYS))
    for col, key in zip(cols, SORT_KEYS):
        arrow = ""
        if state.key == key:
            arrow = " ↑" if state.ascending else " ↓"
        with col:
            if st.button(f"{key}{arrow}", key=f"sort_{key}"):
                st.session_state["sort_state"] = state.toggle(key)
                st.rerun()


def render_groups(result: PipelineResult, query: str, by_strategy: bool):
    snapshot = result.snapshot
    if by_strategy:
        for strategy, legs in group_by_strategy(snapshot).items():
            legs = filter_strategy_legs(legs, query)
            if not legs:
                continue
            with st.expander(f"{strategy} ({len(legs)})", expanded=True):
                df = positions_frame([leg.option for leg in legs])
                df.insert(0, "Stock", [leg.stock_symbol for leg in legs])
                st.dataframe(_style_change(_display_frame(df)), use_container_width=True, hide_index=True)
        return

    groups = sort_groups(filter_groups(snapshot.groups, query), _sort_state())
    if not groups:
        st.info("No stock positions match.")
        return
    for group in groups:
        stock = group.stock
        header = f"{group.symbol}"
        if stock is not None:
            header += f"  ·  {stock.quantity:,.0f} sh  ·  last {format_currency(stock.last_price)}  ·  {format_percentage(stock.percent_change)}"
        else:
            header += "  ·  no stock position"
        if group.options:
            header += f"  ·  {len(group.options)} option leg(s)"
            with st.expander(header, expanded=False):
                st.dataframe(_style_change(_display_frame(positions_frame(group.options))), use_container_width=True, hide_index=True)
        else:
            st.markdown(f"- {header}")


def render_orphans(result: PipelineResult, query: str):
    options = sort_positions(filter_positions(result.snapshot.orphaned_options, query), _sort_state())
    if not options:
        st.info("No orphaned options.")
        return
    st.dataframe(_style_change(_display_frame(positions_frame(options))), use_container_width=True, hide_index=True)


def render_bonds(result: PipelineResult, query: str):
    bonds = sort_positions(filter_positions(result.snapshot.bonds, query), _sort_state())
    if not bonds:
        st.info("No bonds or CDs.")
        return
    df = positions_frame(bonds)
    vals = [value_bond(b, SETTINGS.bond_price_multiplier) for b in bonds]
    df["Cost basis"] = [v.cost_basis for v in vals]
    df["Market value"] = [v.market_value for v in vals]
    df["P&L"] = [v.pnl for v in vals]
    st.dataframe(_style_change(_display_frame(df)), use_container_width=True, hide_index=True)


def render_issues(result: PipelineResult):
    issues: Tuple[str, ...] = result.issues
    unresolved = result.snapshot.unresolved_options
    if not issues:
        st.success("No data issues detected.")
    else:
        st.dataframe(pd.DataFrame({"message": issues}), use_container_width=True)
    if unresolved:
        st.write("Option rows excluded from grouping and stats:")
        st.dataframe(_display_frame(positions_frame(unresolved)), use_container_width=True, hide_index=True)


def main():
    st.title("Trading Positions")
    st.caption("Upload a brokerage positions export (CSV).")

    session = _session()
    col_upload, col_search, col_group = st.columns([2, 2, 1])
    with col_upload:
        uploaded = st.file_uploader("Positions CSV", type=["csv"])
    with col_search:
        query = st.text_input("Search positions", value="")
    with col_group:
        by_strategy = st.checkbox("Group by strategy", value=False)

    try:
        with st.spinner("Loading trading positions..."):
            result = _load_current(session, uploaded)
    except PositionsError as exc:
        logger.error("Load failed: %s", exc)
        st.error(str(exc))
        return
    if result is None:
        st.info("Upload a CSV export to get started. Local fallback: set env `LOCAL_CSV_PATH`.")
        return

    if result.issues:
        st.warning(f"Issues detected: {len(result.issues)} (see Logs tab)")

    render_stats(result.stats)
    render_sort_controls()

    tab_stocks, tab_orphans, tab_bonds, tab_logs = st.tabs(["Stocks & Options", "Orphaned Options", "Bonds & CDs", "Logs / data issues"])
    with tab_stocks:
        render_groups(result, query, by_strategy)
    with tab_orphans:
        render_orphans(result, query)
    with tab_bonds:
        render_bonds(result, query)
    with tab_logs:
        render_issues(result)


if __name__ == "__main__":
    main()
