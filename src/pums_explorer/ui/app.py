from __future__ import annotations

import logging
import time
import traceback
from typing import List, Optional

import pandas as pd
import streamlit as st

from pums_explorer.config import (
    APP_NAME,
    APP_VERSION,
    DEFAULT_CATEGORICAL_VARS,
    DEFAULT_GEO_LEVEL,
    DEFAULT_GEO_SUBSET,
    DEFAULT_NUMERIC_VARS,
    DEFAULT_YEAR,
    PUMS_API_HOST,
    PUMS_DATASET_PATH,
    YEAR_MAX,
    YEAR_MIN,
)
from pums_explorer.core.catalog import CATEGORICAL_VARS, FIELD_CATALOG, NUMERIC_VARS
from pums_explorer.core.data_loader import DataLoaderError
from pums_explorer.core.query_engine import (
    QueryEngineError,
    get_pums,
    is_invalid,
    query_multiple_years,
)
from pums_explorer.core.summary import summarize, summary_frame

GEO_LEVEL_OPTIONS = ["All", "Region", "Division", "State"]
RESULT_KEY = "pums_result"


def _field_option(name: str) -> str:
    spec = FIELD_CATALOG[name]
    return f"{name}: {spec.label}" if spec.label else name


def _parse_years(text: str) -> List[int]:
    years: List[int] = []
    for part in text.split(","):
        p = part.strip()
        if p:
            years.append(int(p))
    return years


def _parse_codes(text: str) -> List[str]:
    return [p.strip() for p in text.split(",") if p.strip()]


def _render_backend_status() -> None:
    with st.expander("Backend status", expanded=False):
        st.write(f"Census API: {PUMS_API_HOST}/data/<year>/{PUMS_DATASET_PATH}")
        st.write(f"Supported years: {YEAR_MIN}–{YEAR_MAX}")


def _render_summary(df: pd.DataFrame) -> None:
    summary = summarize(df)
    st.write(f"Weighted population: {summary.population:,.0f}")

    if summary.numeric:
        st.dataframe(summary_frame(summary), use_container_width=True)

    if summary.categorical:
        names = [c.name for c in summary.categorical]
        selected: Optional[str] = st.selectbox("Weighted counts for", options=names, index=0)
        chosen = next(c for c in summary.categorical if c.name == selected)
        counts = pd.Series(
            {("(no label)" if k is None else k): v for k, v in chosen.counts.items()},
            name="Population",
        )
        st.bar_chart(counts)


def _render_query_form() -> None:
    with st.expander("PUMS query", expanded=True):
        col1, col2 = st.columns(2)

        with col1:
            years_str = st.text_input(
                f"Survey years (comma-separated, {YEAR_MIN}–{YEAR_MAX}):",
                value=str(DEFAULT_YEAR),
            )
            numeric_vars = st.multiselect(
                "Numeric fields (PWGTP is always included)",
                options=sorted(NUMERIC_VARS),
                default=list(DEFAULT_NUMERIC_VARS),
                format_func=_field_option,
            )
            categorical_vars = st.multiselect(
                "Categorical fields",
                options=sorted(CATEGORICAL_VARS),
                default=list(DEFAULT_CATEGORICAL_VARS),
                format_func=_field_option,
            )

        with col2:
            geo_level = st.selectbox(
                "Geography level",
                options=GEO_LEVEL_OPTIONS,
                index=GEO_LEVEL_OPTIONS.index(DEFAULT_GEO_LEVEL),
            )
            geo_subset_str = st.text_input(
                "Geography codes (comma-separated, * for all):",
                value=",".join(DEFAULT_GEO_SUBSET),
            )

        if st.button("Run query", key="run_pums_query_btn"):
            status = st.status("Preparing query…", expanded=True)
            t0 = time.perf_counter()

            try:
                years = _parse_years(years_str) or [DEFAULT_YEAR]
                geo_subset = _parse_codes(geo_subset_str)

                status.update(label=f"Querying {len(years)} year(s)…", state="running")
                if len(years) == 1:
                    result = get_pums(years[0], numeric_vars, categorical_vars, geo_level, geo_subset)
                else:
                    result = query_multiple_years(years, numeric_vars, categorical_vars, geo_level, geo_subset)

                if is_invalid(result):
                    status.update(label="Invalid parameters.", state="error")
                    for reason in result.reasons:
                        st.error(reason)
                    return

                status.write(f"Query completed in {time.perf_counter() - t0:0.2f}s ({len(result)} rows)")
                status.update(label="Done.", state="complete")
                st.session_state[RESULT_KEY] = result

            except (DataLoaderError, QueryEngineError) as qerr:
                status.update(label="Query failed.", state="error")
                st.error(f"Query failed: {qerr}")
                st.text_area("Traceback", value=traceback.format_exc(), height=280)

            except ValueError as e:
                status.update(label="Could not read the form.", state="error")
                st.error(f"Check the years and geography codes: {e}")

    # Last successful result; survives widget reruns.
    result = st.session_state.get(RESULT_KEY)
    if result is not None:
        st.dataframe(result, use_container_width=True)
        _render_summary(result)


def run_app() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    st.set_page_config(page_title=APP_NAME, page_icon="📊", layout="wide")
    st.title(APP_NAME)
    st.caption(f"Prototype version {APP_VERSION}")

    _render_backend_status()
    _render_query_form()
