from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import logging
import math

import pandas as pd

from pums_explorer.core.catalog import (
    GEO_COLUMN_TOKENS,
    WEIGHT_FIELD,
    FieldKind,
    get_field,
)
from pums_explorer.core.formatter import is_formatted
from pums_explorer.core.timecodes import clock_to_minutes, render_clock
from pums_explorer.core.validators import as_name_list

logger = logging.getLogger(__name__)


class SummaryError(Exception):
    """Raised when a table cannot be summarized."""


@dataclass
class NumericSummary:
    """
    PWGTP-weighted statistics of one numeric field.

    For time fields the statistics are in minutes after midnight and
    mean_display holds the mean rendered as a clock time.
    """
    name: str
    mean: float
    sd: float
    n: int
    population: float
    mean_display: Optional[str] = None


@dataclass
class CategoricalSummary:
    """Weighted population per label, largest first. Missing labels are counted under None."""
    name: str
    counts: Dict[Optional[str], float]


@dataclass
class TableSummary:
    population: float
    numeric: List[NumericSummary] = field(default_factory=list)
    categorical: List[CategoricalSummary] = field(default_factory=list)


def weighted_mean_sd(values: pd.Series, weights: pd.Series) -> tuple[float, float]:
    """
    Weighted mean and (population) standard deviation, ignoring rows where
    either the value or the weight is missing.
    """
    mask = values.notna() & weights.notna()
    x = values[mask].astype(float)
    w = weights[mask].astype(float)
    total = float(w.sum())
    if total <= 0:
        return float("nan"), float("nan")
    mean = float((x * w).sum() / total)
    var = float((w * (x - mean) ** 2).sum() / total)
    return mean, math.sqrt(var)


def _numeric_summary(table: pd.DataFrame, name: str, weights: pd.Series) -> NumericSummary:
    spec = get_field(name)
    is_time = spec is not None and spec.kind is FieldKind.TIME_INTERVAL

    if is_time:
        values = pd.to_numeric(table[name].map(clock_to_minutes), errors="coerce")
    else:
        values = pd.to_numeric(table[name], errors="coerce")

    mean, sd = weighted_mean_sd(values, weights)
    used = values.notna() & weights.notna()
    return NumericSummary(
        name=name,
        mean=mean,
        sd=sd,
        n=int(used.sum()),
        population=float(weights[used].sum()),
        mean_display=render_clock(round(mean)) if is_time and not math.isnan(mean) else None,
    )


def _categorical_summary(table: pd.DataFrame, name: str, weights: pd.Series) -> CategoricalSummary:
    grouped: Dict[Optional[str], float] = {}
    for label, w in zip(table[name].tolist(), weights.fillna(0).tolist()):
        key = None if pd.isna(label) else str(label)
        grouped[key] = grouped.get(key, 0.0) + float(w)
    ordered = dict(sorted(grouped.items(), key=lambda kv: kv[1], reverse=True))
    return CategoricalSummary(name=name, counts=ordered)


def _default_fields(table: pd.DataFrame) -> tuple[List[str], List[str]]:
    numeric: List[str] = []
    categorical: List[str] = []
    geo_cols = {col for col, _ in GEO_COLUMN_TOKENS}
    for col in table.columns:
        spec = get_field(col)
        if spec is not None and spec.kind in (FieldKind.NUMERIC, FieldKind.TIME_INTERVAL):
            if col != WEIGHT_FIELD:
                numeric.append(col)
        elif (spec is not None and spec.needs_lookup) or col in geo_cols:
            categorical.append(col)
    return numeric, categorical


def summarize(
    table: pd.DataFrame,
    numeric_vars: Any = None,
    categorical_vars: Any = None,
) -> TableSummary:
    """
    Summarize a formatted table.

    Numeric fields get PWGTP-weighted mean and SD, categorical and geography
    fields get weighted counts. Without explicit field lists every known
    field present in the table is summarized (PWGTP itself excluded).
    """
    if not is_formatted(table):
        raise SummaryError("summarize() expects a table produced by format_result().")
    if WEIGHT_FIELD not in table.columns:
        raise SummaryError(f"Formatted table has no {WEIGHT_FIELD} column to weight by.")

    default_num, default_cat = _default_fields(table)
    num_names = as_name_list(numeric_vars) if numeric_vars is not None else default_num
    cat_names = as_name_list(categorical_vars) if categorical_vars is not None else default_cat

    missing = [n for n in (num_names or []) + (cat_names or []) if n not in table.columns]
    if missing:
        raise SummaryError(f"Columns not found in table: {missing}")

    weights = pd.to_numeric(table[WEIGHT_FIELD], errors="coerce")

    out = TableSummary(population=float(weights.sum()))
    for name in num_names or []:
        out.numeric.append(_numeric_summary(table, name, weights))
    for name in cat_names or []:
        out.categorical.append(_categorical_summary(table, name, weights))

    logger.info(
        "Summarized %s numeric and %s categorical field(s) over %s rows",
        len(out.numeric), len(out.categorical), len(table),
    )
    return out


def summary_frame(summary: TableSummary) -> pd.DataFrame:
    """Flat table of the numeric statistics, for display."""
    rows = [
        {
            "Field": s.name,
            "Weighted mean": s.mean_display or s.mean,
            "Weighted SD": s.sd,
            "Rows": s.n,
            "Population": s.population,
        }
        for s in summary.numeric
    ]
    return pd.DataFrame(rows)
