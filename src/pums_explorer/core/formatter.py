from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

import logging

import pandas as pd

from pums_explorer.core.catalog import (
    GEO_COLUMN_TOKENS,
    YEAR_COL,
    FieldKind,
    FieldSpec,
    get_field,
)
from pums_explorer.core.lookup_resolver import normalize_code, normalized_lookup, resolve_lookup
from pums_explorer.core.timecodes import decode_interval_label

logger = logging.getLogger(__name__)

# DataFrame.attrs tag marking a formatted table; summary helpers dispatch on it.
CLASS_ATTR = "class"
CENSUS_CLASS = "census"

LookupFn = Callable[[str, int], Dict[str, str]]


class ResultFormatterError(Exception):
    """Raised when a raw table cannot be formatted."""


def is_formatted(table: pd.DataFrame) -> bool:
    return table.attrs.get(CLASS_ATTR) == CENSUS_CLASS


# ---------------------------------------------------------------------------
# Boundary step: the API returns its header as row 0
# ---------------------------------------------------------------------------

def promote_header_row(table: pd.DataFrame) -> pd.DataFrame:
    """
    Use row 0 as column names and drop it from the data.

    A "Year" column stamped on before formatting keeps its name, since the
    header row holds the stamped year value at that position.
    """
    if table.empty:
        raise ResultFormatterError("Cannot promote a header row from an empty table.")

    year_positions = [i for i, c in enumerate(table.columns) if c == YEAR_COL]

    header = [str(v).strip() for v in table.iloc[0].tolist()]
    for pos in year_positions:
        header[pos] = YEAR_COL

    out = table.iloc[1:].reset_index(drop=True)
    out.columns = header
    return out


# ---------------------------------------------------------------------------
# Per-value resolution
# ---------------------------------------------------------------------------

def resolve_value(kind: FieldKind, raw: Any, lookup: Optional[Dict[Optional[str], str]] = None) -> Any:
    """
    Resolve one cell according to its field kind.

    lookup must already be keyed by normalize_code. Unmatched codes give None.
    """
    if kind is FieldKind.NUMERIC:
        return pd.to_numeric(raw, errors="coerce")

    if lookup is None:
        raise ResultFormatterError(f"A lookup is required to resolve {kind.value} values.")

    if kind is FieldKind.TIME_INTERVAL:
        code = pd.to_numeric(raw, errors="coerce")
        return decode_interval_label(lookup.get(normalize_code(code)))

    return lookup.get(normalize_code(raw))


def _resolve_column(
    series: pd.Series,
    spec: FieldSpec,
    year: int,
    lookup_fn: LookupFn,
) -> pd.Series:
    if spec.kind is FieldKind.NUMERIC:
        return pd.to_numeric(series, errors="coerce")

    lookup = normalized_lookup(lookup_fn(spec.lookup_token, year))

    if spec.kind is FieldKind.TIME_INTERVAL:
        series = pd.to_numeric(series, errors="coerce")

    resolved = series.map(lambda v: resolve_value(spec.kind, v, lookup))

    unmatched = int((resolved.isna() & series.notna()).sum())
    if unmatched:
        logger.debug(
            "%s: %s value(s) had no match in the %s dictionary for %s",
            spec.name, unmatched, spec.lookup_token, year,
        )
    return resolved.astype(object)


def _geography_spec(columns: List[str]) -> Optional[FieldSpec]:
    for col, token in GEO_COLUMN_TOKENS:
        if col in columns:
            return FieldSpec(name=col, kind=FieldKind.GEOGRAPHY, lookup_token=token)
    return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def format_result(
    table: pd.DataFrame,
    year: int,
    *,
    lookup_fn: LookupFn = resolve_lookup,
) -> pd.DataFrame:
    """
    Turn a raw API table into an analysis-ready one.

    Steps:
      1. promote row 0 to the header (keeping a stamped "Year" column name)
      2. numeric fields -> numbers
      3. JWAP/JWDP -> interval midpoints rendered as clock strings
      4. categorical fields -> labels from the variable dictionary of `year`
      5. the first geography column found (region > division > state) -> labels
      6. "Year" -> integer

    A table already tagged as formatted is returned unchanged.
    """
    if is_formatted(table):
        logger.warning("Table is already formatted; returning it unchanged.")
        return table

    named = [c for c in table.columns if isinstance(c, str) and get_field(c) is not None]
    if named:
        raise ResultFormatterError(
            f"Table already has field-named columns {named}; expected a raw table with the header in row 0."
        )

    out = promote_header_row(table)
    names = list(out.columns)

    columns: List[pd.Series] = []
    for idx, name in enumerate(names):
        series = out.iloc[:, idx]
        spec = get_field(name)
        if spec is not None:
            series = _resolve_column(series, spec, year, lookup_fn)
        columns.append(series)

    geo_spec = _geography_spec(names)
    if geo_spec is not None:
        idx = names.index(geo_spec.name)
        columns[idx] = _resolve_column(columns[idx], geo_spec, year, lookup_fn)

    if YEAR_COL in names:
        pos = names.index(YEAR_COL)
        columns[pos] = pd.to_numeric(columns[pos], errors="coerce").astype("Int64")

    result = pd.concat(columns, axis=1, ignore_index=True) if columns else pd.DataFrame(index=out.index)
    result.columns = names

    result.attrs[CLASS_ATTR] = CENSUS_CLASS
    result.attrs["year"] = int(year)
    return result
