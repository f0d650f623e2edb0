from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Sequence, Tuple, Union

import logging

import pandas as pd

from pums_explorer.config import (
    DEFAULT_CATEGORICAL_VARS,
    DEFAULT_GEO_LEVEL,
    DEFAULT_GEO_SUBSET,
    DEFAULT_NUMERIC_VARS,
    DEFAULT_YEAR,
)
from pums_explorer.core.catalog import GEO_LEVEL_TOKENS, WEIGHT_FIELD, YEAR_COL
from pums_explorer.core.data_loader import dataset_url, fetch_table
from pums_explorer.core.formatter import format_result
from pums_explorer.core.validators import as_name_list, validate_query

logger = logging.getLogger(__name__)


class QueryEngineError(Exception):
    """Custom exception for query engine failures."""


@dataclass
class QuerySpec:
    """
    Parameters of one single-year PUMS query.

    geo_subset holds codes at geo_level (e.g. state FIPS "17"); "*" selects
    every unit at that level.
    """
    year: Any = DEFAULT_YEAR
    numeric_vars: Any = DEFAULT_NUMERIC_VARS
    categorical_vars: Any = DEFAULT_CATEGORICAL_VARS
    geo_level: Any = DEFAULT_GEO_LEVEL
    geo_subset: Any = DEFAULT_GEO_SUBSET


@dataclass
class InvalidQuery:
    """
    Returned instead of a table when a query fails validation.

    Falsy, and never a DataFrame, so it cannot be mistaken for an empty result.
    """
    spec: QuerySpec
    reasons: List[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return False


QueryOutcome = Union[pd.DataFrame, InvalidQuery]


def is_invalid(outcome: Any) -> bool:
    return isinstance(outcome, InvalidQuery)


# ---------------------------------------------------------------------------
# Query construction
# ---------------------------------------------------------------------------

def _unique(names: Iterable[str]) -> List[str]:
    seen: set[str] = set()
    out: List[str] = []
    for n in names:
        if n not in seen:
            seen.add(n)
            out.append(n)
    return out


def resolve_numeric_vars(numeric_vars: Any) -> List[str]:
    """Requested numeric fields in caller order, with PWGTP always present."""
    names = _unique(as_name_list(numeric_vars) or [])
    if WEIGHT_FIELD not in names:
        names.append(WEIGHT_FIELD)
    return names


def resolve_field_list(spec: QuerySpec) -> List[str]:
    return resolve_numeric_vars(spec.numeric_vars) + _unique(as_name_list(spec.categorical_vars) or [])


def resolve_geo_token(geo_level: Any) -> str:
    level = as_name_list(geo_level)[0]
    return GEO_LEVEL_TOKENS[level]


def resolve_geo_subset(geo_subset: Any) -> str:
    if isinstance(geo_subset, (str, int)):
        codes = [geo_subset]
    else:
        codes = list(geo_subset or [])
    if not codes:
        return "*"
    return ",".join(str(c).strip() for c in codes)


def build_query_url(spec: QuerySpec) -> str:
    """
    <host>/data/<year>/<dataset-path>?get=<fields>&for=<geoToken>:<codes>

    The spec must already have passed validate_query.
    """
    fields = ",".join(resolve_field_list(spec))
    token = resolve_geo_token(spec.geo_level)
    subset = resolve_geo_subset(spec.geo_subset)
    return f"{dataset_url(int(spec.year))}?get={fields}&for={token}:{subset}"


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------

def build_and_execute_query(spec: QuerySpec) -> QueryOutcome:
    """
    Validate, build and run one single-year query.

    Returns the raw table (row 0 = header, string cells) or an InvalidQuery
    when any validator fails; an invalid query is never sent.
    """
    reasons = validate_query(spec)
    if reasons:
        logger.warning("Invalid PUMS query %s: %s", spec, "; ".join(reasons))
        return InvalidQuery(spec=spec, reasons=reasons)

    url = build_query_url(spec)
    logger.info("Querying PUMS: %s", url)
    return fetch_table(url)


def get_pums(
    year: Any = DEFAULT_YEAR,
    numeric_vars: Any = DEFAULT_NUMERIC_VARS,
    categorical_vars: Any = DEFAULT_CATEGORICAL_VARS,
    geo_level: Any = DEFAULT_GEO_LEVEL,
    geo_subset: Any = DEFAULT_GEO_SUBSET,
) -> QueryOutcome:
    """Single-year query, formatted."""
    spec = QuerySpec(
        year=year,
        numeric_vars=numeric_vars,
        categorical_vars=categorical_vars,
        geo_level=geo_level,
        geo_subset=geo_subset,
    )
    raw = build_and_execute_query(spec)
    if is_invalid(raw):
        return raw
    return format_result(raw, int(year))


def _header_of(raw: pd.DataFrame) -> Tuple[str, ...]:
    return tuple(str(v).strip() for v in raw.iloc[0].tolist())


def query_multiple_years(
    years: Union[int, Sequence[Any]],
    numeric_vars: Any = DEFAULT_NUMERIC_VARS,
    categorical_vars: Any = DEFAULT_CATEGORICAL_VARS,
    geo_level: Any = DEFAULT_GEO_LEVEL,
    geo_subset: Any = DEFAULT_GEO_SUBSET,
) -> QueryOutcome:
    """
    Run the single-year query for each year (in order, duplicates kept),
    stamp each batch with its Year, concatenate, and format once.

    Every year is validated before anything is fetched; the first invalid
    one is returned as an InvalidQuery. Batches after the first must carry
    the same header as the first (their header rows are dropped before
    concatenation) or QueryEngineError is raised. Lookups use the
    dictionaries of the latest requested year.
    """
    year_list = [years] if isinstance(years, (int, float, str)) else list(years or [])
    if not year_list:
        raise QueryEngineError("At least one survey year must be requested.")

    specs = [
        QuerySpec(
            year=y,
            numeric_vars=numeric_vars,
            categorical_vars=categorical_vars,
            geo_level=geo_level,
            geo_subset=geo_subset,
        )
        for y in year_list
    ]
    for spec in specs:
        reasons = validate_query(spec)
        if reasons:
            logger.warning("Invalid PUMS query for year %r: %s", spec.year, "; ".join(reasons))
            return InvalidQuery(spec=spec, reasons=reasons)

    frames: List[pd.DataFrame] = []
    header: Tuple[str, ...] = ()
    for spec in specs:
        logger.info("Querying year=%s", spec.year)
        raw = build_and_execute_query(spec)
        if is_invalid(raw):
            return raw

        batch_header = _header_of(raw)
        if not frames:
            header = batch_header
        elif batch_header != header:
            raise QueryEngineError(
                f"Columns returned for {spec.year} {list(batch_header)} differ from "
                f"{specs[0].year} {list(header)}; cannot combine years."
            )
        else:
            raw = raw.iloc[1:]

        batch = raw.copy()
        batch[YEAR_COL] = int(spec.year)
        frames.append(batch)

    combined = pd.concat(frames, ignore_index=True)
    lookup_year = max(int(s.year) for s in specs)
    return format_result(combined, lookup_year)
