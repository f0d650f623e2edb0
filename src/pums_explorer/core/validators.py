from __future__ import annotations

import numbers
from typing import Any, FrozenSet, List, Optional

from pums_explorer.config import YEAR_MAX, YEAR_MIN
from pums_explorer.core.catalog import CATEGORICAL_VARS, GEO_LEVELS, NUMERIC_VARS

# Validators are total: any input yields True/False, never an exception.


def as_name_list(value: Any) -> Optional[List[Any]]:
    """
    Normalize a variable selection to a list.

    A bare string counts as a one-element selection. Anything that is not a
    string or an iterable collection yields None.
    """
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return None


def _all_in(value: Any, allowed: FrozenSet[str]) -> bool:
    names = as_name_list(value)
    if not names:
        return False
    return all(isinstance(n, str) and n in allowed for n in names)


def check_year(year: Any) -> bool:
    """True iff year is an integer value within [YEAR_MIN, YEAR_MAX]."""
    if isinstance(year, bool):
        return False
    if isinstance(year, numbers.Integral):
        value = int(year)
    elif isinstance(year, float) and year.is_integer():
        value = int(year)
    else:
        return False
    return YEAR_MIN <= value <= YEAR_MAX


def check_numeric_vars(variables: Any) -> bool:
    return _all_in(variables, NUMERIC_VARS)


def check_categorical_vars(variables: Any) -> bool:
    return _all_in(variables, CATEGORICAL_VARS)


def check_geo_level(level: Any) -> bool:
    """
    True iff level is exactly one known geography level.

    A one-element collection is accepted; anything longer is invalid.
    """
    names = as_name_list(level)
    if names is None or len(names) != 1:
        return False
    name = names[0]
    return isinstance(name, str) and name in GEO_LEVELS


def validate_query(spec: Any) -> List[str]:
    """
    Run all four validators against a query spec.

    Returns the list of failure reasons; an empty list means the query may be
    executed. This is the single gate shared by single-year and multi-year
    paths.
    """
    reasons: List[str] = []
    if not check_year(getattr(spec, "year", None)):
        reasons.append(f"year must be an integer between {YEAR_MIN} and {YEAR_MAX}")
    if not check_numeric_vars(getattr(spec, "numeric_vars", None)):
        reasons.append(f"numeric_vars must be a non-empty subset of {sorted(NUMERIC_VARS)}")
    if not check_categorical_vars(getattr(spec, "categorical_vars", None)):
        reasons.append(f"categorical_vars must be a non-empty subset of {sorted(CATEGORICAL_VARS)}")
    if not check_geo_level(getattr(spec, "geo_level", None)):
        reasons.append(f"geo_level must be exactly one of {sorted(GEO_LEVELS)}")
    return reasons
