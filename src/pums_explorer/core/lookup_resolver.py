from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import logging
import numbers

import pandas as pd

from pums_explorer.core.data_loader import fetch_variable_items

logger = logging.getLogger(__name__)

# In-memory cache keyed by (upstream variable name, year). Published survey
# dictionaries never change, so entries are never invalidated implicitly.
_LOOKUP_CACHE: Dict[Tuple[str, int], Dict[str, str]] = {}


# ---------------------------------------------------------------------------
# Code normalization
# ---------------------------------------------------------------------------

def normalize_code(value: Any) -> Optional[str]:
    """
    Canonical string form of a raw code, used on both sides of a lookup join.

    Dictionaries zero-pad some codes ("01", "001") while the data endpoint
    may not, so all-digit codes are compared by integer value. Numeric cells
    (already coerced) compare the same way. Missing values return None.
    """
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass

    if isinstance(value, bool):
        return str(value)
    if isinstance(value, numbers.Integral):
        return str(int(value))
    if isinstance(value, numbers.Real):
        as_float = float(value)
        return str(int(as_float)) if as_float.is_integer() else str(as_float)

    text = str(value).strip()
    if text.isdigit():
        return str(int(text))
    if text.startswith("-") and text[1:].isdigit():
        return str(int(text))
    return text


def _code_sort_key(code: str) -> Tuple[int, Any]:
    text = str(code).strip()
    if text.lstrip("-").isdigit():
        return 0, int(text)
    return 1, text


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def resolve_lookup(var_name: str, year: int, refresh: bool = False) -> Dict[str, str]:
    """
    Return the code -> label dictionary of one variable for one survey year.

    var_name is the upstream name (the caller translates State to ST).
    Entries come back ordered by ascending code; numeric codes sort by value
    so interval-coded fields keep their sequential boundaries.

    Transport and parse failures propagate (DataLoaderError).
    """
    key = (str(var_name), int(year))
    if not refresh and key in _LOOKUP_CACHE:
        logger.debug("Lookup cache hit for %s/%s", var_name, year)
        return dict(_LOOKUP_CACHE[key])

    items = fetch_variable_items(var_name, int(year))
    ordered = {
        str(code): str(label)
        for code, label in sorted(items.items(), key=lambda kv: _code_sort_key(kv[0]))
    }

    logger.info("Resolved %s codes for %s (%s)", len(ordered), var_name, year)
    _LOOKUP_CACHE[key] = ordered
    return dict(ordered)


def clear_lookup_cache() -> None:
    _LOOKUP_CACHE.clear()


def normalized_lookup(mapping: Dict[str, str]) -> Dict[Optional[str], str]:
    """
    Re-key a lookup by normalize_code, keeping the first label per key.
    """
    out: Dict[Optional[str], str] = {}
    for code, label in mapping.items():
        norm = normalize_code(code)
        if norm not in out:
            out[norm] = label
    return out
