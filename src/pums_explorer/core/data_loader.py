from __future__ import annotations

from typing import Any, Dict, Optional

import logging

import pandas as pd
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from pums_explorer.config import (
    CENSUS_API_KEY,
    HTTP_RETRIES,
    HTTP_TIMEOUT_SECONDS,
    PUMS_API_HOST,
    PUMS_DATASET_PATH,
)

logger = logging.getLogger(__name__)


class DataLoaderError(Exception):
    """Raised when Census API calls fail or return unexpected shapes."""


def _build_retry_session() -> requests.Session:
    """
    Build a requests Session with conservative retries on transient statuses.
    api.census.gov answers 5xx under load now and then.
    """
    session = requests.Session()

    retry = Retry(
        total=HTTP_RETRIES,
        connect=HTTP_RETRIES,
        read=HTTP_RETRIES,
        status=HTTP_RETRIES,
        backoff_factor=0.6,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=frozenset({"GET"}),
        raise_on_status=False,
    )

    adapter = HTTPAdapter(max_retries=retry, pool_connections=10, pool_maxsize=10)
    session.mount("https://", adapter)
    session.mount("http://", adapter)

    return session


_SESSION: Optional[requests.Session] = None


def _get_session() -> requests.Session:
    global _SESSION
    if _SESSION is None:
        _SESSION = _build_retry_session()
    return _SESSION


# ---------------------------------------------------------------------------
# URL helpers
# ---------------------------------------------------------------------------

def dataset_url(year: int) -> str:
    """<host>/data/<year>/<dataset-path>"""
    return f"{PUMS_API_HOST}/data/{int(year)}/{PUMS_DATASET_PATH}"


def variable_url(year: int, var_name: str) -> str:
    """<host>/data/<year>/<dataset-path>/variables/<VARNAME>.json"""
    return f"{dataset_url(year)}/variables/{var_name}.json"


def _with_api_key(url: str) -> str:
    if not CENSUS_API_KEY:
        return url
    sep = "&" if "?" in url else "?"
    return f"{url}{sep}key={CENSUS_API_KEY}"


# ---------------------------------------------------------------------------
# Fetch and decode
# ---------------------------------------------------------------------------

def fetch_json(url: str, *, timeout_seconds: Optional[int] = None) -> Any:
    """
    GET a Census API URL and decode the JSON body.

    Any transport failure, non-200 status or non-JSON body raises
    DataLoaderError. There is no partial result.
    """
    timeout = timeout_seconds if timeout_seconds is not None else HTTP_TIMEOUT_SECONDS

    try:
        resp = _get_session().get(_with_api_key(url), timeout=timeout)
    except Exception as exc:
        raise DataLoaderError(f"HTTP error while calling {url}: {exc}") from exc

    if resp.status_code != 200:
        preview = (resp.text or "")[:200]
        raise DataLoaderError(f"Census API returned status={resp.status_code} for {url}. Preview: {preview}")

    try:
        return resp.json()
    except Exception as exc:
        preview = (resp.text or "")[:200]
        raise DataLoaderError(f"Non-JSON response from Census API ({url}). Preview: {preview}") from exc


def table_from_payload(payload: Any) -> pd.DataFrame:
    """
    Flatten an array-of-arrays payload into a raw table.

    Columns are positional integers; row 0 still holds the header labels and
    every cell is kept as a string, exactly as returned.
    """
    if not isinstance(payload, list) or not payload:
        raise DataLoaderError(f"Expected a non-empty JSON array of rows, got {type(payload).__name__}")

    width = None
    for row in payload:
        if not isinstance(row, list):
            raise DataLoaderError("Expected every row of the payload to be a JSON array")
        if width is None:
            width = len(row)
        elif len(row) != width:
            raise DataLoaderError("Payload is not rectangular (rows have different lengths)")

    return pd.DataFrame(payload, dtype=object)


def fetch_table(url: str, *, timeout_seconds: Optional[int] = None) -> pd.DataFrame:
    return table_from_payload(fetch_json(url, timeout_seconds=timeout_seconds))


def fetch_variable_items(var_name: str, year: int) -> Dict[str, Any]:
    """
    Return the raw values.item mapping of one variable dictionary.
    """
    url = variable_url(year, var_name)
    logger.info("Fetching variable dictionary %s for %s: %s", var_name, year, url)
    data = fetch_json(url)

    if not isinstance(data, dict):
        raise DataLoaderError(f"Unexpected variable dictionary type for {var_name}: {type(data)}")

    values = data.get("values")
    items = values.get("item") if isinstance(values, dict) else None
    if not isinstance(items, dict):
        raise DataLoaderError(f"Variable dictionary for {var_name} ({year}) has no values.item mapping")

    return items
