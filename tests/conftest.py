"""
Shared fixtures: an in-memory stand-in for api.census.gov.

FakeCensusAPI replaces data_loader.fetch_json, so every layer above it
(lookup resolver, query engine, formatter) runs unchanged without network.
"""

import copy
from urllib.parse import urlsplit

import pytest

from pums_explorer.core import data_loader
from pums_explorer.core.data_loader import DataLoaderError
from pums_explorer.core.lookup_resolver import clear_lookup_cache


SEX_ITEMS = {"2": "Female", "1": "Male"}

JWAP_ITEMS = {
    "150": "12:30 p.m. to 12:39 p.m.",
    "0": "N/A (not a worker; worker who worked from home)",
    "073": "6:00 a.m. to 6:09 a.m.",
}

ST_ITEMS = {"17": "Illinois/IL", "06": "California/CA"}

REGION_ITEMS = {"1": "Northeast", "2": "Midwest", "3": "South", "4": "West", "9": "Puerto Rico"}

DIVISION_ITEMS = {"3": "East North Central", "9": "Pacific"}

SCHL_ITEMS = {"bb": "N/A (less than 3 years old)", "01": "No schooling completed", "21": "Bachelor's degree"}


class FakeCensusAPI:
    """
    Callable with the fetch_json signature.

    data maps year -> array-of-arrays payload; variables maps
    (name, year) -> values.item, with year None meaning "any year".
    """

    def __init__(self):
        self.data = {}
        self.variables = {}
        self.calls = []

    def __call__(self, url, *, timeout_seconds=None):
        self.calls.append(url)
        parts = urlsplit(url).path.strip("/").split("/")
        year = int(parts[1])

        if "variables" in parts:
            name = parts[-1][: -len(".json")]
            items = self.variables.get((name, year), self.variables.get((name, None)))
            if items is None:
                raise DataLoaderError(f"Census API returned status=404 for {url}")
            return {"name": name, "values": {"item": dict(items)}}

        if year not in self.data:
            raise DataLoaderError(f"Census API returned status=404 for {url}")
        return copy.deepcopy(self.data[year])

    def variable_calls(self, name):
        return [u for u in self.calls if f"/variables/{name}.json" in u]

    def data_calls(self):
        return [u for u in self.calls if "/variables/" not in u]


@pytest.fixture(autouse=True)
def _fresh_lookup_cache():
    clear_lookup_cache()
    yield
    clear_lookup_cache()


@pytest.fixture
def fake_api(monkeypatch):
    api = FakeCensusAPI()
    api.variables.update({
        ("SEX", None): SEX_ITEMS,
        ("JWAP", None): JWAP_ITEMS,
        ("JWDP", None): JWAP_ITEMS,
        ("ST", None): ST_ITEMS,
        ("REGION", None): REGION_ITEMS,
        ("DIVISION", None): DIVISION_ITEMS,
        ("SCHL", None): SCHL_ITEMS,
    })
    monkeypatch.setattr(data_loader, "fetch_json", api)
    return api


@pytest.fixture
def raw_payload():
    """A single-year response for get=AGEP,JWAP,PWGTP,SEX&for=State:17."""
    return [
        ["AGEP", "JWAP", "PWGTP", "SEX", "state"],
        ["34", "73", "120", "1", "17"],
        ["52", "0", "85", "2", "17"],
        ["19", "150", "40", "2", "17"],
    ]
