from __future__ import annotations

import os
from pathlib import Path

# ---------------------------------------------------------------------------
# Project paths
# ---------------------------------------------------------------------------

# Root of the project (repo root)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# ---------------------------------------------------------------------------
# App identity
# ---------------------------------------------------------------------------

APP_NAME = "PUMS Microdata Explorer"
APP_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Census API configuration
#
# Survey data:
#   <host>/data/<year>/<dataset-path>?get=<fields>&for=<geo>:<codes>
# Variable dictionaries:
#   <host>/data/<year>/<dataset-path>/variables/<VARNAME>.json
#
# The API key is optional for low request volumes.
# ---------------------------------------------------------------------------

PUMS_API_HOST = os.getenv("PUMS_API_HOST", "https://api.census.gov").strip().rstrip("/")
PUMS_DATASET_PATH = os.getenv("PUMS_DATASET_PATH", "acs/acs1/pums").strip().strip("/")
CENSUS_API_KEY = os.getenv("CENSUS_API_KEY", "").strip()

HTTP_TIMEOUT_SECONDS = int(os.getenv("PUMS_HTTP_TIMEOUT_SECONDS", "60"))
HTTP_RETRIES = int(os.getenv("PUMS_HTTP_RETRIES", "3"))

# ---------------------------------------------------------------------------
# Query defaults
# ---------------------------------------------------------------------------

YEAR_MIN = 2010
YEAR_MAX = 2022

DEFAULT_YEAR = 2022
DEFAULT_NUMERIC_VARS = ("AGEP", "PWGTP")
DEFAULT_CATEGORICAL_VARS = ("SEX",)
DEFAULT_GEO_LEVEL = "All"
DEFAULT_GEO_SUBSET = ("17",)
