from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional, Tuple


class FieldKind(Enum):
    NUMERIC = "numeric"
    TIME_INTERVAL = "time_interval"
    CATEGORICAL = "categorical"
    GEOGRAPHY = "geography"


@dataclass(frozen=True)
class FieldSpec:
    """
    One entry of the PUMS field catalog.

    lookup_token is the variable name used against the variable dictionary
    endpoint. It only differs from name for the State geography (ST).
    """
    name: str
    kind: FieldKind
    lookup_token: str
    label: str = ""

    @property
    def needs_lookup(self) -> bool:
        return self.kind is not FieldKind.NUMERIC


def _field(name: str, kind: FieldKind, label: str, token: Optional[str] = None) -> Tuple[str, FieldSpec]:
    return name, FieldSpec(name=name, kind=kind, lookup_token=token or name, label=label)


# ---------------------------------------------------------------------------
# Field catalog (closed set, no schema discovery)
# ---------------------------------------------------------------------------

FIELD_CATALOG: Mapping[str, FieldSpec] = MappingProxyType(dict([
    # Plain numeric
    _field("AGEP", FieldKind.NUMERIC, "Age"),
    _field("GASP", FieldKind.NUMERIC, "Gas cost (monthly)"),
    _field("GRPIP", FieldKind.NUMERIC, "Gross rent as a percentage of household income"),
    _field("JWMNP", FieldKind.NUMERIC, "Travel time to work (minutes)"),
    _field("PWGTP", FieldKind.NUMERIC, "Person weight"),
    # Interval-coded times
    _field("JWAP", FieldKind.TIME_INTERVAL, "Time of arrival at work"),
    _field("JWDP", FieldKind.TIME_INTERVAL, "Time of departure for work"),
    # Categorical
    _field("SEX", FieldKind.CATEGORICAL, "Sex"),
    _field("FER", FieldKind.CATEGORICAL, "Gave birth to child within the past 12 months"),
    _field("HHL", FieldKind.CATEGORICAL, "Household language"),
    _field("HISPEED", FieldKind.CATEGORICAL, "Broadband internet service"),
    _field("JWTRNS", FieldKind.CATEGORICAL, "Means of transportation to work"),
    _field("SCH", FieldKind.CATEGORICAL, "School enrollment"),
    _field("SCHL", FieldKind.CATEGORICAL, "Educational attainment"),
    # Geography
    _field("Region", FieldKind.GEOGRAPHY, "Region", token="REGION"),
    _field("Division", FieldKind.GEOGRAPHY, "Division", token="DIVISION"),
    _field("State", FieldKind.GEOGRAPHY, "State", token="ST"),
]))

WEIGHT_FIELD = "PWGTP"

NUMERIC_VARS: FrozenSet[str] = frozenset(
    name for name, spec in FIELD_CATALOG.items()
    if spec.kind in (FieldKind.NUMERIC, FieldKind.TIME_INTERVAL)
)
CATEGORICAL_VARS: FrozenSet[str] = frozenset(
    name for name, spec in FIELD_CATALOG.items() if spec.kind is FieldKind.CATEGORICAL
)

# ---------------------------------------------------------------------------
# Geography
# ---------------------------------------------------------------------------

# "All" is a display name only; upstream has no nationwide granularity for
# microdata so it is queried as State.
GEO_LEVEL_TOKENS: Mapping[str, str] = MappingProxyType({
    "All": "State",
    "Region": "Region",
    "Division": "Division",
    "State": "State",
})
GEO_LEVELS: FrozenSet[str] = frozenset(GEO_LEVEL_TOKENS)

# Lower-case column names returned by the API, in resolution priority order.
GEO_COLUMN_TOKENS: Tuple[Tuple[str, str], ...] = (
    ("region", "REGION"),
    ("division", "DIVISION"),
    ("state", "ST"),
)

YEAR_COL = "Year"


def get_field(name: str) -> Optional[FieldSpec]:
    return FIELD_CATALOG.get(name)

