"""
Tests for the result formatter: raw API table -> typed, labelled table.
"""

import pandas as pd
import pytest

from pums_explorer.core.catalog import FieldKind
from pums_explorer.core.data_loader import table_from_payload
from pums_explorer.core.formatter import (
    ResultFormatterError,
    format_result,
    is_formatted,
    promote_header_row,
    resolve_value,
)


def recording_lookup(tables):
    """A lookup_fn that serves fixed dictionaries and records requested tokens."""
    calls = []

    def lookup(token, year):
        calls.append((token, year))
        return tables[token]

    lookup.calls = calls
    return lookup


class TestPromoteHeaderRow:

    def test_first_row_becomes_columns(self, raw_payload):
        df = promote_header_row(table_from_payload(raw_payload))
        assert list(df.columns) == ["AGEP", "JWAP", "PWGTP", "SEX", "state"]
        assert len(df) == 3
        assert df.index.tolist() == [0, 1, 2]

    def test_year_column_keeps_its_name(self, raw_payload):
        raw = table_from_payload(raw_payload)
        raw["Year"] = 2022
        df = promote_header_row(raw)
        assert list(df.columns)[-1] == "Year"

    def test_empty_table_rejected(self):
        with pytest.raises(ResultFormatterError):
            promote_header_row(pd.DataFrame())


class TestFormatResult:

    def test_full_formatting(self, fake_api, raw_payload):
        df = format_result(table_from_payload(raw_payload), 2022)

        assert list(df.columns) == ["AGEP", "JWAP", "PWGTP", "SEX", "state"]
        assert df["AGEP"].tolist() == [34, 52, 19]
        assert pd.api.types.is_numeric_dtype(df["AGEP"])
        assert pd.api.types.is_numeric_dtype(df["PWGTP"])
        assert df["JWAP"].tolist() == ["6:04 a.m.", "N/A", "12:34 p.m."]
        assert df["SEX"].tolist() == ["Male", "Female", "Female"]
        assert df["state"].tolist() == ["Illinois/IL"] * 3

    def test_tagged_as_census(self, fake_api, raw_payload):
        df = format_result(table_from_payload(raw_payload), 2022)
        assert is_formatted(df)
        assert df.attrs["year"] == 2022

    def test_lookups_fetched_for_given_year(self, fake_api, raw_payload):
        format_result(table_from_payload(raw_payload), 2019)
        assert fake_api.variable_calls("SEX")[0].endswith("/data/2019/acs/acs1/pums/variables/SEX.json")

    def test_state_column_uses_st_token(self, fake_api, raw_payload):
        format_result(table_from_payload(raw_payload), 2022)
        assert fake_api.variable_calls("ST")
        assert not fake_api.variable_calls("State")

    def test_unmatched_codes_become_missing(self, fake_api):
        raw = table_from_payload([["AGEP", "PWGTP", "SEX"], ["30", "10", "1"], ["40", "12", "7"]])
        df = format_result(raw, 2022)
        assert df["SEX"].iloc[0] == "Male"
        assert pd.isna(df["SEX"].iloc[1])

    def test_zero_padded_dictionary_codes_match(self, fake_api):
        raw = table_from_payload([["PWGTP", "SCHL", "state"], ["10", "1", "6"], ["11", "21", "06"]])
        df = format_result(raw, 2022)
        assert df["SCHL"].tolist() == ["No schooling completed", "Bachelor's degree"]
        assert df["state"].tolist() == ["California/CA", "California/CA"]

    def test_unknown_columns_left_alone(self, fake_api):
        raw = table_from_payload([["PWGTP", "SERIALNO"], ["10", "2022HU0001"]])
        df = format_result(raw, 2022)
        assert df["SERIALNO"].tolist() == ["2022HU0001"]
        assert fake_api.calls == []

    def test_capitalized_state_field_uses_st(self):
        lookup = recording_lookup({"ST": {"17": "Illinois/IL"}})
        raw = table_from_payload([["PWGTP", "State"], ["10", "17"]])
        df = format_result(raw, 2022, lookup_fn=lookup)
        assert df["State"].tolist() == ["Illinois/IL"]
        assert lookup.calls == [("ST", 2022)]


class TestGeographyPriority:

    def test_region_chosen_over_division_and_state(self):
        lookup = recording_lookup({
            "REGION": {"2": "Midwest"},
            "DIVISION": {"3": "East North Central"},
            "ST": {"17": "Illinois/IL"},
        })
        raw = table_from_payload([["PWGTP", "state", "division", "region"], ["10", "17", "3", "2"]])
        df = format_result(raw, 2022, lookup_fn=lookup)

        assert df["region"].tolist() == ["Midwest"]
        assert df["state"].tolist() == ["17"]
        assert df["division"].tolist() == ["3"]
        assert [t for t, _ in lookup.calls] == ["REGION"]

    def test_division_chosen_over_state(self):
        lookup = recording_lookup({"DIVISION": {"3": "East North Central"}, "ST": {}})
        raw = table_from_payload([["PWGTP", "state", "division"], ["10", "17", "3"]])
        df = format_result(raw, 2022, lookup_fn=lookup)
        assert df["division"].tolist() == ["East North Central"]
        assert [t for t, _ in lookup.calls] == ["DIVISION"]


class TestYearColumn:

    def test_year_restored_as_integer(self, fake_api, raw_payload):
        raw = table_from_payload(raw_payload)
        raw["Year"] = 2021
        df = format_result(raw, 2021)
        assert "Year" in df.columns
        assert df["Year"].tolist() == [2021, 2021, 2021]
        assert pd.api.types.is_integer_dtype(df["Year"])


class TestIdempotence:

    def test_second_pass_is_a_no_op(self, fake_api, raw_payload):
        df = format_result(table_from_payload(raw_payload), 2022)
        calls = len(fake_api.calls)
        again = format_result(df, 2022)
        assert again is df
        assert len(fake_api.calls) == calls

    def test_untagged_formatted_table_rejected(self, fake_api, raw_payload):
        df = format_result(table_from_payload(raw_payload), 2022)
        df.attrs.clear()
        with pytest.raises(ResultFormatterError, match="already has field-named columns"):
            format_result(df, 2022)


class TestResolveValue:

    def test_numeric(self):
        assert resolve_value(FieldKind.NUMERIC, "42") == 42

    def test_categorical(self):
        assert resolve_value(FieldKind.CATEGORICAL, "01", {"1": "Male"}) == "Male"
        assert resolve_value(FieldKind.CATEGORICAL, "3", {"1": "Male"}) is None

    def test_time_interval(self):
        lookup = {"73": "6:00 a.m. to 6:09 a.m.", "0": "N/A"}
        assert resolve_value(FieldKind.TIME_INTERVAL, "73", lookup) == "6:04 a.m."
        assert resolve_value(FieldKind.TIME_INTERVAL, "0", lookup) == "N/A"

    def test_lookup_required(self):
        with pytest.raises(ResultFormatterError):
            resolve_value(FieldKind.CATEGORICAL, "1")
