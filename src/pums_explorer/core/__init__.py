"""
Core data layer.

This package contains:
- catalog: the fixed set of supported fields and geography levels
- validators: parameter checks that gate every query
- data_loader: HTTP fetch + JSON decode against api.census.gov
- lookup_resolver: per-variable, per-year code -> label dictionaries
- timecodes: midpoint decoding of interval-coded time fields
- formatter: raw API table -> typed, labelled table
- query_engine: single-year and multi-year queries
- summary: weighted statistics over formatted tables
"""
