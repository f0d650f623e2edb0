"""
PUMS microdata explorer.

Retrieves American Community Survey public-use microdata from the Census
API and turns the code-encoded response into a labelled, typed table.
"""
