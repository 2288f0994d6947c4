"""Formatters package for svcps.

This package turns typed process values into display text:

- functions: Closed registry of named formatting functions
- columns: Resolution of requested fields into Column descriptors
"""

from svcps.formatters.columns import (
    build_columns,
    column_alignments,
    header_row,
    parse_alignment,
    parse_field,
    parse_format_spec,
)
from svcps.formatters.functions import (
    FUNCTIONS,
    format_duration,
    functions_for,
    human_rel_time,
    ibytes,
    resolve_function,
)

__all__ = [
    "FUNCTIONS",
    "build_columns",
    "column_alignments",
    "format_duration",
    "functions_for",
    "header_row",
    "human_rel_time",
    "ibytes",
    "parse_alignment",
    "parse_field",
    "parse_format_spec",
    "resolve_function",
]
