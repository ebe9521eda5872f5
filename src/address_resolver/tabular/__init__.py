from .columns import (
    COLUMN_PATTERNS,
    ColumnRoleResolver,
    ColumnRoles,
    extract_raw_address,
    parse_prior_coordinates,
)
from .io import default_output_path, export_rows, read_records

__all__ = [
    "COLUMN_PATTERNS",
    "ColumnRoleResolver",
    "ColumnRoles",
    "extract_raw_address",
    "parse_prior_coordinates",
    "default_output_path",
    "export_rows",
    "read_records",
]
