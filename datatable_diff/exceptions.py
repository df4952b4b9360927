"""
Errors and warnings raised while diffing two tables
"""

from typing import Any, Optional


class DataDiffError(Exception):
    """Base class for every error raised by datatable_diff"""


class SchemaError(DataDiffError, ValueError):
    """A requested column does not exist in a table's schema"""


class DuplicateKeyError(DataDiffError, ValueError):
    """Two rows of the same table produce the same composite key"""

    def __init__(self, key: str, table: str, first_row: Any, second_row: Any):
        self.key = key
        self.table = table
        self.first_row = first_row
        self.second_row = second_row
        super().__init__(
            f"Duplicate key {key!r} in {table} table: "
            f"row {first_row.label!r} (position {first_row.position}) and "
            f"row {second_row.label!r} (position {second_row.position})"
        )


class ValueConversionError(DataDiffError, TypeError):
    """A cell value has no deterministic canonical string form"""

    def __init__(self, value: Any, column: Optional[str] = None):
        self.value = value
        self.column = column
        where = f" in column {column!r}" if column is not None else ""
        super().__init__(
            f"Cannot canonicalize value of type {type(value).__name__}{where}: {value!r}"
        )


class SchemaDriftWarning(UserWarning):
    """The new table has columns that the old table lacks"""
