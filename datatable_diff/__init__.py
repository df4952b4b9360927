"""
DataTable Diff - key-based comparison of two versions of a table

Rows of an "old" and a "new" pandas DataFrame are matched on a composite key
and every key is reported as added, removed or modified, with per-column
differences on canonical (locale-independent) cell values.

Basic Usage:
    >>> from datatable_diff import diff_tables, DataTableDiff
    >>>
    >>> # Ordered row differences
    >>> row_diffs = diff_tables(old, new, key_columns=['BOM_SID', 'sequence'])
    >>> for row_diff in row_diffs:
    ...     print(row_diff.change_type, row_diff.row_key, row_diff.cell_diffs)
    >>>
    >>> # Character-level detail for changed cells
    >>> differ = DataTableDiff(char_level=True, ignore_whitespace=False)
    >>> result = differ.compare(old, new, key_columns=['id'])
    >>> print(result.summary)
    >>> cell_diffs = result.get_cell_diffs_df()
"""

from .canonical import (
    MISSING_COLUMN,
    NULL_VALUE,
    canonicalize,
    is_null,
)
from .chardiff import (
    CharDiffAdapter,
    CharDiffModel,
    CharSpan,
    DifflibCharDiffAdapter,
    SpanKind,
)
from .datadiff import (
    # Main classes
    DataTableDiff,
    DiffResult,
    RowChangeType,
    RowDiff,
    CellDiff,
    SchemaDiff,
    TableRow,

    # Core operations
    KEY_SEPARATOR,
    composite_key,
    index_table,
    compare_rows,

    # Convenience functions
    diff_tables,
    compare_tables,
    quick_diff,
    are_tables_equal,

    # Version
    __version__,
)
from .exceptions import (
    DataDiffError,
    DuplicateKeyError,
    SchemaDriftWarning,
    SchemaError,
    ValueConversionError,
)

__all__ = [
    # Main classes
    "DataTableDiff",
    "DiffResult",
    "RowChangeType",
    "RowDiff",
    "CellDiff",
    "SchemaDiff",
    "TableRow",

    # Core operations
    "KEY_SEPARATOR",
    "composite_key",
    "index_table",
    "compare_rows",
    "canonicalize",
    "is_null",
    "NULL_VALUE",
    "MISSING_COLUMN",

    # Character-level diff
    "CharDiffAdapter",
    "CharDiffModel",
    "CharSpan",
    "DifflibCharDiffAdapter",
    "SpanKind",

    # Convenience functions
    "diff_tables",
    "compare_tables",
    "quick_diff",
    "are_tables_equal",

    # Errors
    "DataDiffError",
    "SchemaError",
    "DuplicateKeyError",
    "ValueConversionError",
    "SchemaDriftWarning",

    # Version
    "__version__",
]
