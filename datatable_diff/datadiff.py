"""
DataTable Diff - key-based comparison of two versions of a table

Features:
- Composite-key row matching (added, removed, modified)
- Column-level differences on canonical, locale-independent values
- Optional character-level diff of every changed cell
- Fail-fast handling of missing key columns and duplicate keys
- Optional thread pool for indexing and row comparison
- Schema comparison and summary helpers
"""

import logging
import warnings
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Collection, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from .canonical import MISSING_COLUMN, canonicalize
from .chardiff import DEFAULT_CHAR_DIFF_ADAPTER, CharDiffAdapter, CharDiffModel
from .exceptions import DuplicateKeyError, SchemaDriftWarning, SchemaError


__version__ = "0.1.0"
__all__ = [
    "RowChangeType", "CellDiff", "RowDiff", "TableRow", "SchemaDiff", "DiffResult",
    "DataTableDiff", "composite_key", "index_table", "compare_rows",
]

logger = logging.getLogger(__name__)

KEY_SEPARATOR = "||"


class RowChangeType(Enum):
    """How a keyed row changed between the old and the new table"""
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"


@dataclass(frozen=True)
class CellDiff:
    """Represents a single cell difference"""
    column: str
    old_value: str
    new_value: str
    char_diff: Optional[CharDiffModel] = None

    def __str__(self) -> str:
        return f"CellDiff({self.column}: {self.old_value!r} -> {self.new_value!r})"

    def inverted(self) -> "CellDiff":
        """Get the same difference seen from the new table's side"""
        char_diff = self.char_diff.inverted() if self.char_diff is not None else None
        return CellDiff(self.column, self.new_value, self.old_value, char_diff)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            'column': self.column,
            'old_value': self.old_value,
            'new_value': self.new_value,
            'char_diff': self.char_diff.to_list() if self.char_diff is not None else None,
        }


@dataclass(frozen=True)
class RowDiff:
    """One added, removed or modified row, identified by its composite key"""
    change_type: RowChangeType
    row_key: str
    cell_diffs: Optional[Tuple[CellDiff, ...]] = None

    def __post_init__(self):
        if self.change_type is RowChangeType.MODIFIED:
            if not self.cell_diffs:
                raise ValueError(f"Modified row {self.row_key!r} needs at least one cell difference")
            object.__setattr__(self, 'cell_diffs', tuple(self.cell_diffs))
        elif self.cell_diffs is not None:
            raise ValueError(f"{self.change_type.value} row {self.row_key!r} cannot carry cell differences")

    def __str__(self) -> str:
        cells = f", cells: {len(self.cell_diffs)}" if self.cell_diffs else ""
        return f"RowDiff({self.change_type.value} {self.row_key!r}{cells})"

    def inverted(self) -> "RowDiff":
        """Get the record a diff of (new, old) reports for the same key"""
        if self.change_type is RowChangeType.ADDED:
            return RowDiff(RowChangeType.REMOVED, self.row_key)
        if self.change_type is RowChangeType.REMOVED:
            return RowDiff(RowChangeType.ADDED, self.row_key)
        return RowDiff(self.change_type, self.row_key, tuple(c.inverted() for c in self.cell_diffs))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            'change_type': self.change_type.value,
            'row_key': self.row_key,
            'cell_diffs': [c.to_dict() for c in self.cell_diffs] if self.cell_diffs else None,
        }


@dataclass(frozen=True)
class TableRow:
    """A row handle: position and index label in its table, values by column"""
    position: int
    label: Any
    values: Mapping[str, Any]

    def __getitem__(self, column: str) -> Any:
        return self.values[column]

    def has_column(self, column: str) -> bool:
        return column in self.values


@dataclass(frozen=True)
class SchemaDiff:
    """Column-level comparison of the old and new schemas; dtypes are informational"""
    added_columns: Tuple[str, ...]
    removed_columns: Tuple[str, ...]
    common_columns: Tuple[str, ...]
    dtype_changes: Mapping[str, Tuple[str, str]]
    column_order_changed: bool

    @classmethod
    def from_tables(cls, old: pd.DataFrame, new: pd.DataFrame) -> "SchemaDiff":
        old_dtypes = {col: str(dtype) for col, dtype in old.dtypes.items()}
        new_dtypes = {col: str(dtype) for col, dtype in new.dtypes.items()}
        common = tuple(col for col in old_dtypes if col in new_dtypes)
        return cls(
            added_columns=tuple(col for col in new_dtypes if col not in old_dtypes),
            removed_columns=tuple(col for col in old_dtypes if col not in new_dtypes),
            common_columns=common,
            dtype_changes={col: (old_dtypes[col], new_dtypes[col])
                           for col in common if old_dtypes[col] != new_dtypes[col]},
            column_order_changed=common != tuple(col for col in new_dtypes if col in old_dtypes),
        )

    def has_changes(self) -> bool:
        """Check if the schemas differ in columns, dtypes or column order"""
        return bool(self.added_columns or self.removed_columns or
                    self.dtype_changes or self.column_order_changed)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        result = asdict(self)
        result['dtype_changes'] = dict(self.dtype_changes)
        return result


@dataclass
class DiffResult:
    """Ordered row differences plus a summary and the schema comparison"""
    row_diffs: List[RowDiff]
    summary: Dict[str, Any]
    schema_diff: Optional[SchemaDiff] = None

    def __str__(self) -> str:
        return (f"DiffResult(added: {self.summary['added_rows']}, removed: {self.summary['removed_rows']}, "
                f"modified: {self.summary['modified_rows']})")

    def __repr__(self) -> str:
        return self.__str__()

    def _of_type(self, change_type: RowChangeType) -> List[RowDiff]:
        return [d for d in self.row_diffs if d.change_type is change_type]

    def get_added(self) -> List[RowDiff]:
        """Get added rows"""
        return self._of_type(RowChangeType.ADDED)

    def get_removed(self) -> List[RowDiff]:
        """Get removed rows"""
        return self._of_type(RowChangeType.REMOVED)

    def get_modified(self) -> List[RowDiff]:
        """Get modified rows"""
        return self._of_type(RowChangeType.MODIFIED)

    def get_cell_diffs(self) -> List[Tuple[str, CellDiff]]:
        """Get (row key, cell difference) pairs in row order"""
        return [(d.row_key, c) for d in self.get_modified() for c in d.cell_diffs]

    def get_cell_diffs_df(self) -> pd.DataFrame:
        """Get cell differences as a DataFrame"""
        columns = ['row_key', 'column', 'old_value', 'new_value']
        rows = [(key, c.column, c.old_value, c.new_value) for key, c in self.get_cell_diffs()]
        return pd.DataFrame(rows, columns=columns)

    def has_changes(self) -> bool:
        """Check if there are any changes between the tables"""
        return not self.summary['identical']

    def to_dict(self) -> Dict[str, Any]:
        """Convert the entire result to a dictionary"""
        result = {
            'summary': self.summary,
            'row_diffs': [d.to_dict() for d in self.row_diffs],
        }
        if self.schema_diff:
            result['schema_diff'] = self.schema_diff.to_dict()
        return result


def composite_key(values: Any, key_columns: Sequence[str]) -> str:
    """
    Build the composite key of a row.

    Each key value is canonicalized, '\\' and '|' are escaped, and the parts
    are joined with '||'. A presentation layer rebuilding keys from displayed
    rows must call this function rather than joining values itself.

    Args:
        values: Anything indexable by column name (mapping, pd.Series, TableRow)
        key_columns: Key column names, in key order

    Returns:
        The composite key string
    """
    parts = []
    for column in key_columns:
        part = canonicalize(values[column], column=column)
        parts.append(part.replace("\\", "\\\\").replace("|", "\\|"))
    return KEY_SEPARATOR.join(parts)


def iter_rows(table: pd.DataFrame) -> Iterable[TableRow]:
    """Yield every row of a table as a TableRow, in table order"""
    records = table.to_dict('records')
    for position, (label, record) in enumerate(zip(table.index, records)):
        yield TableRow(position=position, label=label, values=record)


def index_table(table: pd.DataFrame, key_columns: Sequence[str], name: str = "old") -> Dict[str, TableRow]:
    """
    Map every row of a table to its composite key.

    Args:
        table: The table to index; it is not modified
        key_columns: Key column names
        name: Table name used in error messages ("old" or "new")

    Returns:
        Dict of composite key -> TableRow, in table row order

    Raises:
        SchemaError: If the key columns are empty or not in the table
        DuplicateKeyError: If two rows produce the same key
    """
    _validate_table(table, name)
    _validate_key_columns(table, key_columns, name)

    index: Dict[str, TableRow] = {}
    for row in iter_rows(table):
        key = composite_key(row, key_columns)
        existing = index.get(key)
        if existing is not None:
            raise DuplicateKeyError(key, table=name, first_row=existing, second_row=row)
        index[key] = row

    logger.debug("Indexed %d rows of %s table on %s", len(index), name, list(key_columns))
    return index


def compare_rows(
    old_row: TableRow,
    new_row: TableRow,
    char_level: bool = False,
    ignore_whitespace: bool = True,
    char_diff_adapter: Optional[CharDiffAdapter] = None,
    char_diff_columns: Optional[Collection[str]] = None
) -> List[CellDiff]:
    """
    Compare two matched rows column by column.

    Only the old row's columns are visited, in old schema order. A column the
    new row lacks is compared against the MISSING_COLUMN sentinel.

    Args:
        old_row: Row from the old table
        new_row: Row with the same key from the new table
        char_level: If True, attach a character-level diff to each CellDiff
        ignore_whitespace: Passed through to the char diff adapter
        char_diff_adapter: Adapter to use instead of the difflib default
        char_diff_columns: If given, only these columns get a character-level diff

    Returns:
        List of CellDiff for the columns whose canonical values differ
    """
    adapter = char_diff_adapter if char_diff_adapter is not None else DEFAULT_CHAR_DIFF_ADAPTER
    cell_diffs = []

    for column, raw_old in old_row.values.items():
        old_value = canonicalize(raw_old, column=column)
        if new_row.has_column(column):
            new_value = canonicalize(new_row[column], column=column)
        else:
            new_value = MISSING_COLUMN

        if old_value == new_value:
            continue

        char_diff = None
        if char_level and (char_diff_columns is None or column in char_diff_columns):
            char_diff = adapter.compute(old_value, new_value, ignore_whitespace)

        cell_diffs.append(CellDiff(column, old_value, new_value, char_diff))

    return cell_diffs


def _validate_table(table: Any, name: str) -> None:
    if not isinstance(table, pd.DataFrame):
        raise TypeError(f"The {name} table must be a pandas DataFrame, got {type(table).__name__}")
    if not table.columns.is_unique:
        duplicated = list(table.columns[table.columns.duplicated()])
        raise SchemaError(f"The {name} table has duplicate column names: {duplicated}")


def _validate_key_columns(table: pd.DataFrame, key_columns: Sequence[str], name: str) -> None:
    if not isinstance(key_columns, (list, tuple)):
        raise TypeError("key_columns must be a list or tuple of column names")
    if len(key_columns) == 0:
        raise SchemaError("key_columns cannot be empty")

    missing = [col for col in key_columns if col not in table.columns]
    if missing:
        raise SchemaError(f"Key columns {missing} not found in {name} table. "
                          f"Available columns: {list(table.columns)}")


class DataTableDiff:
    """
    Main class for comparing two versions of a table.

    Rows are matched on a composite key; the result lists removed and
    modified rows in old table order, followed by added rows in new table
    order. Unchanged rows are omitted.

    Example:
        >>> differ = DataTableDiff(char_level=True)
        >>> row_diffs = differ.diff(old, new, key_columns=['BOM_SID', 'sequence'])
    """

    def __init__(
        self,
        char_level: bool = False,
        ignore_whitespace: bool = True,
        char_diff_adapter: Optional[CharDiffAdapter] = None,
        char_diff_columns: Optional[Sequence[str]] = None,
        max_workers: Optional[int] = None
    ):
        """
        Initialize DataTableDiff

        Args:
            char_level: If True, compute a character-level diff for every changed cell
            ignore_whitespace: Whitespace sensitivity of the character-level diff
            char_diff_adapter: Adapter computing character-level diffs (difflib by default)
            char_diff_columns: Restrict character-level diffs to these old-table columns
            max_workers: If set, index and compare rows on a thread pool of this size
        """
        if char_diff_adapter is not None and not callable(getattr(char_diff_adapter, 'compute', None)):
            raise TypeError("char_diff_adapter must provide a compute(old, new, ignore_whitespace) method")
        if char_diff_columns is not None and not isinstance(char_diff_columns, (list, tuple)):
            raise TypeError("char_diff_columns must be a list or tuple of column names")
        if max_workers is not None and max_workers < 1:
            raise ValueError("max_workers must be at least 1")

        self.char_level = char_level
        self.ignore_whitespace = ignore_whitespace
        self.char_diff_adapter = char_diff_adapter if char_diff_adapter is not None else DEFAULT_CHAR_DIFF_ADAPTER
        self.char_diff_columns = list(char_diff_columns) if char_diff_columns is not None else None
        self.max_workers = max_workers

    def diff(self, old: pd.DataFrame, new: pd.DataFrame, key_columns: Sequence[str]) -> List[RowDiff]:
        """
        Compute the ordered row differences between two tables

        Raises:
            TypeError: If the inputs are not pandas DataFrames
            SchemaError: If a key column or char diff column is missing
            DuplicateKeyError: If a table holds two rows with the same key
            ValueConversionError: If a cell value has no canonical form
        """
        return self._diff(old, new, key_columns, caller_depth=2)

    def _diff(
        self,
        old: pd.DataFrame,
        new: pd.DataFrame,
        key_columns: Sequence[str],
        caller_depth: int
    ) -> List[RowDiff]:
        # caller_depth counts frames from here up to the user code a warning should point at
        self._validate_inputs(old, new, key_columns, stacklevel=caller_depth + 2)
        old_index, new_index = self._build_indexes(old, new, key_columns)

        matched = [(old_row, new_index[key]) for key, old_row in old_index.items() if key in new_index]
        cells_by_key = dict(zip(
            (key for key in old_index if key in new_index),
            self._compare_matched(matched),
        ))

        row_diffs = []
        for key in old_index:
            if key not in new_index:
                row_diffs.append(RowDiff(RowChangeType.REMOVED, key))
                continue
            cells = cells_by_key[key]
            if cells:
                row_diffs.append(RowDiff(RowChangeType.MODIFIED, key, tuple(cells)))

        for key in new_index:
            if key not in old_index:
                row_diffs.append(RowDiff(RowChangeType.ADDED, key))

        logger.info(
            "Table diff on %s: %d old rows, %d new rows, %d differences",
            list(key_columns), len(old_index), len(new_index), len(row_diffs)
        )
        return row_diffs

    def compare(self, old: pd.DataFrame, new: pd.DataFrame, key_columns: Sequence[str]) -> DiffResult:
        """
        Compare two tables and return the row differences with a summary

        Args:
            old: The old version of the table
            new: The new version of the table
            key_columns: Columns that uniquely identify a row

        Returns:
            DiffResult object containing all differences
        """
        return self._compare(old, new, key_columns, caller_depth=2)

    def _compare(
        self,
        old: pd.DataFrame,
        new: pd.DataFrame,
        key_columns: Sequence[str],
        caller_depth: int
    ) -> DiffResult:
        row_diffs = self._diff(old, new, key_columns, caller_depth + 1)
        counts = {change_type: 0 for change_type in RowChangeType}
        for d in row_diffs:
            counts[d.change_type] += 1

        summary = {
            'total_rows_old': len(old),
            'total_rows_new': len(new),
            'added_rows': counts[RowChangeType.ADDED],
            'removed_rows': counts[RowChangeType.REMOVED],
            'modified_rows': counts[RowChangeType.MODIFIED],
            'unchanged_rows': len(old) - counts[RowChangeType.REMOVED] - counts[RowChangeType.MODIFIED],
            'total_cell_changes': sum(len(d.cell_diffs) for d in row_diffs if d.cell_diffs),
            'identical': len(row_diffs) == 0
        }
        return DiffResult(row_diffs=row_diffs, summary=summary, schema_diff=self.compare_schema(old, new))

    def compare_schema(self, old: pd.DataFrame, new: pd.DataFrame) -> SchemaDiff:
        """
        Compare only the schema (columns and dtypes) of two tables

        Args:
            old: The old table
            new: The new table

        Returns:
            SchemaDiff object with schema differences
        """
        _validate_table(old, "old")
        _validate_table(new, "new")
        return SchemaDiff.from_tables(old, new)

    def _validate_inputs(
        self,
        old: pd.DataFrame,
        new: pd.DataFrame,
        key_columns: Sequence[str],
        stacklevel: int
    ) -> None:
        """Validate input parameters"""
        _validate_table(old, "old")
        _validate_table(new, "new")
        _validate_key_columns(old, key_columns, "old")
        _validate_key_columns(new, key_columns, "new")

        if self.char_level and self.char_diff_columns is not None:
            missing = [col for col in self.char_diff_columns if col not in old.columns]
            if missing:
                raise SchemaError(f"Char diff columns {missing} not found in old table")

        new_only = [col for col in new.columns if col not in old.columns]
        if new_only:
            warnings.warn(f"Columns {new_only} exist only in the new table and are not compared",
                          SchemaDriftWarning, stacklevel=stacklevel)

    def _build_indexes(
        self,
        old: pd.DataFrame,
        new: pd.DataFrame,
        key_columns: Sequence[str]
    ) -> Tuple[Dict[str, TableRow], Dict[str, TableRow]]:
        """Index both tables, in parallel when a thread pool is configured"""
        if self.max_workers is None:
            return index_table(old, key_columns, "old"), index_table(new, key_columns, "new")

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            old_future = executor.submit(index_table, old, key_columns, "old")
            new_future = executor.submit(index_table, new, key_columns, "new")
            return old_future.result(), new_future.result()

    def _compare_matched(self, pairs: List[Tuple[TableRow, TableRow]]) -> List[List[CellDiff]]:
        """Compare matched row pairs; results keep the order of the pairs"""
        if self.max_workers is None or len(pairs) < 2:
            return [self._compare_pair(pair) for pair in pairs]

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            return list(executor.map(self._compare_pair, pairs))

    def _compare_pair(self, pair: Tuple[TableRow, TableRow]) -> List[CellDiff]:
        old_row, new_row = pair
        return compare_rows(
            old_row, new_row,
            char_level=self.char_level,
            ignore_whitespace=self.ignore_whitespace,
            char_diff_adapter=self.char_diff_adapter,
            char_diff_columns=self.char_diff_columns,
        )


# Convenience functions
def diff_tables(
    old: pd.DataFrame,
    new: pd.DataFrame,
    key_columns: Sequence[str],
    char_level: bool = False,
    ignore_whitespace: bool = True,
    **kwargs
) -> List[RowDiff]:
    """
    Convenience function returning the ordered row differences of two tables.

    Args:
        old: The old version of the table
        new: The new version of the table
        key_columns: Columns that uniquely identify a row
        char_level: If True, attach character-level diffs to changed cells
        ignore_whitespace: Whitespace sensitivity of the character-level diff
        **kwargs: Additional arguments passed to DataTableDiff

    Example:
        >>> diff_tables(old, new, ['BOM_SID', 'sequence'])
        [RowDiff(removed '5000||02'), RowDiff(modified '5000||03', cells: 1), RowDiff(added '5000||04')]
    """
    differ = DataTableDiff(char_level=char_level, ignore_whitespace=ignore_whitespace, **kwargs)
    return differ._diff(old, new, key_columns, caller_depth=2)


def compare_tables(old: pd.DataFrame, new: pd.DataFrame, key_columns: Sequence[str], **kwargs) -> DiffResult:
    """Convenience function returning a DiffResult for two tables"""
    return DataTableDiff(**kwargs)._compare(old, new, key_columns, caller_depth=2)


def quick_diff(old: pd.DataFrame, new: pd.DataFrame, key_columns: Sequence[str]) -> Dict[str, Any]:
    """
    Get a quick summary of differences between two tables.

    Example:
        >>> quick_diff(old, new, key_columns=['id'])
        {'added': 1, 'removed': 1, 'modified': 1, 'unchanged': 1, 'identical': False}
    """
    result = DataTableDiff()._compare(old, new, key_columns, caller_depth=2)
    return {
        'added': result.summary['added_rows'],
        'removed': result.summary['removed_rows'],
        'modified': result.summary['modified_rows'],
        'unchanged': result.summary['unchanged_rows'],
        'identical': result.summary['identical']
    }


def are_tables_equal(old: pd.DataFrame, new: pd.DataFrame, key_columns: Sequence[str]) -> bool:
    """Check if two tables hold the same rows under the given key"""
    return len(DataTableDiff()._diff(old, new, key_columns, caller_depth=2)) == 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)

    columns = ['BOM_SID', 'sequence', 'amount', 'quantity']
    old = pd.DataFrame([(5000, "01", 100, 50), (5000, "02", 300, 70), (5000, "03", 500, 10)], columns=columns)
    new = pd.DataFrame([(5000, "01", 100, 50), (5000, "03", 700, 10), (5000, "04", 500, 10)], columns=columns)

    for row_diff in diff_tables(old, new, ['BOM_SID', 'sequence'], char_level=True):
        print(row_diff)
        for cell in row_diff.cell_diffs or ():
            print(f"  {cell}  {cell.char_diff.to_list()}")
