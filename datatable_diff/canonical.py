"""
Canonical string forms for cell values

Every value is turned into one string that does not depend on the locale or
the runtime environment, so that two logically equal values always compare
equal. Nulls and columns missing from a schema map to reserved sentinels.
"""

import math
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID

import numpy as np
import pandas as pd

from .exceptions import ValueConversionError


NULL_VALUE = "<NULL>"
MISSING_COLUMN = "<MISSING>"
SENTINELS = (NULL_VALUE, MISSING_COLUMN)

ESCAPE_CHAR = "\\"


def is_null(value: Any) -> bool:
    """Check if a scalar value stands for 'no value' (None, NaN, NA, NaT)"""
    if value is None or value is pd.NA or value is pd.NaT:
        return True
    if isinstance(value, (float, np.floating)):
        return math.isnan(value)
    if isinstance(value, (np.datetime64, np.timedelta64)):
        return bool(np.isnat(value))
    if isinstance(value, Decimal):
        return value.is_nan()
    return False


def canonicalize(value: Any, column: Optional[str] = None) -> str:
    """
    Convert a cell value into its canonical string form.

    Args:
        value: The cell value
        column: Column name, only used to label a conversion error

    Returns:
        The canonical string

    Raises:
        ValueConversionError: If the value's type has no defined canonical form
    """
    if is_null(value):
        return NULL_VALUE

    # Enum before str and int: mixin members are instances of both
    if isinstance(value, Enum):
        return canonicalize(value.value, column=column)

    if isinstance(value, str):
        return _escape_text(str(value))

    # bool before int: bool is an int subclass
    if isinstance(value, (bool, np.bool_)):
        return "True" if value else "False"

    if isinstance(value, (int, np.integer)):
        return str(int(value))

    if isinstance(value, (float, np.floating)):
        return _format_float(value)

    if isinstance(value, Decimal):
        return _format_decimal(value)

    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, np.datetime64):
        return pd.Timestamp(value).isoformat()

    if isinstance(value, (timedelta, np.timedelta64)):
        return pd.Timedelta(value).isoformat()

    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()

    if isinstance(value, UUID):
        return str(value)

    raise ValueConversionError(value, column=column)


def _escape_text(text: str) -> str:
    """Keep literal strings from colliding with the sentinels"""
    if text in SENTINELS or text.startswith(ESCAPE_CHAR):
        return ESCAPE_CHAR + text
    return text


def _format_float(value: Any) -> str:
    # str() is the shortest round-trip form for the float's own precision;
    # floats then share the fixed-point rule of Decimal
    return _format_decimal(Decimal(str(value)))


def _format_decimal(value: Decimal) -> str:
    if value.is_infinite():
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"
    return format(value.normalize(), "f")
