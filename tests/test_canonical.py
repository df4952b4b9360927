"""
Tests for canonical value forms
"""

import uuid
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum, IntEnum

import numpy as np
import pandas as pd
import pytest

from datatable_diff import (
    MISSING_COLUMN,
    NULL_VALUE,
    ValueConversionError,
    canonicalize,
    is_null,
)


class Color(Enum):
    RED = "red"


class Code(str, Enum):
    A = "a"


class Priority(IntEnum):
    HIGH = 2


class TestNulls:
    """Every flavor of missing value maps to the null sentinel"""

    @pytest.mark.parametrize("value", [None, float('nan'), np.nan, pd.NA, pd.NaT,
                                       np.datetime64('NaT'), Decimal('NaN')])
    def test_null_values(self, value):
        assert is_null(value)
        assert canonicalize(value) == NULL_VALUE

    def test_empty_string_is_not_null(self):
        assert canonicalize("") == ""
        assert canonicalize("") != canonicalize(None)

    def test_sentinels_are_distinct(self):
        assert NULL_VALUE != MISSING_COLUMN


class TestStrings:

    def test_plain_string(self):
        assert canonicalize("01") == "01"

    def test_literal_sentinel_is_escaped(self):
        assert canonicalize("<NULL>") == "\\<NULL>"
        assert canonicalize("<MISSING>") == "\\<MISSING>"
        assert canonicalize("<NULL>") != canonicalize(None)

    def test_leading_backslash_is_escaped(self):
        assert canonicalize("\\<NULL>") == "\\\\<NULL>"
        assert canonicalize("\\<NULL>") != canonicalize("<NULL>")


class TestNumbers:

    def test_bool(self):
        assert canonicalize(True) == "True"
        assert canonicalize(np.bool_(False)) == "False"

    def test_integers(self):
        assert canonicalize(5000) == "5000"
        assert canonicalize(np.int64(-7)) == "-7"

    def test_integral_floats_match_integers(self):
        assert canonicalize(100.0) == "100"
        assert canonicalize(np.float64(100.0)) == canonicalize(100)

    def test_fractional_floats(self):
        assert canonicalize(1.5) == "1.5"
        assert canonicalize(0.1) == "0.1"
        assert canonicalize(1234567.25) == "1234567.25"

    def test_large_and_small_floats_match_integers_and_decimals(self):
        assert canonicalize(1e16) == canonicalize(10**16) == "10000000000000000"
        assert canonicalize(1e-7) == canonicalize(Decimal("1E-7")) == "0.0000001"
        assert canonicalize(np.float64(2.5e20)) == canonicalize(250000000000000000000)

    def test_float32_keeps_its_own_precision(self):
        assert canonicalize(np.float32(0.1)) == "0.1"

    def test_negative_zero(self):
        assert canonicalize(-0.0) == canonicalize(0) == "0"

    def test_infinity(self):
        assert canonicalize(float('inf')) == "Infinity"
        assert canonicalize(-np.inf) == "-Infinity"

    def test_decimals_are_normalized(self):
        assert canonicalize(Decimal("500.00")) == "500"
        assert canonicalize(Decimal("1.50")) == "1.5"
        assert canonicalize(Decimal("1E+3")) == "1000"
        assert canonicalize(Decimal("-0.00")) == "0"
        assert canonicalize(Decimal("500.00")) == canonicalize(500) == canonicalize(500.0)


class TestTemporal:

    def test_datetime(self):
        assert canonicalize(datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02T03:04:05"

    def test_timestamp_matches_datetime(self):
        assert canonicalize(pd.Timestamp("2024-01-02 03:04:05")) == "2024-01-02T03:04:05"
        assert canonicalize(np.datetime64("2024-01-02T03:04:05")) == "2024-01-02T03:04:05"

    def test_date_and_time(self):
        assert canonicalize(date(2024, 1, 2)) == "2024-01-02"
        assert canonicalize(time(13, 30)) == "13:30:00"

    def test_timedelta(self):
        assert canonicalize(timedelta(days=1)) == canonicalize(pd.Timedelta(days=1))
        assert canonicalize(timedelta(days=1)) == pd.Timedelta(days=1).isoformat()


class TestOtherTypes:

    def test_bytes(self):
        assert canonicalize(b"\x01\xff") == "01ff"

    def test_uuid(self):
        value = uuid.UUID("12345678-1234-5678-1234-567812345678")
        assert canonicalize(value) == "12345678-1234-5678-1234-567812345678"

    def test_enum_uses_its_value(self):
        assert canonicalize(Color.RED) == "red"

    def test_mixin_enums_use_their_value(self):
        assert canonicalize(Code.A) == "a"
        assert canonicalize(Priority.HIGH) == "2"

    def test_unsupported_type_fails_fast(self):
        with pytest.raises(ValueConversionError) as excinfo:
            canonicalize(object(), column="payload")
        assert excinfo.value.column == "payload"
        assert "payload" in str(excinfo.value)

    def test_conversion_error_is_a_type_error(self):
        with pytest.raises(TypeError):
            canonicalize([1, 2])
