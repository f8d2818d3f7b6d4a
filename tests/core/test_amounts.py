import pytest

from onlystables.core.amounts import USDT_DECIMALS, from_minor_units, to_minor_units
from onlystables.core.errors import InvalidAmountError


@pytest.mark.parametrize(
    "value, expected",
    [
        ("10.5", 10_500_000),
        ("5", 5_000_000),
        (".5", 500_000),
        ("0.000001", 1),
        ("1.", 1_000_000),
        ("  25 ", 25_000_000),
    ],
)
def test_to_minor_units(value, expected):
    assert to_minor_units(value, USDT_DECIMALS) == expected


def test_to_minor_units_truncates_extra_fraction_digits():
    assert to_minor_units("1.1234567", 6) == 1_123_456
    assert to_minor_units("0.0000009", 6) == 0


def test_to_minor_units_handles_large_values_without_float_drift():
    assert to_minor_units("12345678901234567890.123456", 6) == 12345678901234567890123456


@pytest.mark.parametrize("value", ["", ".", "abc", "-5", "1e6", "1,000", "1.2.3", "٣"])
def test_to_minor_units_rejects_malformed(value):
    with pytest.raises(InvalidAmountError):
        to_minor_units(value, USDT_DECIMALS)


@pytest.mark.parametrize(
    "value, expected",
    [
        (10_500_000, "10.5"),
        (5_000_000, "5"),
        (1, "0.000001"),
        (0, "0"),
        (1_230_000, "1.23"),
    ],
)
def test_from_minor_units(value, expected):
    assert from_minor_units(value, USDT_DECIMALS) == expected


def test_from_minor_units_zero_decimals():
    assert from_minor_units(42, 0) == "42"


def test_from_minor_units_rejects_negative():
    with pytest.raises(ValueError):
        from_minor_units(-1, USDT_DECIMALS)


def test_round_trip_reproduces_canonical_form():
    for text in ("10.5", "0.01", "7", "999999.999999"):
        assert from_minor_units(to_minor_units(text, 6), 6) == text
