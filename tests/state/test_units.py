from __future__ import annotations

import pytest

from src.state.units import format_ether, format_units, parse_ether, parse_units


def test_parse_ether():
    assert parse_ether("1") == 10**18
    assert parse_ether("9.9") == 99 * 10**17
    assert parse_ether(1000) == 1000 * 10**18
    assert parse_units("1.5", 6) == 1_500_000


def test_format_trims_trailing_zeros():
    assert format_ether(parse_ether("9.87")) == "9.87"
    assert format_ether(10**18) == "1"
    assert format_units(1, 6) == "0.000001"
    assert format_units(0) == "0"


@pytest.mark.parametrize("bad", ["-1", "abc", "NaN", "0.0000000000000000001"])
def test_parse_rejects_bad_values(bad):
    with pytest.raises(ValueError):
        parse_ether(bad)
