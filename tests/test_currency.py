import pytest

from jewelbook.utils.currency import round_currency, round_weight


def test_float_noise_is_removed():
    assert 0.1 + 0.2 != 0.3
    assert round_currency(0.1 + 0.2) == 0.3


def test_halves_round_up():
    # 1.005 is stored as 1.00499999...
    assert round_currency(1.005) == 1.01
    assert round_currency(10.125) == 10.13


def test_negative_amounts():
    assert round_currency(-0.125) == -0.12
    assert round_currency(-300.0) == -300.0


def test_none_is_zero():
    assert round_currency(None) == 0.0
    assert round_weight(None) == 0.0


@pytest.mark.parametrize("value", [0.1 + 0.2, 1234.5678, -99.995, 1e9 + 0.005, 7.0, 0.0])
def test_rounding_is_idempotent(value):
    once = round_currency(value)
    assert round_currency(once) == once


def test_weight_keeps_milligrams():
    assert round_weight(1.23456) == 1.235
    assert round_weight(10.0) == 10.0
