from __future__ import annotations

import pytest

from carpool.fares import car_has_pass, format_cents, passenger_price_cents
from carpool.models import FareConfig


CONFIG = FareConfig(price_with_pass_cents=500, price_without_pass_cents=300, max_car_capacity=4)


def test_driver_pass_alone_sets_with_pass_rate() -> None:
    assert car_has_pass(True, []) is True
    assert passenger_price_cents(CONFIG, car_has_pass(True, [False, False])) == 500


def test_any_passenger_pass_sets_with_pass_rate() -> None:
    assert car_has_pass(False, [False, True, False]) is True


def test_no_pass_in_car_uses_without_pass_rate() -> None:
    any_pass = car_has_pass(False, [False, False])
    assert any_pass is False
    assert passenger_price_cents(CONFIG, any_pass) == 300


def test_empty_car_without_driver_pass() -> None:
    assert car_has_pass(False, iter(())) is False


@pytest.mark.parametrize(
    ("cents", "expected"),
    [(0, "$0.00"), (5, "$0.05"), (300, "$3.00"), (1234, "$12.34"), (100000, "$1000.00")],
)
def test_format_cents(cents: int, expected: str) -> None:
    assert format_cents(cents) == expected
