"""Passenger fare rule.

A car's passengers all pay the same price. When the driver or any passenger
holds a pass the whole car is billed at the with-pass rate, otherwise at the
without-pass rate. Drivers are never billed.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from .models import FareConfig


def car_has_pass(driver_has_pass: bool, passenger_passes: Iterable[bool]) -> bool:
    """Return ``True`` when any occupant of the car holds a pass."""

    return bool(driver_has_pass) or any(passenger_passes)


def passenger_price_cents(config: FareConfig, any_pass: bool) -> int:
    if any_pass:
        return config.price_with_pass_cents
    return config.price_without_pass_cents


def format_cents(cents: int) -> str:
    """Render an amount of cents as a dollar string, e.g. ``300 -> "$3.00"``."""

    return f"${Decimal(int(cents)).scaleb(-2):.2f}"


__all__ = ["car_has_pass", "passenger_price_cents", "format_cents"]
