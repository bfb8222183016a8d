"""Domain records for riders, drivers, cars and their derived views."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Tuple


@dataclass(frozen=True)
class FareConfig:
    """The singleton pricing and capacity settings (row id 1)."""

    price_with_pass_cents: int
    price_without_pass_cents: int
    max_car_capacity: int
    id: int = 1


@dataclass(frozen=True)
class User:
    """A rider or driver on the roster."""

    id: int
    name: str
    has_pass: bool
    is_driver: bool
    created_at: datetime


@dataclass(frozen=True)
class Car:
    id: int
    driver_id: int
    capacity: int
    created_at: datetime


@dataclass(frozen=True)
class Occupant:
    """A driver or passenger as shown inside a car projection."""

    id: int
    name: str
    has_pass: bool
    is_driver: bool


@dataclass(frozen=True)
class CarState:
    """Read-only view of a car: occupants, free seats and the passenger fare."""

    car_id: int
    capacity: int
    driver: Occupant
    passengers: Tuple[Occupant, ...]
    seats_left: int
    any_pass_in_car: bool
    passenger_price_cents: int
    passenger_price: str

    @property
    def passenger_count(self) -> int:
        return len(self.passengers)


@dataclass(frozen=True)
class Totals:
    passenger_count: int
    total_fees_cents: int
    total_fees: str


@dataclass(frozen=True)
class FullState:
    config: FareConfig
    cars: List[CarState]
    users_unassigned: List[Occupant]
    totals: Totals


__all__ = ["FareConfig", "User", "Car", "Occupant", "CarState", "Totals", "FullState"]
