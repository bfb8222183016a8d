"""Derived read-only views over the stored roster.

Nothing here is cached: every call reads the current rows, so capacity, pass
and assignment changes are reflected on the next request.
"""
from __future__ import annotations

from typing import List, Optional

from .assignment import seats_left
from .database import Database
from .errors import InternalError, NotFoundError
from .fares import car_has_pass, format_cents, passenger_price_cents
from .models import Car, CarState, FareConfig, FullState, Occupant, Totals, User


def _occupant(user: User) -> Occupant:
    return Occupant(id=user.id, name=user.name, has_pass=user.has_pass, is_driver=user.is_driver)


def _project_car(database: Database, car: Car, config: FareConfig) -> CarState:
    driver = database.get_user(car.driver_id)
    if driver is None:
        # cars.driver_id is a foreign key, so this only happens on a corrupt store
        raise InternalError(f"car {car.id} has no driver")

    passengers = database.passengers(car.id)
    any_pass = car_has_pass(driver.has_pass, (p.has_pass for p in passengers))
    price = passenger_price_cents(config, any_pass)
    return CarState(
        car_id=car.id,
        capacity=car.capacity,
        driver=_occupant(driver),
        passengers=tuple(_occupant(p) for p in passengers),
        seats_left=seats_left(car.capacity, len(passengers)),
        any_pass_in_car=any_pass,
        passenger_price_cents=price,
        passenger_price=format_cents(price),
    )


def car_state(database: Database, car_id: int, *, config: Optional[FareConfig] = None) -> CarState:
    car = database.get_car(car_id)
    if car is None:
        raise NotFoundError("car not found")
    return _project_car(database, car, config or database.get_config())


def list_car_states(database: Database, *, config: Optional[FareConfig] = None) -> List[CarState]:
    config = config or database.get_config()
    return [_project_car(database, car, config) for car in database.list_cars()]


def compute_totals(cars: List[CarState]) -> Totals:
    passenger_count = 0
    fees_cents = 0
    for car in cars:
        passenger_count += car.passenger_count
        fees_cents += car.passenger_count * car.passenger_price_cents
    return Totals(
        passenger_count=passenger_count,
        total_fees_cents=fees_cents,
        total_fees=format_cents(fees_cents),
    )


def full_state(database: Database) -> FullState:
    config = database.get_config()
    cars = list_car_states(database, config=config)
    return FullState(
        config=config,
        cars=cars,
        users_unassigned=[_occupant(user) for user in database.unassigned_riders()],
        totals=compute_totals(cars),
    )


__all__ = ["car_state", "list_car_states", "compute_totals", "full_state"]
