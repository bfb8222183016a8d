"""Seat rules and the first-fit auto-assignment heuristic."""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from .errors import NotFoundError, ValidationError
from .models import Car, FareConfig, User


def validate_capacity(capacity: int, config: FareConfig) -> None:
    """Reject capacities outside ``1..max_car_capacity`` (the driver takes one seat)."""

    if capacity < 1 or capacity > config.max_car_capacity:
        raise ValidationError(f"capacity must be 1..{config.max_car_capacity}")


def has_free_seat(capacity: int, passenger_count: int) -> bool:
    return 1 + passenger_count < capacity


def seats_left(capacity: int, passenger_count: int) -> int:
    return max(0, capacity - (1 + passenger_count))


def check_join(
    car: Optional[Car],
    user: Optional[User],
    *,
    assigned_car_id: Optional[int],
    passenger_count: int,
) -> None:
    """Raise if ``user`` may not take a seat in ``car``.

    Checks run in a fixed order so the first failing rule decides the error.
    """

    if car is None:
        raise NotFoundError("car not found")
    if user is None:
        raise NotFoundError("user not found")
    if user.is_driver:
        raise ValidationError("driver cannot join another car")
    if assigned_car_id is not None:
        raise ValidationError("user already assigned to a car")
    if not has_free_seat(car.capacity, passenger_count):
        raise ValidationError("no seats left")


def plan_first_fit(
    cars: Iterable[Car],
    rider_ids: Iterable[int],
    occupancy: Dict[int, int],
) -> List[Tuple[int, int]]:
    """Place each rider in the first car (by ascending id) with a free seat.

    ``occupancy`` maps car id to its current passenger count and is not
    modified. Riders are taken in the order given; each placement counts
    against later ones. Riders that fit nowhere are left out of the result.
    Existing passengers are never moved.
    """

    ordered = sorted(cars, key=lambda car: car.id)
    live = {car.id: occupancy.get(car.id, 0) for car in ordered}
    placements: List[Tuple[int, int]] = []
    for rider_id in rider_ids:
        for car in ordered:
            if has_free_seat(car.capacity, live[car.id]):
                live[car.id] += 1
                placements.append((rider_id, car.id))
                break
    return placements


__all__ = ["validate_capacity", "has_free_seat", "seats_left", "check_join", "plan_first_fit"]
