"""Carpool operations: roster, cars, seats, fares and auto-assignment."""

from __future__ import annotations

import logging
from typing import List

from .assignment import check_join, plan_first_fit, validate_capacity
from .database import Database
from .errors import ConflictError, NotFoundError, ValidationError
from .models import CarState, FareConfig, FullState, User
from .projections import car_state, full_state, list_car_states

logger = logging.getLogger("carpool.service")


_SQLITE_INT_MIN = -(2**63)
_SQLITE_INT_MAX = 2**63 - 1


def _is_int(value: object) -> bool:
    """``True`` for integers SQLite can store; booleans do not count."""

    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return _SQLITE_INT_MIN <= value <= _SQLITE_INT_MAX


class CarpoolService:
    """Run every carpool operation against an injected :class:`Database`.

    Each method validates its input completely before the first write, so a
    rejected request leaves the store untouched.
    """

    def __init__(self, database: Database) -> None:
        self._database = database

    @property
    def database(self) -> Database:
        return self._database

    # ------------------------------------------------------------------
    # Config
    # ------------------------------------------------------------------
    def get_config(self) -> FareConfig:
        return self._database.get_config()

    def update_config(
        self,
        *,
        price_with_pass_cents: object,
        price_without_pass_cents: object,
        max_car_capacity: object,
    ) -> FareConfig:
        values = (price_with_pass_cents, price_without_pass_cents, max_car_capacity)
        if not all(_is_int(value) for value in values):
            raise ValidationError("Bad config values")

        config = self._database.update_config(
            price_with_pass_cents=price_with_pass_cents,  # type: ignore[arg-type]
            price_without_pass_cents=price_without_pass_cents,  # type: ignore[arg-type]
            max_car_capacity=max_car_capacity,  # type: ignore[arg-type]
        )
        logger.info(
            "Config updated: with pass %s, without pass %s, max capacity %s",
            config.price_with_pass_cents,
            config.price_without_pass_cents,
            config.max_car_capacity,
        )
        return config

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------
    def create_user(self, name: object, *, has_pass: bool = False, is_driver: bool = False) -> User:
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("name required")

        user = self._database.create_user(
            name.strip(),
            has_pass=bool(has_pass),
            is_driver=bool(is_driver),
        )
        logger.info("Created %s %s (#%s)", "driver" if user.is_driver else "rider", user.name, user.id)
        return user

    def list_users(self) -> List[User]:
        return self._database.list_users()

    def delete_user(self, user_id: int) -> None:
        if self._database.get_car_for_driver(user_id) is not None:
            logger.warning("Refusing to delete user %s who still drives a car", user_id)
            raise ValidationError("cannot delete a driver with a car; delete the car first")
        if self._database.delete_user(user_id):
            logger.info("Deleted user %s", user_id)

    # ------------------------------------------------------------------
    # Cars
    # ------------------------------------------------------------------
    def create_car(self, driver_id: object, capacity: object) -> CarState:
        if not _is_int(driver_id) or not _is_int(capacity):
            raise ValidationError("driver_id and capacity required")

        config = self._database.get_config()
        validate_capacity(capacity, config)  # type: ignore[arg-type]

        driver = self._database.get_user(driver_id)  # type: ignore[arg-type]
        if driver is None:
            raise NotFoundError("driver not found")
        if not driver.is_driver:
            raise ValidationError("user is not marked as driver")

        car = self._database.create_car(driver.id, capacity)  # type: ignore[arg-type]
        logger.info("Created car #%s for %s with capacity %s", car.id, driver.name, car.capacity)
        return car_state(self._database, car.id, config=config)

    def list_cars(self) -> List[CarState]:
        return list_car_states(self._database)

    def delete_car(self, car_id: int) -> None:
        if self._database.delete_car(car_id):
            logger.info("Deleted car #%s", car_id)

    # ------------------------------------------------------------------
    # Seats
    # ------------------------------------------------------------------
    def join_car(self, car_id: int, user_id: object) -> CarState:
        if not _is_int(user_id):
            raise ValidationError("user_id required")

        car = self._database.get_car(car_id)
        user = self._database.get_user(user_id) if car is not None else None  # type: ignore[arg-type]
        assigned = self._database.assignment_for(user_id) if user is not None else None  # type: ignore[arg-type]
        count = self._database.passenger_count(car_id) if car is not None else 0
        try:
            check_join(car, user, assigned_car_id=assigned, passenger_count=count)
        except ValidationError as exc:
            logger.warning("Join of user %s to car #%s rejected: %s", user_id, car_id, exc.message)
            raise

        if not self._database.add_passenger(car_id, user_id):  # type: ignore[arg-type]
            logger.warning("Car #%s filled up before user %s could join", car_id, user_id)
            raise ValidationError("no seats left")

        logger.info("User %s joined car #%s", user_id, car_id)
        return car_state(self._database, car_id)

    def leave_car(self, car_id: int, user_id: object) -> CarState:
        if not _is_int(user_id):
            raise ValidationError("user_id required")
        if self._database.get_car(car_id) is None:
            raise NotFoundError("car not found")

        if self._database.remove_passenger(car_id, user_id):  # type: ignore[arg-type]
            logger.info("User %s left car #%s", user_id, car_id)
        return car_state(self._database, car_id)

    def auto_assign(self) -> FullState:
        """Seat every unassigned rider in the first car with room, by car id."""

        cars = self._database.list_cars()
        riders = self._database.auto_assign_candidates()
        placements = plan_first_fit(cars, riders, self._database.passenger_counts())

        seated = 0
        for user_id, car_id in placements:
            try:
                added = self._database.add_passenger(car_id, user_id)
            except ConflictError:
                added = False
            if added:
                seated += 1
            else:
                logger.warning("Auto-assign could not seat user %s in car #%s", user_id, car_id)

        logger.info("Auto-assign seated %s of %s unassigned rider(s)", seated, len(riders))
        return full_state(self._database)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    def state(self) -> FullState:
        return full_state(self._database)

    def purge(self) -> None:
        self._database.purge()
        logger.info("Purged all riders, cars and seat assignments")


__all__ = ["CarpoolService"]
