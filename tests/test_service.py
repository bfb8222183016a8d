"""Behavioural tests for the carpool operations."""

from __future__ import annotations

import random
import tempfile
import unittest
from pathlib import Path

from carpool.config import FareDefaults
from carpool.database import Database
from carpool.errors import ConflictError, NotFoundError, ValidationError
from carpool.service import CarpoolService


class CarpoolServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tempdir = tempfile.TemporaryDirectory()
        db_path = Path(self._tempdir.name) / "carpool.sqlite3"
        self.database = Database(db_path)
        self.database.initialize(
            FareDefaults(price_with_pass_cents=500, price_without_pass_cents=300, max_car_capacity=4)
        )
        self.service = CarpoolService(self.database)

    def tearDown(self) -> None:
        self._tempdir.cleanup()

    def _driver_with_car(self, name: str, capacity: int, *, has_pass: bool = False):
        driver = self.service.create_user(name, has_pass=has_pass, is_driver=True)
        return driver, self.service.create_car(driver.id, capacity)

    def test_create_user_trims_and_rejects_blank_names(self) -> None:
        user = self.service.create_user("  Ann  ")
        self.assertEqual(user.name, "Ann")

        for bad in ("", "   ", None, 42):
            with self.assertRaises(ValidationError):
                self.service.create_user(bad)

        with self.assertRaises(ConflictError):
            self.service.create_user("Ann ")

    def test_update_config_rejects_non_integers(self) -> None:
        for bad in ("500", 5.0, True, None):
            with self.assertRaises(ValidationError):
                self.service.update_config(
                    price_with_pass_cents=bad,
                    price_without_pass_cents=300,
                    max_car_capacity=4,
                )
        with self.assertRaises(ValidationError):
            self.service.update_config(price_with_pass_cents=2**63, price_without_pass_cents=300, max_car_capacity=4)

        config = self.service.get_config()
        self.assertEqual(config.price_with_pass_cents, 500)

    def test_update_config_accepts_any_integer(self) -> None:
        config = self.service.update_config(price_with_pass_cents=-5, price_without_pass_cents=0, max_car_capacity=0)
        self.assertEqual((config.price_with_pass_cents, config.max_car_capacity), (-5, 0))

        driver = self.service.create_user("D", is_driver=True)
        with self.assertRaises(ValidationError) as ctx:
            self.service.create_car(driver.id, 1)
        self.assertEqual(ctx.exception.message, "capacity must be 1..0")

    def test_oversized_ids_are_rejected_before_the_store(self) -> None:
        with self.assertRaises(ValidationError):
            self.service.create_car(2**64, 2)
        with self.assertRaises(ValidationError):
            self.service.join_car(1, 2**64)

    def test_create_car_validation_order(self) -> None:
        rider = self.service.create_user("Ann")

        with self.assertRaises(ValidationError):
            self.service.create_car("1", 3)
        with self.assertRaises(ValidationError):
            self.service.create_car(rider.id, 5)
        with self.assertRaises(NotFoundError):
            self.service.create_car(999, 3)
        with self.assertRaises(ValidationError) as ctx:
            self.service.create_car(rider.id, 3)
        self.assertEqual(ctx.exception.message, "user is not marked as driver")

        driver, _ = self._driver_with_car("Dana", 3)
        with self.assertRaises(ConflictError):
            self.service.create_car(driver.id, 2)

    def test_scenario_pass_holder_raises_car_price(self) -> None:
        _, car = self._driver_with_car("D", 4)
        self.assertEqual(car.seats_left, 3)
        self.assertEqual(car.passenger_price, "$3.00")

        rider = self.service.create_user("P1", has_pass=True)
        car = self.service.join_car(car.car_id, rider.id)

        self.assertEqual(car.passenger_price, "$5.00")
        self.assertEqual(car.seats_left, 2)

    def test_join_full_car_leaves_state_unchanged(self) -> None:
        _, car = self._driver_with_car("D", 2)
        self.service.join_car(car.car_id, self.service.create_user("P1").id)
        late = self.service.create_user("P2")

        before = self.service.state()
        with self.assertRaises(ValidationError) as ctx:
            self.service.join_car(car.car_id, late.id)
        self.assertEqual(ctx.exception.message, "no seats left")
        self.assertEqual(self.service.state(), before)

    def test_join_rejections(self) -> None:
        driver, car = self._driver_with_car("D", 4)
        _, other = self._driver_with_car("E", 4)
        rider = self.service.create_user("Ann")

        with self.assertRaises(ValidationError):
            self.service.join_car(car.car_id, None)
        with self.assertRaises(NotFoundError):
            self.service.join_car(999, rider.id)
        with self.assertRaises(NotFoundError):
            self.service.join_car(car.car_id, 999)
        with self.assertRaises(ValidationError):
            self.service.join_car(other.car_id, driver.id)

        self.service.join_car(car.car_id, rider.id)
        with self.assertRaises(ValidationError) as ctx:
            self.service.join_car(other.car_id, rider.id)
        self.assertEqual(ctx.exception.message, "user already assigned to a car")

    def test_leave_is_idempotent(self) -> None:
        _, car = self._driver_with_car("D", 3)
        rider = self.service.create_user("Ann")
        self.service.join_car(car.car_id, rider.id)

        first = self.service.leave_car(car.car_id, rider.id)
        second = self.service.leave_car(car.car_id, rider.id)

        self.assertEqual(first, second)
        self.assertEqual(first.passengers, ())
        with self.assertRaises(NotFoundError):
            self.service.leave_car(999, rider.id)

    def test_driver_with_car_cannot_be_deleted(self) -> None:
        driver, car = self._driver_with_car("D", 3)

        with self.assertRaises(ValidationError) as ctx:
            self.service.delete_user(driver.id)
        self.assertEqual(ctx.exception.message, "cannot delete a driver with a car; delete the car first")

        self.service.delete_car(car.car_id)
        self.service.delete_user(driver.id)
        self.assertEqual(self.service.list_users(), [])

    def test_auto_assign_first_fit(self) -> None:
        _, small = self._driver_with_car("D1", 2)
        _, large = self._driver_with_car("D2", 3)
        riders = [self.service.create_user(name) for name in ("rider1", "rider2", "rider3")]

        state = self.service.auto_assign()

        self.assertEqual([car.seats_left for car in state.cars], [0, 0])
        self.assertEqual([p.id for p in state.cars[0].passengers], [riders[0].id])
        self.assertEqual({p.id for p in state.cars[1].passengers}, {riders[1].id, riders[2].id})
        self.assertEqual(state.users_unassigned, [])
        self.assertEqual(self.service.auto_assign(), state)

    def test_auto_assign_never_moves_seated_riders(self) -> None:
        _, first = self._driver_with_car("D1", 4)
        _, second = self._driver_with_car("D2", 4)
        seated = self.service.create_user("Seated")
        self.service.join_car(second.car_id, seated.id)
        newcomer = self.service.create_user("New")

        state = self.service.auto_assign()

        self.assertEqual([p.id for p in state.cars[0].passengers], [newcomer.id])
        self.assertEqual([p.id for p in state.cars[1].passengers], [seated.id])

    def test_auto_assign_leaves_overflow_unassigned(self) -> None:
        self._driver_with_car("D1", 2)
        for name in ("a", "b", "c"):
            self.service.create_user(name)

        state = self.service.auto_assign()

        self.assertEqual(state.totals.passenger_count, 1)
        self.assertEqual([u.name for u in state.users_unassigned], ["b", "c"])

    def test_purge_keeps_config(self) -> None:
        self.service.update_config(price_with_pass_cents=650, price_without_pass_cents=250, max_car_capacity=5)
        _, car = self._driver_with_car("D", 3)
        self.service.join_car(car.car_id, self.service.create_user("Ann").id)

        self.service.purge()

        state = self.service.state()
        self.assertEqual(state.cars, [])
        self.assertEqual(state.users_unassigned, [])
        self.assertEqual(self.service.list_users(), [])
        self.assertEqual(state.config.price_with_pass_cents, 650)
        self.assertEqual(state.config.max_car_capacity, 5)

    def test_invariants_hold_over_random_operations(self) -> None:
        rng = random.Random(20240601)
        drivers = [self.service.create_user(f"driver-{i}", is_driver=True, has_pass=i == 0) for i in range(3)]
        riders = [self.service.create_user(f"rider-{i}", has_pass=i % 5 == 0) for i in range(12)]
        car_ids = [self.service.create_car(d.id, rng.randint(1, 4)).car_id for d in drivers]

        for _ in range(200):
            action = rng.choice(["join", "leave", "auto"])
            car_id = rng.choice(car_ids)
            user_id = rng.choice(riders + drivers).id
            try:
                if action == "join":
                    self.service.join_car(car_id, user_id)
                elif action == "leave":
                    self.service.leave_car(car_id, user_id)
                else:
                    self.service.auto_assign()
            except (ValidationError, NotFoundError):
                pass

            state = self.service.state()
            seen = set()
            for car in state.cars:
                self.assertLessEqual(1 + len(car.passengers), car.capacity)
                occupants = [car.driver] + list(car.passengers)
                expected = 500 if any(o.has_pass for o in occupants) else 300
                self.assertEqual(car.passenger_price_cents, expected)
                for passenger in car.passengers:
                    self.assertNotIn(passenger.id, seen)
                    self.assertFalse(passenger.is_driver)
                    seen.add(passenger.id)
            self.assertTrue(seen.isdisjoint(d.id for d in drivers))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
