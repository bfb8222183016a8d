"""SQLite-backed persistence for riders, cars and seat assignments."""
from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from .config import FareDefaults
from .errors import ConflictError, InternalError
from .models import Car, FareConfig, User

logger = logging.getLogger("carpool.database")


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def _serialize_datetime(value: datetime) -> str:
    return value.isoformat()


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value)


class Database:
    """Simple wrapper around SQLite for persisting the carpool roster."""

    def __init__(self, path: Path) -> None:
        _ensure_directory(path)
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _session(self, *, conflict: Optional[str] = None) -> Iterator[sqlite3.Connection]:
        """Open a connection, commit on success and translate SQLite failures.

        Constraint violations become :class:`ConflictError` carrying
        ``conflict`` when the caller expects one; anything else the store
        raises becomes :class:`InternalError`.
        """

        conn = self._connect()
        try:
            with conn:
                yield conn
        except sqlite3.IntegrityError as exc:
            if conflict is None:
                logger.exception("Unexpected constraint failure in %s", self._path)
                raise InternalError() from exc
            raise ConflictError(conflict) from exc
        except sqlite3.DatabaseError as exc:
            logger.exception("SQLite operation failed in %s", self._path)
            raise InternalError() from exc
        finally:
            conn.close()

    def initialize(self, defaults: Optional[FareDefaults] = None) -> None:
        """Create the required tables and seed the config row if missing."""

        defaults = defaults or FareDefaults()
        with self._session() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS config (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    price_with_pass_cents INTEGER NOT NULL,
                    price_without_pass_cents INTEGER NOT NULL,
                    max_car_capacity INTEGER NOT NULL
                );

                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL UNIQUE,
                    has_pass INTEGER NOT NULL DEFAULT 0,
                    is_driver INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS cars (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    driver_id INTEGER NOT NULL UNIQUE REFERENCES users(id),
                    capacity INTEGER NOT NULL CHECK (capacity >= 1),
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS car_passengers (
                    car_id INTEGER NOT NULL REFERENCES cars(id) ON DELETE CASCADE,
                    user_id INTEGER NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
                    PRIMARY KEY (car_id, user_id)
                );

                CREATE INDEX IF NOT EXISTS idx_car_passengers_car_id ON car_passengers(car_id);
                """
            )
            conn.execute(
                """
                INSERT OR IGNORE INTO config (id, price_with_pass_cents, price_without_pass_cents, max_car_capacity)
                VALUES (1, ?, ?, ?)
                """,
                (
                    defaults.price_with_pass_cents,
                    defaults.price_without_pass_cents,
                    defaults.max_car_capacity,
                ),
            )

    # ------------------------------------------------------------------
    # Config
    # ------------------------------------------------------------------
    def get_config(self) -> FareConfig:
        with self._session() as conn:
            row = conn.execute("SELECT * FROM config WHERE id = 1").fetchone()
        if row is None:
            logger.error("Config row is missing in %s; run init-db", self._path)
            raise InternalError()
        return self._row_to_config(row)

    def update_config(
        self,
        *,
        price_with_pass_cents: int,
        price_without_pass_cents: int,
        max_car_capacity: int,
    ) -> FareConfig:
        with self._session() as conn:
            conn.execute(
                """
                UPDATE config
                   SET price_with_pass_cents = ?, price_without_pass_cents = ?, max_car_capacity = ?
                 WHERE id = 1
                """,
                (price_with_pass_cents, price_without_pass_cents, max_car_capacity),
            )
        return self.get_config()

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------
    def create_user(self, name: str, *, has_pass: bool = False, is_driver: bool = False) -> User:
        created_at = _current_timestamp()
        with self._session(conflict="name already exists") as conn:
            cursor = conn.execute(
                "INSERT INTO users (name, has_pass, is_driver, created_at) VALUES (?, ?, ?, ?)",
                (name, int(bool(has_pass)), int(bool(is_driver)), _serialize_datetime(created_at)),
            )
            user_id = cursor.lastrowid

        return User(
            id=int(user_id),
            name=name,
            has_pass=bool(has_pass),
            is_driver=bool(is_driver),
            created_at=created_at,
        )

    def get_user(self, user_id: int) -> Optional[User]:
        with self._session() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def list_users(self) -> List[User]:
        """Return every user, newest first."""

        with self._session() as conn:
            rows = conn.execute("SELECT * FROM users ORDER BY created_at DESC, id DESC").fetchall()
        return [self._row_to_user(row) for row in rows]

    def delete_user(self, user_id: int) -> bool:
        with self._session(conflict="cannot delete a driver with a car; delete the car first") as conn:
            conn.execute("DELETE FROM car_passengers WHERE user_id = ?", (user_id,))
            cursor = conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
            return cursor.rowcount > 0

    def unassigned_riders(self) -> List[User]:
        """Non-drivers who sit in no car and drive none, ordered by name."""

        with self._session() as conn:
            rows = conn.execute(
                """
                SELECT u.* FROM users u
                 WHERE u.is_driver = 0
                   AND u.id NOT IN (SELECT user_id FROM car_passengers)
                   AND u.id NOT IN (SELECT driver_id FROM cars)
                 ORDER BY u.name
                """
            ).fetchall()
        return [self._row_to_user(row) for row in rows]

    def auto_assign_candidates(self) -> List[int]:
        """Ids of unseated non-drivers in insertion order."""

        with self._session() as conn:
            rows = conn.execute(
                """
                SELECT u.id FROM users u
                 WHERE u.is_driver = 0
                   AND u.id NOT IN (SELECT user_id FROM car_passengers)
                 ORDER BY u.id
                """
            ).fetchall()
        return [int(row["id"]) for row in rows]

    # ------------------------------------------------------------------
    # Cars
    # ------------------------------------------------------------------
    def create_car(self, driver_id: int, capacity: int) -> Car:
        created_at = _current_timestamp()
        with self._session(conflict="driver already has a car") as conn:
            cursor = conn.execute(
                "INSERT INTO cars (driver_id, capacity, created_at) VALUES (?, ?, ?)",
                (driver_id, capacity, _serialize_datetime(created_at)),
            )
            car_id = cursor.lastrowid

        return Car(id=int(car_id), driver_id=driver_id, capacity=capacity, created_at=created_at)

    def get_car(self, car_id: int) -> Optional[Car]:
        with self._session() as conn:
            row = conn.execute("SELECT * FROM cars WHERE id = ?", (car_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_car(row)

    def get_car_for_driver(self, driver_id: int) -> Optional[Car]:
        with self._session() as conn:
            row = conn.execute("SELECT * FROM cars WHERE driver_id = ?", (driver_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_car(row)

    def list_cars(self) -> List[Car]:
        with self._session() as conn:
            rows = conn.execute("SELECT * FROM cars ORDER BY id ASC").fetchall()
        return [self._row_to_car(row) for row in rows]

    def delete_car(self, car_id: int) -> bool:
        """Remove a car together with its seat assignments."""

        with self._session() as conn:
            conn.execute("DELETE FROM car_passengers WHERE car_id = ?", (car_id,))
            cursor = conn.execute("DELETE FROM cars WHERE id = ?", (car_id,))
            return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Seat assignments
    # ------------------------------------------------------------------
    def add_passenger(self, car_id: int, user_id: int) -> bool:
        """Seat ``user_id`` in ``car_id`` if a seat is free.

        The seat check and the insert run as one statement, so two concurrent
        joins cannot both take the last seat. Returns ``False`` when the car is
        missing or full.
        """

        with self._session(conflict="user already assigned to a car") as conn:
            cursor = conn.execute(
                """
                INSERT INTO car_passengers (car_id, user_id)
                SELECT c.id, ? FROM cars c
                 WHERE c.id = ?
                   AND 1 + (SELECT COUNT(*) FROM car_passengers cp WHERE cp.car_id = c.id) < c.capacity
                """,
                (user_id, car_id),
            )
            return cursor.rowcount > 0

    def remove_passenger(self, car_id: int, user_id: int) -> bool:
        with self._session() as conn:
            cursor = conn.execute(
                "DELETE FROM car_passengers WHERE car_id = ? AND user_id = ?",
                (car_id, user_id),
            )
            return cursor.rowcount > 0

    def passengers(self, car_id: int) -> List[User]:
        with self._session() as conn:
            rows = conn.execute(
                """
                SELECT u.* FROM car_passengers cp
                  JOIN users u ON u.id = cp.user_id
                 WHERE cp.car_id = ?
                 ORDER BY u.name
                """,
                (car_id,),
            ).fetchall()
        return [self._row_to_user(row) for row in rows]

    def passenger_count(self, car_id: int) -> int:
        with self._session() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS c FROM car_passengers WHERE car_id = ?",
                (car_id,),
            ).fetchone()
        return int(row["c"])

    def passenger_counts(self) -> Dict[int, int]:
        """Passenger count per car id, including empty cars."""

        with self._session() as conn:
            rows = conn.execute(
                """
                SELECT c.id AS car_id, COUNT(cp.user_id) AS c
                  FROM cars c
                  LEFT JOIN car_passengers cp ON cp.car_id = c.id
                 GROUP BY c.id
                """
            ).fetchall()
        return {int(row["car_id"]): int(row["c"]) for row in rows}

    def assignment_for(self, user_id: int) -> Optional[int]:
        """Return the id of the car ``user_id`` rides in, if any."""

        with self._session() as conn:
            row = conn.execute(
                "SELECT car_id FROM car_passengers WHERE user_id = ?",
                (user_id,),
            ).fetchone()
        if row is None:
            return None
        return int(row["car_id"])

    def purge(self) -> None:
        """Delete every assignment, car and user. The config row is kept."""

        with self._session() as conn:
            conn.execute("DELETE FROM car_passengers")
            conn.execute("DELETE FROM cars")
            conn.execute("DELETE FROM users")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _row_to_config(self, row: sqlite3.Row) -> FareConfig:
        return FareConfig(
            id=int(row["id"]),
            price_with_pass_cents=int(row["price_with_pass_cents"]),
            price_without_pass_cents=int(row["price_without_pass_cents"]),
            max_car_capacity=int(row["max_car_capacity"]),
        )

    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=int(row["id"]),
            name=str(row["name"]),
            has_pass=bool(row["has_pass"]),
            is_driver=bool(row["is_driver"]),
            created_at=_parse_datetime(str(row["created_at"])),
        )

    def _row_to_car(self, row: sqlite3.Row) -> Car:
        return Car(
            id=int(row["id"]),
            driver_id=int(row["driver_id"]),
            capacity=int(row["capacity"]),
            created_at=_parse_datetime(str(row["created_at"])),
        )


__all__ = ["Database"]
