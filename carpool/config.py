"""Configuration for the carpool service."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from .models import FareConfig

DEFAULT_PORT = 3000


@dataclass(frozen=True)
class FareDefaults:
    """Pricing used to seed the config row of a fresh database."""

    price_with_pass_cents: int = 500
    price_without_pass_cents: int = 300
    max_car_capacity: int = 4

    @staticmethod
    def from_dict(data: Dict[str, object]) -> "FareDefaults":
        """Create :class:`FareDefaults` from raw dictionary data."""
        unknown = set(data.keys()) - {
            "price_with_pass_cents",
            "price_without_pass_cents",
            "max_car_capacity",
        }
        if unknown:
            raise ValueError(f"Unknown fare settings: {', '.join(sorted(unknown))}")

        base = FareDefaults()
        values: Dict[str, int] = {}
        for key in ("price_with_pass_cents", "price_without_pass_cents", "max_car_capacity"):
            raw = data.get(key, getattr(base, key))
            if isinstance(raw, bool) or not isinstance(raw, int):
                raise ValueError(f"{key} must be an integer")
            values[key] = raw

        if values["price_with_pass_cents"] < 0 or values["price_without_pass_cents"] < 0:
            raise ValueError("Prices must not be negative")
        if values["max_car_capacity"] < 1:
            raise ValueError("max_car_capacity must be at least 1")
        return FareDefaults(**values)

    def to_config(self) -> FareConfig:
        return FareConfig(
            price_with_pass_cents=self.price_with_pass_cents,
            price_without_pass_cents=self.price_without_pass_cents,
            max_car_capacity=self.max_car_capacity,
        )


def load_fare_defaults(config_path: Path) -> FareDefaults:
    """Load fare defaults from a YAML file, falling back to built-ins when absent."""
    if not config_path.exists():
        return FareDefaults()

    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    if not isinstance(raw, dict):
        raise ValueError("Configuration file must contain a mapping")
    fares = raw.get("fares", {}) or {}
    if not isinstance(fares, dict):
        raise ValueError("The 'fares' section must be a mapping")
    return FareDefaults.from_dict(fares)


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the YAML configuration file."""
    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    return (Path(__file__).resolve().parent.parent / "config" / "carpool.yaml").resolve(strict=False)


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the SQLite database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "carpool.sqlite3").resolve(strict=False)


def resolve_cors_origins(env_value: Optional[str]) -> List[str]:
    if not env_value:
        return ["*"]
    origins = [item.strip() for item in env_value.split(",") if item.strip()]
    return origins or ["*"]


def resolve_port(env_value: Optional[str]) -> int:
    if not env_value:
        return DEFAULT_PORT
    try:
        return int(env_value)
    except ValueError as exc:
        raise ValueError(f"PORT must be an integer, got {env_value!r}") from exc


def default_fare_defaults() -> FareDefaults:
    return load_fare_defaults(resolve_config_path(os.getenv("CARPOOL_CONFIG_PATH")))


__all__ = [
    "DEFAULT_PORT",
    "FareDefaults",
    "load_fare_defaults",
    "resolve_config_path",
    "resolve_database_path",
    "resolve_cors_origins",
    "resolve_port",
    "default_fare_defaults",
]
