"""Ride and carpool coordination: riders, drivers, cars, seats and fares."""

from __future__ import annotations

from typing import Any

from .database import Database
from .service import CarpoolService


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the combined web + API application."""

    from .application import create_application

    return create_application(*args, **kwargs)


def create_api_app(*args: Any, **kwargs: Any):
    """Factory function for the API-only application."""

    from .api import create_app as _create_api_app

    return _create_api_app(*args, **kwargs)


__all__ = [
    "Database",
    "CarpoolService",
    "create_app",
    "create_api_app",
]
