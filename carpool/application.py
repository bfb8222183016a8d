"""Application factory that serves both the API and the browser UI."""
from __future__ import annotations

import os
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import create_app as create_api_app
from .config import default_fare_defaults, resolve_cors_origins, resolve_database_path
from .database import Database
from .service import CarpoolService
from .web import create_app as create_web_app


def create_application(
    *,
    database_path: Optional[str] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """Create the combined ASGI application."""

    if database is None:
        db_path = resolve_database_path(database_path or os.getenv("CARPOOL_DB_PATH"))
        database = Database(db_path)
    database.initialize(default_fare_defaults())

    service = CarpoolService(database)
    api_app = create_api_app(service=service)
    web_app = create_web_app(database=database, api_base_url="/api")

    app = FastAPI(
        title="Carpool Coordinator",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=resolve_cors_origins(os.getenv("CARPOOL_CORS_ORIGIN")),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.database = database
    app.state.service = service
    app.state.api = api_app
    app.state.web = web_app

    app.mount("/api", api_app)
    app.mount("/", web_app)

    return app


__all__ = ["create_application"]
