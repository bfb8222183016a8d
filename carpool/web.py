"""Browser interface for the carpool coordinator."""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from .database import Database

logger = logging.getLogger("carpool.web")

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
STATIC_DIR = Path(__file__).resolve().parent / "static"


def create_app(*, database: Database, api_base_url: str = "/api") -> FastAPI:
    """Create the UI application that renders the roster page."""

    templates = Jinja2Templates(directory=str(TEMPLATE_DIR))

    app = FastAPI(
        title="Carpool Coordinator Interface",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.database = database
    if STATIC_DIR.exists():
        app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")
    else:
        logger.warning("Static assets missing at %s; the UI will render unstyled", STATIC_DIR)

    @app.get("/", response_class=HTMLResponse, name="ui_home")
    async def homepage(request: Request):
        config = database.get_config()
        return templates.TemplateResponse(
            request,
            "index.html",
            {
                "api_base_url": api_base_url.rstrip("/"),
                "static_url": request.scope.get("root_path", "").rstrip("/") + "/static",
                "config": config,
            },
        )

    return app


__all__ = ["create_app"]
