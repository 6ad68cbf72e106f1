# SPDX-License-Identifier: Apache-2.0
"""FastAPI application factory.

Wires the catalog, planner, plan, manual, and history routers under ``/v1``
around a single :class:`~framesmith.session.EditorSession`, maps engine
errors to HTTP status codes, and applies CORS settings from the environment.
Run with ``uvicorn framesmith.api.server:app``.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from framesmith import __version__
from framesmith.api.routers import catalog as catalog_router
from framesmith.api.routers import history as history_router
from framesmith.api.routers import manual as manual_router
from framesmith.api.routers import plan as plan_router
from framesmith.api.routers import planner as planner_router
from framesmith.errors import (
    CatalogError,
    DependencyGraphError,
    InvalidTransitionError,
    NoActivePlanError,
    ParameterError,
    StepNotFoundError,
)
from framesmith.session import EditorSession
from framesmith.utils.env import env, env_bool

LOG = logging.getLogger(__name__)

_ERROR_STATUS: tuple[tuple[type[Exception], int], ...] = (
    (StepNotFoundError, 404),
    (NoActivePlanError, 404),
    (InvalidTransitionError, 409),
    (ParameterError, 400),
    (DependencyGraphError, 400),
    (CatalogError, 400),
)


def _load_dotenv() -> None:
    if env_bool("SKIP_DOTENV", False):
        return
    from dotenv import find_dotenv, load_dotenv

    path = find_dotenv(usecwd=True)
    if path:
        load_dotenv(path, override=False)


def create_app(session: EditorSession | None = None) -> FastAPI:
    """Build the API around ``session`` (a fresh session when omitted)."""
    _load_dotenv()

    app = FastAPI(title="framesmith API", version=__version__)
    app.state.session = session or EditorSession()

    def _handler(status_code: int):
        async def handle(request: Request, exc: Exception) -> JSONResponse:
            LOG.debug("%s %s -> %d: %s", request.method, request.url.path, status_code, exc)
            return JSONResponse(status_code=status_code, content={"detail": str(exc)})

        return handle

    for exc_type, status_code in _ERROR_STATUS:
        app.add_exception_handler(exc_type, _handler(status_code))

    origins_env = env("CORS_ORIGINS", "") or ""
    origins = [o.strip() for o in origins_env.split(",") if o.strip()]
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials="*" not in origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    for router in (
        catalog_router.router,
        planner_router.router,
        plan_router.router,
        manual_router.router,
        history_router.router,
    ):
        app.include_router(router, prefix="/v1")

    @app.get("/health", tags=["system"])
    def health() -> dict:
        return {"status": "ok", "version": __version__}

    return app


app = create_app()
# Uvicorn entrypoint: `uvicorn framesmith.api.server:app --reload`
