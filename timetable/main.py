"""FastAPI entrypoint for the timetable service."""

# ruff: noqa: F401

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

# Import modules to register routes with the shared router.
from timetable import api_schedule
from timetable.config import load_config
from timetable.errors import ErrorResponse, TimetableError, error_response
from timetable.router import timetable_router

SERVICE_TOKEN_HEADER = "X-Timetable-Service-Token"
AUTH_EXEMPT_PATHS = {"/health"}


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.config = load_config()
        yield

    app = FastAPI(lifespan=lifespan)

    @app.middleware("http")
    async def enforce_service_token(request: Request, call_next):
        if request.url.path in AUTH_EXEMPT_PATHS:
            return await call_next(request)

        config = getattr(request.app.state, "config", None)
        service_token = getattr(config, "service_token", None)
        if service_token:
            supplied_token = request.headers.get(SERVICE_TOKEN_HEADER)
            if supplied_token is None:
                error = ErrorResponse(
                    code="AUTH_REQUIRED",
                    message="Missing service token.",
                    details={"header": SERVICE_TOKEN_HEADER},
                )
                return JSONResponse(
                    status_code=401, content=error_response(error)
                )
            if supplied_token != service_token:
                error = ErrorResponse(
                    code="AUTH_FORBIDDEN",
                    message="Invalid service token.",
                    details={"header": SERVICE_TOKEN_HEADER},
                )
                return JSONResponse(
                    status_code=403, content=error_response(error)
                )

        return await call_next(request)

    @app.exception_handler(TimetableError)
    def handle_timetable_error(request: Request, exc: TimetableError) -> JSONResponse:
        return JSONResponse(status_code=400, content=error_response(exc.error))

    @app.get("/health", status_code=200)
    def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(timetable_router)
    return app


app = create_app()
