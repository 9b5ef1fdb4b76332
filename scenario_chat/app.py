import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError

from scenario_chat.config import Settings, load_settings
from scenario_chat.context import Services, build_services
from scenario_chat.errors import InvalidInputError, NotFoundError, UpstreamError
from scenario_chat.routes import router
from scenario_chat.uploads import UPLOADS_ROUTE

logger = logging.getLogger(__name__)


def _error(status: int, detail: str) -> JSONResponse:
    return JSONResponse({"detail": detail}, status_code=status)


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError):
        return _error(404, str(exc))

    @app.exception_handler(InvalidInputError)
    async def invalid_input(request: Request, exc: InvalidInputError):
        return _error(400, str(exc))

    @app.exception_handler(ValidationError)
    async def invalid_document(request: Request, exc: ValidationError):
        return _error(400, f"Invalid data: {exc.error_count()} validation error(s)")

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        fields = ", ".join(".".join(str(p) for p in e["loc"]) for e in exc.errors())
        return _error(400, f"Invalid request: {fields}")

    @app.exception_handler(UpstreamError)
    async def upstream(request: Request, exc: UpstreamError):
        logger.error("%s %s failed upstream: %s", request.method, request.url.path, exc)
        return _error(502, str(exc))


def create_app(services: Services | None = None, settings: Settings | None = None) -> FastAPI:
    """Build the API app.

    With `services` given (tests), they are used as-is and left open on
    shutdown. Otherwise services are built from `settings` (or the
    environment) when the app starts and closed when it stops.
    """
    settings = services.settings if services else settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.services is None
        if owned:
            app.state.services = build_services(settings)
        settings.uploads_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Serving data from %s", settings.data_dir)
        try:
            yield
        finally:
            if owned:
                await app.state.services.aclose()
                app.state.services = None

    app = FastAPI(title="Scenario Chat", lifespan=lifespan)
    app.state.services = services
    _install_error_handlers(app)
    app.include_router(router, prefix="/api")
    app.mount(
        UPLOADS_ROUTE,
        StaticFiles(directory=settings.uploads_dir, check_dir=False),
        name="uploads",
    )
    return app


def get_app() -> FastAPI:
    """App factory for uvicorn (`--factory scenario_chat.app:get_app`)."""
    return create_app()
