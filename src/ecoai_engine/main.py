"""EcoAI carbon engine service entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import uvicorn

from ecoai_engine.database import dispose_database, init_database
from ecoai_engine.errors import EcoAIError, ErrorCode
from ecoai_engine.observability import configure_logging, get_logger
from ecoai_engine.settings import Settings

logger = get_logger(__name__)
settings = Settings()

_STATUS_BY_ERROR_CODE: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 422,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.PARTIAL_IMPORT: 422,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle."""
    configure_logging(settings.log_level, json_output=settings.log_json)
    logger.info(
        "ecoai-carbon-engine starting",
        service=settings.service_name,
        environment=settings.environment,
    )
    init_database(settings.database_url, echo=settings.database_echo)
    yield
    await dispose_database()
    logger.info("ecoai-carbon-engine shutting down")


async def handle_ecoai_error(request: Request, exc: EcoAIError) -> JSONResponse:
    """Render engine errors as {error_code, message, details}."""
    status_code = _STATUS_BY_ERROR_CODE.get(exc.error_code, 400)
    logger.info(
        "request_rejected",
        path=request.url.path,
        error_code=exc.error_code.value,
        status_code=status_code,
        message=exc.message,
    )
    return JSONResponse(
        status_code=status_code,
        content={"error_code": exc.error_code.value, "message": exc.message, "details": exc.details},
    )


def create_app() -> FastAPI:
    """Build the FastAPI application with routes and error handlers."""
    application = FastAPI(title="EcoAI Carbon Engine", version="0.1.0", lifespan=lifespan)
    application.add_exception_handler(EcoAIError, handle_ecoai_error)  # type: ignore[arg-type]

    @application.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "service": settings.service_name}

    from ecoai_engine.api.router import router

    application.include_router(router, prefix="/api/v1")
    return application


app = create_app()


def run() -> None:
    """Serve the API with uvicorn using host and port from settings."""
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
