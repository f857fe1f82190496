"""Entry point for the fragments HTTP service."""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from common.constants import SERVICE_NAME, SERVICE_VERSION
from common.logging_config import get_logger, setup_logging
from fragments.config import Settings, get_settings
from fragments.exceptions import FragmentsError, UnauthorizedError
from fragments.services.fragment_service import FragmentService
from fragments.storage import StorageBackend, create_storage_backend
from server.auth import UserStore
from server.routes import fragment_router
from server.schemas.common import HealthResponse, error_body

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[StorageBackend] = None,
    user_store: Optional[UserStore] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    The storage backend is created (unless one is passed in), initialized on
    startup and shut down on shutdown. It is shared through app.state.

    Args:
        settings: Service settings, defaults to the environment
        store: Storage backend to use instead of the configured one
        user_store: Credentials to use instead of the configured users file

    Returns:
        FastAPI application
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Fragments service starting up...")

        backend = store if store is not None else create_storage_backend(settings)
        await backend.init()

        app.state.store = backend
        app.state.fragment_service = FragmentService(backend)
        app.state.user_store = user_store if user_store is not None else UserStore.from_file(settings.users_file)

        try:
            yield
        finally:
            logger.info("Fragments service shutting down...")
            await backend.shutdown()

    app = FastAPI(
        title="Fragments",
        description="Multi-tenant store for small typed content fragments",
        version=SERVICE_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """
        Middleware to log all HTTP requests and responses.
        """
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.time()

        logger.info(
            f"Request started: {request.method} {request.url.path} [request_id={request_id}]"
        )

        response = await call_next(request)

        duration = time.time() - start_time
        owner_id = getattr(request.state, 'owner_id', None)

        logger.info(
            f"Request completed: {request.method} {request.url.path} "
            f"status={response.status_code} duration={duration:.3f}s "
            f"[request_id={request_id}] [owner_id={owner_id or 'anonymous'}]"
        )

        response.headers["X-Request-ID"] = request_id

        return response

    @app.exception_handler(FragmentsError)
    async def fragments_error_handler(request: Request, exc: FragmentsError):
        request_id = getattr(request.state, 'request_id', 'unknown')
        if exc.status_code >= 500:
            logger.error(
                f"Error processing request: {exc} [request_id={request_id}] path={request.url.path}",
                exc_info=exc
            )
        else:
            logger.warning(
                f"{exc.code}: {exc} [request_id={request_id}] path={request.url.path}"
            )

        headers = None
        if isinstance(exc, UnauthorizedError):
            headers = {"WWW-Authenticate": 'Basic realm="fragments"'}

        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.status_code, exc.message),
            headers=headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        message = "Not found" if exc.status_code == status.HTTP_404_NOT_FOUND else str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.status_code, message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        request_id = getattr(request.state, 'request_id', 'unknown')
        logger.warning(
            f"Request validation error: {exc.errors()} [request_id={request_id}] path={request.url.path}"
        )
        return JSONResponse(
            status_code=422,
            content=error_body(422, "invalid request"),
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        request_id = getattr(request.state, 'request_id', 'unknown')
        logger.error(
            f"Unexpected error: {exc} [request_id={request_id}] path={request.url.path}",
            exc_info=exc
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body(status.HTTP_500_INTERNAL_SERVER_ERROR, "unable to process request"),
        )

    app.include_router(fragment_router)

    @app.get("/", response_model=HealthResponse)
    async def health_check(response: Response):
        """
        Health check endpoint. Returns 200 if the service is running.
        """
        response.headers["Cache-Control"] = "no-cache"
        return HealthResponse(service=SERVICE_NAME, version=SERVICE_VERSION)

    return app


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    settings = get_settings()
    setup_logging(SERVICE_NAME, settings.log_level)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
