"""
Admin Console Core

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from admincore.api.middleware.request_id import REQUEST_ID_HEADER, RequestIdMiddleware
from admincore.api.v1 import router as api_v1_router
from admincore.config import get_settings
from admincore.database import async_session_maker, close_db, init_db
from admincore.errors import AdminCoreError, ModuleNotFound, PermissionDenied
from admincore.kernel.registry.descriptors import ModuleStatus
from admincore.logging_config import configure_logging, get_logger
from admincore.orchestration.console import AdminConsole
from admincore.schemas.common import HealthResponse

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.

    Builds the console (a corrupt or duplicate-id manifest aborts start-up
    here), starts its background tasks, and drains them on shutdown.
    """
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )

    logger.info("Starting %s v%s", settings.project_name, settings.version)
    await init_db()
    logger.info("Database initialized")

    console = AdminConsole.from_settings(settings, async_session_maker)
    await console.start()
    app.state.console = console

    yield

    logger.info("Shutting down...")
    await console.stop()
    app.state.console = None
    await close_db()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.project_name,
    description="""
    Admin Console Core

    Access control and module orchestration for the administrative console.

    ## Features

    - **Modules**: capability-filtered menu of registered modules
    - **Navigation**: permission-gated navigation with shareable locators
    - **Audit**: append-only trail of administrative actions
    - **Reconciliation**: drift detection between declared and compiled modules
    - **Stats**: best-effort dashboard figures
    """,
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# add_middleware stacks innermost-first: the last one added is outermost
_cors_origins = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
]

app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_headers(request: Request) -> dict:
    req_id = getattr(request.state, "request_id", None)
    return {REQUEST_ID_HEADER: req_id} if req_id else {}


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Attach the request id to 401/403/404 etc."""
    headers = {**_error_headers(request), **(exc.headers or {})}
    content = {"detail": exc.detail}
    req_id = getattr(request.state, "request_id", None)
    if req_id and exc.status_code >= 500:
        content["request_id"] = req_id
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


@app.exception_handler(PermissionDenied)
async def permission_denied_handler(request: Request, exc: PermissionDenied):
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content={
            "detail": str(exc),
            "code": "permission_denied",
            "module_id": exc.module_id,
            "required_capability": exc.required_capability,
        },
        headers=_error_headers(request),
    )


@app.exception_handler(ModuleNotFound)
async def module_not_found_handler(request: Request, exc: ModuleNotFound):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": str(exc), "code": "module_not_found", "module_id": exc.module_id},
        headers=_error_headers(request),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
):
    """Handle request validation errors."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })
    content = {"detail": "Validation error", "errors": errors}
    req_id = getattr(request.state, "request_id", None)
    if req_id:
        content["request_id"] = req_id
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=content,
        headers=_error_headers(request),
    )


@app.exception_handler(Exception)
async def general_exception_handler(
    request: Request,
    exc: Exception,
):
    """Handle unexpected exceptions."""
    logger.exception("Unhandled exception: %s", exc)
    req_id = getattr(request.state, "request_id", None)
    if settings.debug or isinstance(exc, AdminCoreError):
        content = {
            "detail": str(exc),
            "type": type(exc).__name__,
            "request_id": req_id,
        }
    else:
        content = {"detail": "Internal server error", "request_id": req_id}
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=content,
        headers=_error_headers(request),
    )


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request):
    """Check application health."""
    console = getattr(request.app.state, "console", None)
    if console is None:
        return HealthResponse(status="starting", version=settings.version)
    descriptors = console.registry.list()
    return HealthResponse(
        status="ok",
        version=settings.version,
        modules_declared=len(descriptors),
        modules_active=sum(1 for d in descriptors if d.status == ModuleStatus.ACTIVE),
        audit_pending=console.audit.pending,
    )


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.project_name,
        "version": settings.version,
        "docs": "/docs" if settings.debug else "disabled",
        "api": {
            "v1": settings.api_v1_prefix,
        },
    }


app.include_router(
    api_v1_router,
    prefix=settings.api_v1_prefix,
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "admincore.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
