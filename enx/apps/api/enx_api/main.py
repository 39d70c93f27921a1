"""EnrichX Admin API - FastAPI Application Entry Point."""

import logging
import time
import uuid
from typing import Any, Optional

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from enx_api import __version__
from enx_api.config.env import get_log_level, is_production_env, json_logs_enabled
from enx_api.context import actor_id_var, request_id_var
from enx_api.directory.errors import DirectoryError, InvalidArgument, Unauthenticated
from enx_api.routers import admin_users, health
from enx_api.schemas import ProblemDetail, problem_type
from enx_api.utils import configure_json_logging

logger = logging.getLogger(__name__)

app = FastAPI(
    title="EnrichX Admin API",
    description="User directory administration over Supabase Auth and the profiles table.",
    version=__version__,
    # Interactive docs are not served in production
    docs_url=None if is_production_env() else "/api-docs",
    redoc_url=None if is_production_env() else "/redoc",
)

# Set ENX_JSON_LOGS=false to disable (defaults to true for production)
if json_logs_enabled():
    configure_json_logging(log_level=get_log_level())
    logger.info("Structured JSON logging enabled")

# The admin dashboard is served from arbitrary origins and sends no cookies
CORS_ALLOWED_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
CORS_ALLOWED_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": ", ".join(CORS_ALLOWED_METHODS),
    "Access-Control-Allow-Headers": ", ".join(CORS_ALLOWED_HEADERS),
}

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=CORS_ALLOWED_METHODS,
    allow_headers=CORS_ALLOWED_HEADERS,
    expose_headers=["X-Request-ID"],
)


# ============================================================================
# Admin Bearer Header Middleware (innermost)
# ============================================================================


def _has_bearer_token(request: Request) -> bool:
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    return scheme.lower() == "bearer" and bool(token.strip())


@app.middleware("http")
async def admin_bearer_header_middleware(request: Request, call_next):
    """Reject admin requests without a bearer header before the body is parsed.

    FastAPI decodes and validates the request body before it resolves
    dependencies, so require_admin alone would answer an anonymous request
    with a malformed body with 400. OPTIONS never reaches this middleware.
    """
    if request.url.path.startswith(admin_users.router.prefix) and not _has_bearer_token(request):
        response = await directory_error_handler(request, Unauthenticated("Missing authorization header"))
        response.headers["Access-Control-Allow-Origin"] = "*"
        return response
    return await call_next(request)


# ============================================================================
# HTTP Request Completion Logging Middleware
# ============================================================================


@app.middleware("http")
async def http_completion_logging_middleware(request: Request, call_next):
    """Log every HTTP request completion.

    Emits "http.request.completed" with method, path, status_code and
    duration_ms, also when the handler raised (status_code=500).
    """
    actor_id_var.set("")

    start_time = time.perf_counter()
    status_code = 500

    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "http.request.completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
        actor_id_var.set("")


# ============================================================================
# CORS Preflight Middleware
# ============================================================================


@app.middleware("http")
async def cors_preflight_middleware(request: Request, call_next):
    """Answer every OPTIONS request with 200, CORS headers and no body."""
    if request.method == "OPTIONS":
        return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)
    return await call_next(request)


# ============================================================================
# Request ID Middleware (MUST BE OUTERMOST)
# ============================================================================


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Generate and propagate request_id for observability.

    - Accepts X-Request-ID header from client (optional)
    - Generates new UUID if not provided
    - Returns X-Request-ID in response headers

    Registered last so it is the outermost middleware and the context
    variable is set before inner middlewares run.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request_id_var.set(request_id)

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ============================================================================
# Problem Details Exception Handlers
# ============================================================================


def _instance() -> str:
    """Opaque occurrence identifier built from the request id."""
    request_id = request_id_var.get()
    return f"urn:enrichx:trace:{request_id or uuid.uuid4()}"


def _problem_response(
    status_code: int,
    slug: str,
    title: str,
    detail: str | dict[str, Any],
    extensions: Optional[dict[str, Any]] = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    problem = ProblemDetail(
        type=problem_type(slug),
        title=title,
        status=status_code,
        detail=detail,
        instance=_instance(),
        error=detail if isinstance(detail, str) else title,
        **(extensions or {}),
    )
    return JSONResponse(
        status_code=status_code,
        content=problem.model_dump(exclude_none=True),
        media_type="application/json",
        headers=headers,
    )


@app.exception_handler(DirectoryError)
async def directory_error_handler(request: Request, exc: DirectoryError) -> JSONResponse:
    """Convert directory errors into problem-details JSON."""
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        f"{type(exc).__name__}: {exc.detail}",
        extra={
            "event": "directory.error",
            "error_type": exc.slug,
            "status_code": exc.status_code,
            "path": request.url.path,
            **exc.extensions(),
        },
    )

    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return _problem_response(
        exc.status_code,
        exc.slug,
        exc.title,
        exc.detail,
        extensions=exc.extensions(),
        headers=headers,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions (unknown routes, wrong methods) as problem details."""
    title = _get_title_for_status(exc.status_code)
    detail = exc.detail if exc.detail is not None else title
    return _problem_response(exc.status_code, f"http-{exc.status_code}", title, detail)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed body or query -> 400 invalid-argument."""
    errors = exc.errors()
    first_error = errors[0] if errors else {}
    field = ".".join(str(loc) for loc in first_error.get("loc", []))
    msg = first_error.get("msg", "Validation error")

    return _problem_response(
        InvalidArgument.status_code,
        InvalidArgument.slug,
        InvalidArgument.title,
        f"Invalid field '{field}': {msg}",
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Uncaught exceptions -> generic 500; the traceback is logged only."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return _problem_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "internal-error",
        "Internal Server Error",
        "An unexpected error occurred. Please try again later.",
    )


def _get_title_for_status(status_code: int) -> str:
    """Get human-readable title for HTTP status code."""
    titles = {
        400: "Bad Request",
        401: "Unauthorized",
        403: "Forbidden",
        404: "Not Found",
        405: "Method Not Allowed",
        500: "Internal Server Error",
        503: "Service Unavailable",
    }
    return titles.get(status_code, f"HTTP {status_code}")


app.include_router(health.router, tags=["health"])
app.include_router(admin_users.router)
