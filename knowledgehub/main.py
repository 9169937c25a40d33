"""FastAPI application entrypoint. No business logic; only wiring, middleware and error rendering."""

from dotenv import load_dotenv

load_dotenv()

import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from knowledgehub.api.v1 import health_router
from knowledgehub.api.v1 import router as v1_router
from knowledgehub.core.config import settings
from knowledgehub.core.errors import KnowledgeHubError
from knowledgehub.core.logging_config import setup_logging

setup_logging()
logger = logging.getLogger("knowledgehub")

LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}

app = FastAPI(
    title="KnowledgeHub API",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "%s %s %s",
        request.method,
        request.url.path,
        response.status_code,
        extra={"latency_ms": round((time.perf_counter() - start) * 1000, 1)},
    )
    return response


def _error_body(message: str, code: str | None = None) -> dict:
    body = {"success": False, "message": message}
    if code:
        body["code"] = code
    return body


@app.exception_handler(KnowledgeHubError)
async def handle_domain_error(request: Request, exc: KnowledgeHubError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning(
            "Upstream failure",
            extra={"path": request.url.path, "reason": exc.message, "cause": repr(exc.__cause__)},
        )
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, exc.code))


def first_validation_message(exc: RequestValidationError) -> str:
    """Render the first validation error as '"field" message'."""
    errors = exc.errors()
    if not errors:
        return "Validation failed"
    error = errors[0]
    message = str(error.get("msg", "Invalid input")).removeprefix("Value error, ")
    fields = [str(p) for p in error.get("loc", ()) if p not in LOCATION_PREFIXES]
    if not fields:
        return message
    return f'"{".".join(fields)}" {message}'


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content=_error_body(first_validation_message(exc)))


@app.exception_handler(StarletteHTTPException)
async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = str(exc.detail)
    if exc.status_code == 404 and message == "Not Found":
        message = "Endpoint not found"
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(message),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", extra={"path": request.url.path, "method": request.method})
    return JSONResponse(status_code=500, content=_error_body("Internal server error"))


app.include_router(health_router)
app.include_router(v1_router, prefix=settings.API_PREFIX)


@app.get(settings.API_PREFIX)
def api_index() -> dict:
    """Endpoint index built from the OpenAPI schema, grouped by router tag."""
    endpoints: dict[str, dict[str, str]] = {}
    for path, operations in app.openapi()["paths"].items():
        if not path.startswith(settings.API_PREFIX + "/"):
            continue
        for method, operation in sorted(operations.items()):
            group = operation.get("tags", ["other"])[0]
            summary = (operation.get("description") or operation.get("summary") or "").strip()
            line = summary.splitlines()[0] if summary else ""
            endpoints.setdefault(group, {})[f"{method.upper()} {path}"] = line
    return {
        "success": True,
        "message": f"KnowledgeHub API v{settings.APP_VERSION}",
        "endpoints": endpoints,
        "headers": {"Authorization": "Bearer <jwt_token>", "Content-Type": "application/json"},
    }


@app.get("/")
def root() -> dict[str, str]:
    """Root route; minimal payload for discovery."""
    return {"message": "KnowledgeHub API"}
