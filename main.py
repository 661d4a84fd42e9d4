"""FastAPI application for the Media Guestbook API."""

import logging
import math
import os
import sys
import time
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from src.api.routes import router as api_router
from src.config import config
from src.models.api_models import ErrorResponse
from src.services.errors import MediaApiError, MethodNotAllowedError, RateLimitError

# Configure logging level from environment variable
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
log_level = getattr(logging, LOG_LEVEL, logging.INFO)

# Configure root logger
logging.basicConfig(
    level=log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stdout,
    force=True
)

# Set uvicorn loggers to same level
logging.getLogger("uvicorn").setLevel(log_level)
logging.getLogger("uvicorn.access").setLevel(log_level)
logging.getLogger("uvicorn.error").setLevel(log_level)

logger = logging.getLogger(__name__)
logger.info(f"Log level set to: {LOG_LEVEL}")


class RequestResponseLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log request and response summaries.

    Bodies are never read here: uploads must stay streamable and guestbook
    submissions carry personal data.
    """

    async def dispatch(self, request: Request, call_next):
        # Skip health check endpoints
        if request.url.path == "/health":
            return await call_next(request)

        start_time = time.time()
        content_length = request.headers.get("content-length", "-")
        logger.info(f">>> REQUEST: {request.method} {request.url.path} (content-length: {content_length})")

        response = await call_next(request)

        duration = time.time() - start_time
        logger.info(f"<<< RESPONSE: {response.status_code} ({duration:.3f}s)")

        return response


# Filter out health check logs from uvicorn access logs
class HealthCheckFilter(logging.Filter):
    """Filter to exclude health check endpoint logs."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Return False for health check requests to exclude them from logs."""
        return "/health" not in record.getMessage()


app = FastAPI(
    title="Media Guestbook API",
    description="Serverless-style API for media uploads, media listing and a spreadsheet-backed guestbook",
    version="0.1.0",
)

# Add request/response logging middleware
app.add_middleware(RequestResponseLoggingMiddleware)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MediaApiError)
async def media_api_exception_handler(request: Request, exc: MediaApiError) -> JSONResponse:
    """Render service errors with the status code they carry."""
    headers = None
    if isinstance(exc, RateLimitError):
        headers = {"Retry-After": str(max(1, math.ceil(exc.retry_after)))}
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.message).model_dump(exclude_none=True),
        headers=headers,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render router-level errors (404, 405) in the API's error shape."""
    error = MethodNotAllowedError().message if exc.status_code == 405 else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=error).model_dump(exclude_none=True),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for internal server errors."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    details = str(exc) if config.debug else None
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error="Internal server error", details=details).model_dump(exclude_none=True),
    )


@app.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "healthy"}


# Mount API router
app.include_router(api_router, prefix="/api")


if __name__ == "__main__":
    import uvicorn

    # Apply health check filter to uvicorn access logger
    logging.getLogger("uvicorn.access").addFilter(HealthCheckFilter())

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
