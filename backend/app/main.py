import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

# Configure structured JSON logging as early as possible so every subsequent
# log record (including import-time warnings) uses the JSON formatter.
from app.logging_config import CorrelationIdMiddleware, configure_logging, request_correlation_id

# Use LOG_LEVEL env var directly here because settings hasn't been imported yet
configure_logging(level=os.environ.get("LOG_LEVEL", "INFO"))

# Set PROJECT_ROOT so the engine can find config files from venv installs
from pathlib import Path as _Path  # noqa: E402

os.environ.setdefault("PROJECT_ROOT", str(_Path(__file__).resolve().parent.parent.parent))

from bookstore_catalog.errors import CatalogError  # noqa: E402

from app.api.books import router as books_router  # noqa: E402
from app.config import settings  # noqa: E402
from app.database import init_db  # noqa: E402

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up")
    init_db()
    logger.info("Database initialised")
    yield
    logger.info("Application shutting down")


app = FastAPI(title="Bookstore Catalog API", lifespan=lifespan)

app.add_middleware(CorrelationIdMiddleware, header_name=settings.correlation_header)

app.include_router(books_router)


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    level = logging.ERROR if exc.status_code >= 500 else logging.INFO
    logger.log(
        level,
        "%s %s failed: %s",
        request.method,
        request.url.path,
        exc.error_code,
        extra={"error_code": exc.error_code, "status_code": exc.status_code},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details,
            "trace_id": request_correlation_id(request),
        },
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    # Runs outside the correlation middleware; the id survives on request.state
    trace_id = request_correlation_id(request)
    return JSONResponse(
        status_code=500,
        content={
            "error_code": "INTERNAL_SERVER_ERROR",
            "message": "An unexpected error occurred",
            "details": [],
            "trace_id": trace_id,
        },
        headers={settings.correlation_header: trace_id},
    )


@app.get("/api/health")
async def health():
    return {"status": "ok"}
