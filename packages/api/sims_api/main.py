# This project was developed with assistance from AI tools.
"""FastAPI application entry point."""

import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sims_db import engine
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .core.config import settings
from .routes import administrative_activity, health, projects, users
from .schemas.error import ErrorResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Application startup/shutdown lifecycle."""
    if settings.AUTH_DISABLED:
        logger.warning("AUTH_DISABLED is set: bearer tokens are not validated")
    if not settings.GCNOTIFY_API_KEY:
        logger.info("GCNotify API key not set: notification emails are disabled")
    yield
    await engine.dispose()


app = FastAPI(
    title="SIMS API",
    description="Species Inventory Management System: users, projects and access control",
    version=__version__,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_HOSTS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)


def _request_id(request: Request) -> str:
    return request.headers.get("x-request-id", str(uuid.uuid4()))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Convert HTTPException to RFC 7807 Problem Details."""
    body = ErrorResponse.for_status(
        exc.status_code, str(exc.detail), _request_id(request), request.url.path
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Convert Pydantic validation errors to RFC 7807 Problem Details."""
    body = ErrorResponse.for_status(422, str(exc.errors()), _request_id(request), request.url.path)
    return JSONResponse(status_code=422, content=body.model_dump())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch-all for unhandled exceptions -- log and return 500."""
    request_id = _request_id(request)
    logger.exception("Unhandled exception (request_id=%s)", request_id)
    body = ErrorResponse.for_status(
        500, "An unexpected error occurred.", request_id, request.url.path
    )
    return JSONResponse(status_code=500, content=body.model_dump())


# Include routers
app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(users.router, prefix="/api/user", tags=["user"])
app.include_router(projects.router, prefix="/api/project", tags=["project"])
app.include_router(administrative_activity.router, prefix="/api", tags=["administrative activity"])


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint"""
    return {"message": "Welcome to the SIMS API"}
