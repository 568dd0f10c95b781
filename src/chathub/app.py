"""Main FastAPI application module.

This module initializes the FastAPI application, registers all route
handlers and maps unhandled errors to generic responses.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chathub import __version__
from chathub.api.routes import api_keys, conversations, providers
from chathub.config import API_HOST, API_PORT, CORS_ALLOWED_ORIGINS, STORAGE_BACKEND
from chathub.core.database import init_db
from chathub.core.exceptions import UnsupportedProviderError
from chathub.core.logging_config import setup_logging

# Setup logging
setup_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables before serving when persisting to a database."""
    if STORAGE_BACKEND != "memory":
        init_db()
        logger.info("Database initialized")
    yield


# Initialize FastAPI application
app = FastAPI(
    title="ChatHub API",
    description="One chat API in front of many hosted LLM providers.",
    version=__version__,
    lifespan=lifespan,
)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
)

# Register route handlers
app.include_router(conversations.router)
app.include_router(api_keys.router)
app.include_router(providers.router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Answer schema violations with a generic 400 instead of FastAPI's 422."""
    logger.info("Rejected invalid request to %s: %s", request.url.path, exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid request data"},
    )


@app.exception_handler(UnsupportedProviderError)
async def unsupported_provider_handler(request: Request, exc: UnsupportedProviderError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": str(exc)},
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Hide internal error details from clients."""
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


@app.get("/", summary="API root", tags=["Info"])
def root() -> dict:
    """Return API information and documentation links."""
    return {
        "name": "ChatHub API",
        "version": __version__,
        "docs": {
            "swagger": "/docs",
            "redoc": "/redoc",
        },
        "health": "/api/health",
    }


@app.get("/api/health", summary="Health check", tags=["Health"])
def health() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


def main() -> None:
    """Run the API server with uvicorn."""
    import uvicorn

    logger.info("Starting ChatHub API at http://%s:%s", API_HOST, API_PORT)
    uvicorn.run("chathub.app:app", host=API_HOST, port=API_PORT)


if __name__ == "__main__":
    main()
