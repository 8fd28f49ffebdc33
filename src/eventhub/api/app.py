"""FastAPI application factory.

Creates and configures the FastAPI application with all routes, middleware
and exception handlers.

## Usage

```python
from eventhub.api import create_app

app = create_app()

# Run with uvicorn
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=3000)
```

## Error Responses

Every error is rendered as ``{"success": false, "message": ...}``:

- `EventHubError` subclasses use their own status code
- Request validation errors are 400 with a per-field ``errors`` list
- Database and unexpected errors are 500; the message only carries the
  exception text outside production

## Configuration

The app is configured via environment variables. See `eventhub.config`
for available settings.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from eventhub.api.schemas import HealthResponse
from eventhub.config import get_settings
from eventhub.database.connection import Database, get_database
from eventhub.errors import EventHubError

logger = logging.getLogger(__name__)


def _validation_errors(exc: RequestValidationError) -> list[dict[str, str]]:
    errors = []
    for error in exc.errors():
        # Drop the "body"/"query" location prefix
        location = [str(part) for part in error.get("loc", ())[1:]]
        errors.append(
            {
                "field": ".".join(location) or "body",
                "message": error.get("msg", "Invalid value"),
            }
        )
    return errors


def _install_exception_handlers(app: FastAPI) -> None:
    settings = get_settings()

    @app.exception_handler(EventHubError)
    async def eventhub_error_handler(request: Request, exc: EventHubError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=jsonable_encoder(
                {
                    "success": False,
                    "message": "Validation failed",
                    "errors": _validation_errors(exc),
                }
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code == status.HTTP_404_NOT_FOUND and request.url.path.startswith("/api"):
            message = "API endpoint not found"
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": message},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.exception(f"Database error on {request.method} {request.url.path}")
        message = "Internal server error" if settings.is_production else str(exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": message},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        message = "Internal server error" if settings.is_production else str(exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": message},
        )


def create_app(database: Database | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        database: Database to use instead of one built from settings. The
            caller keeps ownership of a database passed in here.

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Open the database on startup and dispose of it on shutdown."""
        logger.info(f"Starting {settings.app_name} v{settings.app_version}")

        owned = database is None
        db = database or Database.from_settings(settings)
        if settings.database_create_tables:
            await db.create_tables()
        app.state.database = db

        yield

        logger.info("Shutting down")
        if owned:
            await db.close()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Event discovery, favorites and venue scraping",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
        allow_headers=["*"],
    )

    _install_exception_handlers(app)

    # Include routers
    from eventhub.api.routes import assistant, auth, events, favorites, scraping

    app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
    app.include_router(events.router, prefix="/api/events", tags=["Events"])
    app.include_router(favorites.router, prefix="/api/favorites", tags=["Favorites"])
    app.include_router(scraping.router, prefix="/api/scraping", tags=["Scraping"])
    app.include_router(assistant.router, prefix="/api/ai", tags=["Assistant"])

    @app.get("/api/health", response_model=HealthResponse, tags=["Health"])
    async def health_check(request: Request) -> HealthResponse:
        """Health check endpoint, including database reachability."""
        try:
            await get_database(request).ping()
            database_status = "ok"
        except SQLAlchemyError as e:
            logger.warning(f"Health check database ping failed: {e}")
            database_status = "unavailable"

        return HealthResponse(
            message=f"{settings.app_name} API is running",
            version=settings.app_version,
            database=database_status,
            timestamp=datetime.now(timezone.utc),
        )

    return app
