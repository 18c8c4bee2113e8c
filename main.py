import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from megainvest.config import settings
from megainvest.database import Base, engine
from megainvest.exception_handlers import register_exception_handlers
from megainvest.middleware.logging import StructuredLoggingMiddleware, setup_structured_logging
from megainvest.routes import admin, cookie_consent

setup_structured_logging(settings.log_level, json_format=settings.structured_logging)
logger = logging.getLogger(__name__)

if settings.secret_key == "your_secret_key":
    logger.warning("Using default SECRET_KEY. This is insecure and should be changed in production!")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Tasks to run at application startup and shutdown."""
    logger.info(f"Starting {settings.app_name} in {settings.environment} mode")
    if settings.debug:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created (if not existing).")
    yield
    logger.info("Shutting down the application...")
    await engine.dispose()


def create_app() -> FastAPI:
    """Create the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Investment marketplace API: cookie consent storage and analytics",
        debug=settings.debug,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )
    app.add_middleware(StructuredLoggingMiddleware)

    register_exception_handlers(app)

    app.include_router(cookie_consent.router, prefix="/api")
    app.include_router(admin.router, prefix="/api")

    @app.get("/health", tags=["Root"])
    async def health():
        return {"status": "ok"}

    if settings.debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.debug)
