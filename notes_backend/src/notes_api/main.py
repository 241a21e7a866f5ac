from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from structlog import get_logger

from notes_api import __version__
from notes_api.config import Settings, get_settings
from notes_api.errors import setup_error_handlers
from notes_api.logging_setup import configure_logging
from notes_api.middleware import AccessLogMiddleware
from notes_api.routes import auth, notes
from notes_database.init_db import init_db
from notes_database.db import configure_engine


logger = get_logger(__name__)


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI application from settings (environment by default)."""
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_json)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = configure_engine(settings.database_url)
        init_db(engine)
        logger.info("startup_complete", app_env=settings.app_env, google_enabled=settings.google_enabled)
        yield
        engine.dispose()

    app = FastAPI(
        title="Personal Notes Backend API",
        description="Backend API for user auth (password + OTP, Google) and personal notes management.",
        version=__version__,
        lifespan=lifespan,
        openapi_tags=[
            {"name": "Authentication", "description": "Registration, OTP verification, login, Google sign-in"},
            {"name": "Notes", "description": "Create, update, view, delete, pin, search notes"},
        ],
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(AccessLogMiddleware)
    setup_error_handlers(app)

    # Root Health Check
    @app.get("/", summary="Health Check", tags=["General"])
    def health_check():
        """Simple health check endpoint."""
        return {"message": "Healthy"}

    app.include_router(auth.router)
    app.include_router(notes.router)
    return app


app = create_app()
