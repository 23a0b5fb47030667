from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from typing import Optional

from .database.session import build_engine, build_session_factory, init_db
from .routers import daily, game
from .config import Settings, get_settings
from .logging_config import setup_logging
from .services.daily import date_key
from .services.game_state import now_ms
from .services.photos import DatabasePhotoProvider, RemotePhotoProvider
from .services.rate_limit import RateLimiter
from .services.storage import SessionStoreRegistry
from .services.submission import DailyLeaderboard


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle events for the application."""
    # Startup: Initialize database
    await init_db(app.state.engine)
    yield
    # Shutdown: Release pooled connections
    await app.state.engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="uwGuessr",
        description="Guess where on campus each photo was taken",
        version="1.0.0",
        lifespan=lifespan
    )

    def today() -> str:
        return date_key(tz_name=settings.REFERENCE_TIMEZONE)

    engine = build_engine(settings.DATABASE_URL)
    session_factory = build_session_factory(engine)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.today = today
    app.state.clock = now_ms
    app.state.session_stores = SessionStoreRegistry(settings.MAX_SESSIONS)
    app.state.rate_limiter = RateLimiter(
        settings.RATE_LIMIT_REQUESTS,
        settings.RATE_LIMIT_WINDOW_SECONDS,
        capacity=settings.RATE_LIMIT_CAPACITY
    )
    app.state.leaderboard = DailyLeaderboard(
        session_factory, lambda: app.state.today(), max_name_length=settings.MAX_NAME_LENGTH
    )
    if settings.PHOTO_PROVIDER_URL:
        app.state.photo_provider = RemotePhotoProvider(
            settings.PHOTO_PROVIDER_URL, timeout=settings.PHOTO_PROVIDER_TIMEOUT
        )
    else:
        app.state.photo_provider = DatabasePhotoProvider(
            session_factory, retention_days=settings.DAILY_RETENTION_DAYS
        )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(game.router, prefix="/api")
    app.include_router(daily.router, prefix="/api")

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "message": "Welcome to the uwGuessr API",
            "docs": "/docs",
            "health": "ok"
        }

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()
