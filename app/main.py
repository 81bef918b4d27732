import logging
from fastapi import FastAPI
from contextlib import asynccontextmanager
from app.core.config import Settings, get_settings
from app.core.database import engine, Base
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.rate_limit import RateLimiter, RateLimitMiddleware
from app.routers import books

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    app.state.rate_limiter.start()
    logger.info('starting server', extra={'environment': settings.environment, 'port': settings.port})
    yield # app runs here
    logger.info('stopping server')
    await app.state.rate_limiter.stop()
    await engine.dispose()

def create_app(settings: Settings | None = None, rate_limiter: RateLimiter | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_format)

    app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)
    app.state.settings = settings
    if rate_limiter is None:
        rate_limiter = RateLimiter(
            rate=settings.rate_limit_rps,
            burst=settings.rate_limit_burst,
            sweep_interval=settings.rate_limit_sweep_interval,
            stale_after=settings.rate_limit_stale_after,
        )
    app.state.rate_limiter = rate_limiter
    if settings.rate_limit_enabled:
        app.add_middleware(RateLimitMiddleware, limiter=app.state.rate_limiter)

    setup_exception_handlers(app)

    app.include_router(books.health_router)
    app.include_router(books.books_router)
    return app

app = create_app()
