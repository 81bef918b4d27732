from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool
from app.core.config import Settings, get_settings

Base = declarative_base()

def make_engine(settings: Settings) -> AsyncEngine:
    """Build the async engine for `settings.database_url`.

    An in-memory SQLite database lives only as long as its connection, so it
    gets a single shared one. Server databases get a checked connection pool.
    """
    url = make_url(settings.database_url)
    if url.get_backend_name() == 'sqlite':
        if url.database in (None, '', ':memory:'):
            return create_async_engine(url, echo=settings.database_echo, poolclass=StaticPool)
        return create_async_engine(url, echo=settings.database_echo)

    return create_async_engine(
        url,
        echo=settings.database_echo,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_pre_ping=True,
    )

def make_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # rows stay readable after commit; services hand them to response models
    return async_sessionmaker(engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)

engine = make_engine(get_settings())
AsyncSessionLocal = make_sessionmaker(engine)

async def get_session():
    async with AsyncSessionLocal() as session:
        yield session
