# ruff: noqa: E402
import os

import pytest
from httpx import ASGITransport, AsyncClient

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

# app.core.database builds its engine at import time
os.environ["DATABASE_URL"] = TEST_DB_URL
os.environ["LOG_LEVEL"] = "WARNING"

from app.core.config import Settings
from app.core.database import Base, get_session, make_engine, make_sessionmaker
from app.main import create_app
from app.models import Book

BASE_URL = "http://127.0.0.1:8000"

test_engine = make_engine(Settings(database_url=TEST_DB_URL))
TestAsyncSessionLocal = make_sessionmaker(test_engine)


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture(scope="function")
async def setup_db():
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture(scope="function")
async def test_session(setup_db):
    async with TestAsyncSessionLocal() as session:
        yield session


@pytest.fixture(scope="function")
def app():
    return create_app(Settings(rate_limit_enabled=False, log_level="WARNING"))


@pytest.fixture(scope="function")
async def client(app, test_session):
    async def override_get_session():
        yield test_session

    app.dependency_overrides[get_session] = override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url=BASE_URL) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def book_creation_data():
    return {
        "title": "T",
        "isbn": "1234567890123",
        "publisher": "P",
        "publication_year": 2020,
        "minimum_age": 0,
    }


@pytest.fixture(scope="function")
async def mock_book(test_session, book_creation_data):
    book = Book(**book_creation_data)
    test_session.add(book)
    await test_session.commit()
    await test_session.refresh(book)
    return book


@pytest.fixture(scope="function")
async def mock_books(test_session):
    """
    Adds 25 books whose titles and years repeat, so sorting needs the book_id tie-break
    """
    books = [
        Book(
            title=f"Title {i % 5}",
            isbn=f"{9780000000000 + i}",
            publisher="Mock Press",
            publication_year=2000 + (i % 3),
            minimum_age=i % 18,
        )
        for i in range(1, 26)
    ]
    test_session.add_all(books)
    await test_session.commit()
    for book in books:
        await test_session.refresh(book)
    return books
