from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from app import crud
from app.core.errors import (FailedValidationError, NotFoundError,
                             RecordNotFoundError, DuplicateISBNError)
from app.filters import Filters, validate_filters
from app.validator import Validator, validate_book
from logging import getLogger

logger = getLogger(__name__)

BOOK_FIELDS = ('title', 'isbn', 'publisher', 'publication_year', 'minimum_age', 'description')

duplicate_isbn_errors = {'isbn': 'a book with this isbn already exists'}

def ensure_valid_book(data: dict):
    v = Validator()
    validate_book(v, data)
    if not v.valid():
        raise FailedValidationError(v.errors)

async def _get_or_404(db: AsyncSession, book_id: int):
    try:
        return await crud.get_book(db, book_id)
    except RecordNotFoundError:
        raise NotFoundError()

async def create_book_service(db: AsyncSession, book_data: dict):
    ensure_valid_book(book_data)
    try:
        book = await crud.insert_book(db, book_data)
        logger.info('book created', extra={'book_id': book.book_id, 'isbn': book.isbn})
        return book
    except DuplicateISBNError:
        raise FailedValidationError(duplicate_isbn_errors)
    except SQLAlchemyError:
        await db.rollback()
        raise

async def get_book_service(db: AsyncSession, book_id: int):
    return await _get_or_404(db, book_id)

async def list_books_service(db: AsyncSession, filters: Filters, v: Validator):
    # v may already hold query-string parse errors
    validate_filters(v, filters)
    if not v.valid():
        raise FailedValidationError(v.errors)
    return await crud.list_books(db, filters)

async def _save(db: AsyncSession, book_id: int, data: dict):
    try:
        book = await crud.update_book(db, book_id, data)
        logger.info('book updated', extra={'book_id': book_id})
        return book
    except RecordNotFoundError:
        raise NotFoundError()
    except DuplicateISBNError:
        raise FailedValidationError(duplicate_isbn_errors)
    except SQLAlchemyError:
        await db.rollback()
        raise

async def replace_book_service(db: AsyncSession, book_id: int, book_data: dict):
    ensure_valid_book(book_data)
    await _get_or_404(db, book_id)
    return await _save(db, book_id, {field: book_data.get(field) for field in BOOK_FIELDS})

async def update_book_service(db: AsyncSession, book_id: int, changes: dict):
    book = await _get_or_404(db, book_id)

    merged = {field: getattr(book, field) for field in BOOK_FIELDS}
    merged.update(changes)

    # validated after merging so a stored value that no longer passes is caught too
    ensure_valid_book(merged)
    return await _save(db, book_id, merged)

async def delete_book_service(db: AsyncSession, book_id: int):
    try:
        await crud.delete_book(db, book_id)
        logger.info('book deleted', extra={'book_id': book_id})
    except RecordNotFoundError:
        raise NotFoundError()
    except SQLAlchemyError:
        await db.rollback()
        raise
