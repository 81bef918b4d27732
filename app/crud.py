from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.errors import RecordNotFoundError, DuplicateISBNError
from app.filters import Filters, Metadata, SortColumn, SortDirection, calculate_metadata
from app.models import Book
from app.validator import MAX_INT
from typing import List, Tuple

# the only columns an ORDER BY can ever be built from
SORT_COLUMNS = {
    SortColumn.BOOK_ID: Book.book_id,
    SortColumn.TITLE: Book.title,
    SortColumn.PUBLICATION_YEAR: Book.publication_year,
}

def _out_of_range(book_id: int) -> bool:
    return book_id < 1 or book_id > MAX_INT

def _is_isbn_violation(e: IntegrityError) -> bool:
    return 'isbn' in str(e.orig).lower()

async def insert_book(db: AsyncSession, data: dict) -> Book:
    book = Book(**data)
    db.add(book)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if _is_isbn_violation(e):
            raise DuplicateISBNError(data.get('isbn')) from e
        raise
    await db.refresh(book)
    return book

async def get_book(db: AsyncSession, book_id: int) -> Book:
    if _out_of_range(book_id):
        raise RecordNotFoundError(book_id)
    book = await db.get(Book, book_id)
    if book is None:
        raise RecordNotFoundError(book_id)
    return book

async def list_books(db: AsyncSession, filters: Filters) -> Tuple[List[Book], Metadata]:
    column = SORT_COLUMNS[filters.sort_column()]
    order = column.desc() if filters.sort_direction() is SortDirection.DESC else column.asc()

    stmt = (
        select(func.count().over().label('total_records'), Book)
        .order_by(order, Book.book_id.asc())
        .limit(filters.limit())
        .offset(filters.offset())
    )
    result = await db.execute(stmt)
    rows = result.all()

    total_records = rows[0].total_records if rows else 0
    books = [row.Book for row in rows]
    return books, calculate_metadata(total_records, filters.page, filters.page_size)

async def update_book(db: AsyncSession, book_id: int, data: dict) -> Book:
    if _out_of_range(book_id):
        raise RecordNotFoundError(book_id)

    stmt = (
        update(Book)
        .where(Book.book_id == book_id)
        .values(**data, updated_at=func.now())
        .returning(Book)
        .execution_options(populate_existing=True)
    )
    try:
        result = await db.execute(stmt)
        book = result.scalar_one_or_none()
        # no returned row means the id does not exist; never report success
        if book is None:
            await db.rollback()
            raise RecordNotFoundError(book_id)
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if _is_isbn_violation(e):
            raise DuplicateISBNError(data.get('isbn')) from e
        raise
    return book

async def delete_book(db: AsyncSession, book_id: int):
    if _out_of_range(book_id):
        raise RecordNotFoundError(book_id)

    result = await db.execute(delete(Book).where(Book.book_id == book_id))
    if result.rowcount == 0:
        await db.rollback()
        raise RecordNotFoundError(book_id)
    await db.commit()
