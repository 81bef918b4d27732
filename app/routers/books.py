from fastapi import APIRouter, status, Depends, Request
from app.filters import Filters
from app.schemas.book import (BookCreate, BookReplace, BookUpdate, BookEnvelope,
                              BookListEnvelope, MessageEnvelope, HealthResponse)
from app import services
from app.core.database import get_session
from app.utils import json_body, read_id_param, read_int, read_string
from app.validator import Validator
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Annotated

books_router = APIRouter(prefix='/v1/books', tags=['books'])
health_router = APIRouter(prefix='/v1', tags=['system'])

@health_router.get('/healthcheck', response_model=HealthResponse)
async def healthcheck(request: Request):
    settings = request.app.state.settings
    return {
        'status': 'available',
        'system_info': {'environment': settings.environment, 'version': settings.version},
    }

@books_router.post('', status_code=status.HTTP_201_CREATED,
                   response_model=BookEnvelope, response_model_exclude_none=True)
async def create_book(
    book_create: Annotated[BookCreate, Depends(json_body(BookCreate))],
    db: AsyncSession=Depends(get_session)
    ):
    book = await services.create_book_service(db, book_create.model_dump())
    return {'book': book}

@books_router.get('/{book_id}', response_model=BookEnvelope, response_model_exclude_none=True)
async def show_book(
    book_id: str,
    db: AsyncSession=Depends(get_session)
    ):
    book = await services.get_book_service(db, read_id_param(book_id))
    return {'book': book}

@books_router.get('', response_model=BookListEnvelope, response_model_exclude_none=True)
async def list_books(
    request: Request,
    db: AsyncSession=Depends(get_session)
    ):
    qs = request.query_params
    v = Validator()
    filters = Filters(
        page=read_int(qs, 'page', 1, v),
        page_size=read_int(qs, 'page_size', 20, v),
        sort=read_string(qs, 'sort', 'book_id'),
    )
    books, metadata = await services.list_books_service(db, filters, v)
    return {'books': books, 'metadata': metadata}

@books_router.put('/{book_id}', response_model=BookEnvelope, response_model_exclude_none=True)
async def replace_book(
    book_id: str,
    book_replace: Annotated[BookReplace, Depends(json_body(BookReplace))],
    db: AsyncSession=Depends(get_session)
    ):
    book = await services.replace_book_service(db, read_id_param(book_id), book_replace.model_dump())
    return {'book': book}

@books_router.patch('/{book_id}', response_model=BookEnvelope, response_model_exclude_none=True)
async def update_book(
    book_id: str,
    book_update: Annotated[BookUpdate, Depends(json_body(BookUpdate))],
    db: AsyncSession=Depends(get_session)
    ):
    book = await services.update_book_service(db, read_id_param(book_id), book_update.changes())
    return {'book': book}

@books_router.delete('/{book_id}', response_model=MessageEnvelope)
async def delete_book(
    book_id: str,
    db: AsyncSession=Depends(get_session)
    ):
    await services.delete_book_service(db, read_id_param(book_id))
    return {'message': 'book successfully deleted'}
