from pydantic import BaseModel, PositiveInt, ConfigDict
from datetime import datetime
from typing import Optional
from app.filters import Metadata

class BookInput(BaseModel):
    # every field defaults to None so a missing field reaches the validator
    # (422 "must be provided") instead of failing the decode step
    title: Optional[str] = None
    isbn: Optional[str] = None
    publisher: Optional[str] = None
    publication_year: Optional[int] = None
    minimum_age: Optional[int] = None
    description: Optional[str] = None

    model_config = ConfigDict(extra='forbid', strict=True)

class BookCreate(BookInput):
    pass

class BookReplace(BookInput):
    pass

class BookUpdate(BookInput):
    def changes(self) -> dict:
        """Fields the client actually sent; null counts as not sent."""
        provided = self.model_dump(exclude_unset=True)
        return {key: value for key, value in provided.items() if value is not None}

class BookResponse(BaseModel):
    book_id: PositiveInt
    title: str
    isbn: str
    publisher: str
    publication_year: int
    minimum_age: int
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)

class BookEnvelope(BaseModel):
    book: BookResponse

class BookListEnvelope(BaseModel):
    books: list[BookResponse]
    metadata: Metadata

class MessageEnvelope(BaseModel):
    message: str

class SystemInfo(BaseModel):
    environment: str
    version: str

class HealthResponse(BaseModel):
    status: str
    system_info: SystemInfo
