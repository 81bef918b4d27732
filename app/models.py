from app.core.database import Base
from sqlalchemy import Column, String, Integer, Text, DateTime, func

class Book(Base):
    __tablename__ = 'books'

    book_id = Column(Integer, primary_key=True)
    title = Column(String(255), nullable=False)
    isbn = Column(String(13), unique=True, nullable=False)
    publisher = Column(String(150), nullable=False)
    publication_year = Column(Integer)
    minimum_age = Column(Integer, nullable=False)
    description = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f'<Book {self.book_id} isbn={self.isbn}>'
