import math
import enum
from dataclasses import dataclass, field
from typing import Optional
from pydantic import BaseModel
from app.validator import Validator, permitted_value

MAX_PAGE = 10_000_000
MAX_PAGE_SIZE = 100

class SortColumn(str, enum.Enum):
    BOOK_ID = 'book_id'
    TITLE = 'title'
    PUBLICATION_YEAR = 'publication_year'

class SortDirection(str, enum.Enum):
    ASC = 'ASC'
    DESC = 'DESC'

BOOK_SORT_SAFELIST = (
    'book_id', 'title', 'publication_year',
    '-book_id', '-title', '-publication_year',
)

@dataclass
class Filters:
    page: int = 1
    page_size: int = 20
    sort: str = SortColumn.BOOK_ID.value
    sort_safelist: tuple[str, ...] = field(default=BOOK_SORT_SAFELIST)

    def sort_column(self) -> SortColumn:
        # unknown tokens never reach the query, they resolve to the default
        if self.sort in self.sort_safelist:
            try:
                return SortColumn(self.sort.removeprefix('-'))
            except ValueError:
                pass
        return SortColumn.BOOK_ID

    def sort_direction(self) -> SortDirection:
        if self.sort.startswith('-'):
            return SortDirection.DESC
        return SortDirection.ASC

    def limit(self) -> int:
        return self.page_size

    def offset(self) -> int:
        return (self.page - 1) * self.page_size

def validate_filters(v: Validator, f: Filters):
    v.check(f.page > 0, 'page', 'must be greater than zero')
    v.check(f.page <= MAX_PAGE, 'page', 'must be a maximum of 10 million')
    v.check(f.page_size > 0, 'page_size', 'must be greater than zero')
    v.check(f.page_size <= MAX_PAGE_SIZE, 'page_size', f'must be a maximum of {MAX_PAGE_SIZE}')
    v.check(permitted_value(f.sort, *f.sort_safelist), 'sort', 'invalid sort value')

class Metadata(BaseModel):
    current_page: Optional[int] = None
    page_size: Optional[int] = None
    first_page: Optional[int] = None
    last_page: Optional[int] = None
    total_records: Optional[int] = None

def calculate_metadata(total_records: int, page: int, page_size: int) -> Metadata:
    # an empty result has no pages at all, which is not the same as page 1 of 1
    if total_records == 0:
        return Metadata()
    return Metadata(
        current_page=page,
        page_size=page_size,
        first_page=1,
        last_page=math.ceil(total_records / page_size),
        total_records=total_records,
    )
