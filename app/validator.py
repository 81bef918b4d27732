from typing import Any, Mapping

MAX_PUBLICATION_YEAR = 2026
ISBN_LENGTH = 13
# upper bound of the INTEGER columns in the books table
MAX_INT = 2_147_483_647

class Validator:
    """Collects field-level error messages.

    Only the first failure per field is kept, so a chain of checks on the
    same field reports the most basic problem.
    """

    def __init__(self):
        self.errors: dict[str, str] = {}

    def valid(self) -> bool:
        return not self.errors

    def add_error(self, key: str, message: str):
        if key not in self.errors:
            self.errors[key] = message

    def check(self, ok: bool, key: str, message: str):
        if not ok:
            self.add_error(key, message)

def permitted_value(value, *permitted) -> bool:
    return value in permitted

def validate_book(v: Validator, book: Mapping[str, Any]):
    title = book.get('title')
    v.check(title is not None and title != '', 'title', 'must be provided')
    v.check(title is None or len(title) <= 255, 'title', 'must not be more than 255 characters long')

    isbn = book.get('isbn')
    v.check(isbn is not None and isbn != '', 'isbn', 'must be provided')
    v.check(isbn is None or len(isbn) == ISBN_LENGTH, 'isbn', f'must be exactly {ISBN_LENGTH} characters long')

    publisher = book.get('publisher')
    v.check(publisher is not None and publisher != '', 'publisher', 'must be provided')
    v.check(publisher is None or len(publisher) <= 150, 'publisher', 'must not be more than 150 characters long')

    year = book.get('publication_year')
    v.check(year is not None, 'publication_year', 'must be provided')
    v.check(year is None or year > 0, 'publication_year', 'must be a positive integer')
    v.check(year is None or year <= MAX_PUBLICATION_YEAR, 'publication_year',
            f'must not be greater than {MAX_PUBLICATION_YEAR}')

    minimum_age = book.get('minimum_age')
    v.check(minimum_age is not None, 'minimum_age', 'must be provided')
    v.check(minimum_age is None or minimum_age >= 0, 'minimum_age', 'must be greater than or equal to zero')
    v.check(minimum_age is None or minimum_age <= MAX_INT, 'minimum_age', f'must not be greater than {MAX_INT}')
