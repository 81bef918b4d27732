import pytest
from unittest.mock import AsyncMock, patch
from sqlalchemy.exc import OperationalError


@pytest.mark.anyio
async def test_book_lifecycle(client, book_creation_data):
    response = await client.post(f"{client.base_url}/v1/books", json=book_creation_data)
    assert response.status_code == 201
    book = response.json()["book"]
    for key, value in book_creation_data.items():
        assert book[key] == value
    assert book["book_id"] > 0
    assert "created_at" in book and "updated_at" in book
    book_id = book["book_id"]

    response = await client.patch(f"{client.base_url}/v1/books/{book_id}", json={"minimum_age": 5})
    assert response.status_code == 200
    patched = response.json()["book"]
    assert patched["minimum_age"] == 5
    for key in ("book_id", "title", "isbn", "publisher", "publication_year", "created_at"):
        assert patched[key] == book[key]

    response = await client.delete(f"{client.base_url}/v1/books/{book_id}")
    assert response.status_code == 200
    assert response.json() == {"message": "book successfully deleted"}

    response = await client.get(f"{client.base_url}/v1/books/{book_id}")
    assert response.status_code == 404
    assert response.json() == {"error": "the requested resource could not be found"}


@pytest.mark.anyio
async def test_create_collects_every_field_error(client):
    payload = {"title": "", "isbn": "123", "publication_year": 3000, "minimum_age": -1}
    response = await client.post(f"{client.base_url}/v1/books", json=payload)
    assert response.status_code == 422
    assert response.json()["error"] == {
        "title": "must be provided",
        "isbn": "must be exactly 13 characters long",
        "publisher": "must be provided",
        "publication_year": "must not be greater than 2026",
        "minimum_age": "must be greater than or equal to zero",
    }


@pytest.mark.anyio
async def test_create_duplicate_isbn(client, book_creation_data):
    response = await client.post(f"{client.base_url}/v1/books", json=book_creation_data)
    assert response.status_code == 201
    # confirm the unique isbn
    response = await client.post(f"{client.base_url}/v1/books", json=book_creation_data)
    assert response.status_code == 422
    assert response.json()["error"] == {"isbn": "a book with this isbn already exists"}


@pytest.mark.anyio
@pytest.mark.parametrize(
    "body, message",
    [
        (b"", "body must not be empty"),
        (b'{"title": "T",', "body contains badly-formed JSON"),
        (b'{"title": "T"} {"title": "U"}', "body must only contain a single JSON value"),
        (b'{"title": "T", "author": "A"}', 'body contains unknown key "author"'),
        (b'{"publication_year": "2020"}', 'body contains incorrect JSON type for field "publication_year"'),
        (b'["T"]', "body contains incorrect JSON type (expected an object)"),
    ],
)
async def test_create_rejects_bad_bodies(client, body, message):
    response = await client.post(
        f"{client.base_url}/v1/books", content=body, headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 400
    assert response.json()["error"].startswith(message)


@pytest.mark.anyio
async def test_create_rejects_minimum_age_beyond_column(client, book_creation_data):
    book_creation_data["minimum_age"] = 2**64
    response = await client.post(f"{client.base_url}/v1/books", json=book_creation_data)
    assert response.status_code == 422
    assert response.json() == {"error": {"minimum_age": "must not be greater than 2147483647"}}

    response = await client.get(f"{client.base_url}/v1/books")
    assert response.json()["books"] == []


@pytest.mark.anyio
async def test_create_rejects_oversized_body(client, book_creation_data):
    book_creation_data["description"] = "x" * 1_048_576
    response = await client.post(f"{client.base_url}/v1/books", json=book_creation_data)
    assert response.status_code == 400
    assert response.json() == {"error": "body must not be larger than 1048576 bytes"}


@pytest.mark.anyio
async def test_show_book(client, mock_book):
    response = await client.get(f"{client.base_url}/v1/books/{mock_book.book_id}")
    assert response.status_code == 200
    assert response.json()["book"]["isbn"] == mock_book.isbn
    # empty description is left out of the envelope
    assert "description" not in response.json()["book"]


@pytest.mark.anyio
@pytest.mark.parametrize("raw_id", ["0", "-1", "abc", "1.5"])
async def test_invalid_id_parameter(client, raw_id):
    for method in ("GET", "DELETE"):
        response = await client.request(method, f"{client.base_url}/v1/books/{raw_id}")
        assert response.status_code == 400
        assert response.json() == {"error": "invalid id parameter"}


@pytest.mark.anyio
@pytest.mark.parametrize("raw_id", ["9223372036854775808", "99999999999999999999"])
async def test_id_beyond_int64_is_invalid(client, raw_id):
    for method in ("GET", "DELETE"):
        response = await client.request(method, f"{client.base_url}/v1/books/{raw_id}")
        assert response.status_code == 400
        assert response.json() == {"error": "invalid id parameter"}


@pytest.mark.anyio
@pytest.mark.parametrize("book_id", [2147483648, 9223372036854775807])
async def test_id_beyond_column_range_is_not_found(client, book_id, book_creation_data):
    url = f"{client.base_url}/v1/books/{book_id}"
    for response in (
        await client.get(url),
        await client.patch(url, json={"title": "X"}),
        await client.put(url, json=book_creation_data),
        await client.delete(url),
    ):
        assert response.status_code == 404
        assert response.json() == {"error": "the requested resource could not be found"}


@pytest.mark.anyio
async def test_patch_only_changes_provided_fields(client, mock_book):
    before = (await client.get(f"{client.base_url}/v1/books/{mock_book.book_id}")).json()["book"]
    response = await client.patch(f"{client.base_url}/v1/books/{mock_book.book_id}", json={"title": "X"})
    assert response.status_code == 200
    after = response.json()["book"]
    assert after["title"] == "X"
    for key in ("book_id", "isbn", "publisher", "publication_year", "minimum_age", "created_at"):
        assert after[key] == before[key]


@pytest.mark.anyio
async def test_patch_validates_merged_book(client, mock_book):
    response = await client.patch(
        f"{client.base_url}/v1/books/{mock_book.book_id}", json={"isbn": "short", "title": ""}
    )
    assert response.status_code == 422
    assert response.json()["error"] == {
        "isbn": "must be exactly 13 characters long",
        "title": "must be provided",
    }


@pytest.mark.anyio
async def test_patch_rejects_stale_invalid_row(client, test_session, mock_book):
    mock_book.publisher = ""
    await test_session.commit()

    response = await client.patch(f"{client.base_url}/v1/books/{mock_book.book_id}", json={"title": "X"})
    assert response.status_code == 422
    assert response.json()["error"] == {"publisher": "must be provided"}


@pytest.mark.anyio
async def test_patch_missing_book(client):
    response = await client.patch(f"{client.base_url}/v1/books/999", json={"title": "X"})
    assert response.status_code == 404


@pytest.mark.anyio
async def test_put_replaces_every_field(client, mock_book):
    payload = {
        "title": "Replaced",
        "isbn": "9999999999999",
        "publisher": "Other",
        "publication_year": 1999,
        "minimum_age": 12,
        "description": "new",
    }
    response = await client.put(f"{client.base_url}/v1/books/{mock_book.book_id}", json=payload)
    assert response.status_code == 200
    book = response.json()["book"]
    for key, value in payload.items():
        assert book[key] == value
    assert book["book_id"] == mock_book.book_id


@pytest.mark.anyio
async def test_put_requires_every_field(client, mock_book):
    response = await client.put(f"{client.base_url}/v1/books/{mock_book.book_id}", json={"title": "Only"})
    assert response.status_code == 422
    assert set(response.json()["error"]) == {"isbn", "publisher", "publication_year", "minimum_age"}


@pytest.mark.anyio
async def test_put_missing_book(client, book_creation_data):
    response = await client.put(f"{client.base_url}/v1/books/999", json=book_creation_data)
    assert response.status_code == 404


@pytest.mark.anyio
async def test_delete_missing_book(client):
    response = await client.delete(f"{client.base_url}/v1/books/999")
    assert response.status_code == 404


@pytest.mark.anyio
async def test_list_books_paginates(client, mock_books):
    response = await client.get(f"{client.base_url}/v1/books?page=3&page_size=10")
    assert response.status_code == 200
    data = response.json()
    assert len(data["books"]) == 5
    assert data["metadata"] == {
        "current_page": 3,
        "page_size": 10,
        "first_page": 1,
        "last_page": 3,
        "total_records": 25,
    }


@pytest.mark.anyio
async def test_list_books_sort_desc_with_tie_break(client, mock_books):
    response = await client.get(f"{client.base_url}/v1/books?sort=-publication_year&page_size=100")
    assert response.status_code == 200
    books = response.json()["books"]
    keys = [(-b["publication_year"], b["book_id"]) for b in books]
    assert keys == sorted(keys)


@pytest.mark.anyio
async def test_list_books_empty(client):
    response = await client.get(f"{client.base_url}/v1/books?page=4")
    assert response.status_code == 200
    assert response.json() == {"books": [], "metadata": {}}


@pytest.mark.anyio
async def test_list_books_rejects_bad_query(client):
    response = await client.get(f"{client.base_url}/v1/books?sort=foo&page=0&page_size=abc")
    assert response.status_code == 422
    assert response.json()["error"] == {
        "sort": "invalid sort value",
        "page": "must be greater than zero",
        "page_size": "must be an integer value",
    }


@pytest.mark.anyio
@pytest.mark.parametrize("raw", ["1_0", "%2B2", "%202", "%D9%A3", "99999999999999999999"])
async def test_list_books_rejects_loose_integers(client, raw):
    response = await client.get(f"{client.base_url}/v1/books?page={raw}")
    assert response.status_code == 422
    assert response.json()["error"] == {"page": "must be an integer value"}


@pytest.mark.anyio
async def test_store_failure_is_hidden_from_client(client):
    failure = OperationalError("SELECT", {}, Exception("connection refused"))
    with patch("app.services.crud.list_books", AsyncMock(side_effect=failure)):
        response = await client.get(f"{client.base_url}/v1/books")
    assert response.status_code == 500
    assert response.json() == {
        "error": "the server encountered a problem and could not process your request"
    }
    assert "connection refused" not in response.text


@pytest.mark.anyio
async def test_unknown_route_and_method(client):
    response = await client.get(f"{client.base_url}/v1/nothing")
    assert response.status_code == 404
    assert response.json() == {"error": "the requested resource could not be found"}

    response = await client.post(f"{client.base_url}/v1/books/1")
    assert response.status_code == 405
    assert response.json() == {"error": "the POST method is not supported for this resource"}


@pytest.mark.anyio
async def test_healthcheck(client):
    response = await client.get(f"{client.base_url}/v1/healthcheck")
    assert response.status_code == 200
    assert response.json() == {
        "status": "available",
        "system_info": {"environment": "development", "version": "1.0.0"},
    }
