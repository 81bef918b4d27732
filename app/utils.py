import json
from typing import Callable, Mapping, Type, TypeVar
from fastapi import Request
from pydantic import BaseModel, ValidationError
from app.core.errors import BadRequestError, DecodeError
from app.validator import Validator

SchemaT = TypeVar('SchemaT', bound=BaseModel)

MAX_INT64 = 2**63 - 1
MIN_INT64 = -2**63

async def read_body(request: Request, max_bytes: int) -> bytes:
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > max_bytes:
            raise DecodeError(f'body must not be larger than {max_bytes} bytes')
    return bytes(body)

def decode_json(body: bytes, schema: Type[SchemaT]) -> SchemaT:
    """Decode exactly one JSON object into `schema`, rejecting unknown keys."""
    try:
        text = body.decode('utf-8').strip()
    except UnicodeDecodeError:
        raise DecodeError('body contains badly-formed JSON')
    if not text:
        raise DecodeError('body must not be empty')

    try:
        value, end = json.JSONDecoder().raw_decode(text)
    except json.JSONDecodeError as e:
        if e.pos >= len(text):
            raise DecodeError('body contains badly-formed JSON')
        raise DecodeError(f'body contains badly-formed JSON (at character {e.pos})')

    if text[end:].strip():
        raise DecodeError('body must only contain a single JSON value')
    if not isinstance(value, dict):
        raise DecodeError('body contains incorrect JSON type (expected an object)')

    try:
        return schema.model_validate(value)
    except ValidationError as e:
        error = e.errors()[0]
        field = '.'.join(str(part) for part in error['loc'])
        if error['type'] == 'extra_forbidden':
            raise DecodeError(f'body contains unknown key "{field}"')
        raise DecodeError(f'body contains incorrect JSON type for field "{field}"')

def json_body(schema: Type[SchemaT]) -> Callable:
    """Dependency factory: size-capped, strict JSON body for `schema`."""
    async def dependency(request: Request) -> SchemaT:
        max_bytes = request.app.state.settings.max_body_bytes
        body = await read_body(request, max_bytes)
        return decode_json(body, schema)
    return dependency

def _parse_int(raw: str) -> int:
    """Plain ASCII decimal with an optional leading minus, within int64."""
    digits = raw[1:] if raw.startswith('-') else raw
    if not (digits.isascii() and digits.isdigit()):
        raise ValueError(raw)
    value = int(raw)
    if not MIN_INT64 <= value <= MAX_INT64:
        raise ValueError(raw)
    return value

def read_id_param(raw: str) -> int:
    try:
        book_id = _parse_int(raw)
    except ValueError:
        raise BadRequestError('invalid id parameter')
    if book_id < 1:
        raise BadRequestError('invalid id parameter')
    return book_id

def read_string(qs: Mapping[str, str], key: str, default: str) -> str:
    value = qs.get(key)
    return value if value else default

def read_int(qs: Mapping[str, str], key: str, default: int, v: Validator) -> int:
    value = qs.get(key)
    if not value:
        return default
    try:
        return _parse_int(value)
    except ValueError:
        v.add_error(key, 'must be an integer value')
        return default
