"""Opaque cursor tokens for keyset pagination."""

import base64
import binascii
import json
import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import urlencode
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .sort import SortSpec


logger = logging.getLogger(__name__)

# Longest token accepted; real cursors are far shorter
MAX_CURSOR_LENGTH = 2048


class Cursor(BaseModel):
    """Boundary record most recently returned: its sort-key values and id."""

    model_config = ConfigDict(frozen=True)

    key: Tuple[Any, ...] = Field(description="One value per non-tie-breaker sort field")
    id: Any = Field(description="Tie-breaker value")


class CursorDecodeError(ValueError):
    pass


def resolve_path(record: Mapping[str, Any], path: str) -> Any:
    """Read a dotted ``path`` out of a (possibly nested) record."""
    if path in record:
        return record[path]
    value: Any = record
    for part in path.split("."):
        if not isinstance(value, Mapping) or part not in value:
            return None
        value = value[part]
    return value


def _tag(value: Any) -> List[Any]:
    # bool before int, datetime before date: both are subclasses
    if value is None:
        return ["n", None]
    if isinstance(value, bool):
        return ["b", value]
    if isinstance(value, int):
        return ["i", value]
    if isinstance(value, float):
        return ["f", value]
    if isinstance(value, Decimal):
        return ["m", str(value)]
    if isinstance(value, str):
        return ["s", value]
    if isinstance(value, datetime):
        return ["d", value.isoformat()]
    if isinstance(value, date):
        return ["D", value.isoformat()]
    if isinstance(value, UUID):
        return ["u", str(value)]
    raise TypeError(f"Cannot encode cursor value of type {type(value).__name__}")


def _untag(tagged: Any) -> Any:
    if not isinstance(tagged, list) or len(tagged) != 2:
        raise CursorDecodeError("tagged value must be a [tag, value] pair")

    tag, raw = tagged
    try:
        if tag == "n" and raw is None:
            return None
        if tag == "b" and isinstance(raw, bool):
            return raw
        if tag == "i" and isinstance(raw, int) and not isinstance(raw, bool):
            return raw
        if tag == "f" and isinstance(raw, (int, float)) and not isinstance(raw, bool):
            return float(raw)
        if tag == "m" and isinstance(raw, str):
            return Decimal(raw)
        if tag == "s" and isinstance(raw, str):
            return raw
        if tag == "d" and isinstance(raw, str):
            return datetime.fromisoformat(raw)
        if tag == "D" and isinstance(raw, str):
            return date.fromisoformat(raw)
        if tag == "u" and isinstance(raw, str):
            return UUID(raw)
    except (ValueError, InvalidOperation) as e:
        raise CursorDecodeError(f"bad value for tag {tag!r}: {e}")

    raise CursorDecodeError(f"unknown tag {tag!r} or mismatched value")


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _b64decode(token: str) -> bytes:
    padded = token + "=" * (-len(token) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def cursor_from_record(record: Mapping[str, Any], sort: SortSpec) -> Cursor:
    """Derive the cursor for ``record`` under ``sort``."""
    return Cursor(
        key=tuple(resolve_path(record, f.field) for f in sort.key_fields),
        id=resolve_path(record, sort.tie_breaker.field)
    )


def encode_cursor(record: Mapping[str, Any], sort: SortSpec) -> str:
    """Encode a pagination cursor pointing at ``record``.

    Args:
        record: The boundary record
        sort: Sort specification the cursor is valid for

    Returns:
        URL-safe base64 cursor string

    Raises:
        TypeError: If a sort value has no cursor encoding
    """
    cursor = cursor_from_record(record, sort)
    payload: Dict[str, Any] = {
        "value": [_tag(v) for v in cursor.key],
        "id": _tag(cursor.id),
        "sort": sort.signature(),
    }
    cursor_json = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return _b64encode(cursor_json.encode("utf-8"))


def decode_cursor(token: Optional[str], sort: SortSpec) -> Optional[Cursor]:
    """Decode a pagination cursor for the current sort specification.

    Cursors are client-held and may be stale or tampered with, so any
    failure yields ``None``, which callers treat as the start of the sequence.
    Tokens longer than ``MAX_CURSOR_LENGTH`` are rejected before decoding.

    Args:
        token: Cursor string from the client
        sort: Sort specification of the current request

    Returns:
        The decoded cursor, or None if the token is missing or unusable
    """
    if not token:
        return None
    if len(token) > MAX_CURSOR_LENGTH:
        logger.debug(f"Ignoring cursor of {len(token)} characters")
        return None

    try:
        payload = json.loads(_b64decode(token).decode("utf-8"))
        if not isinstance(payload, dict):
            raise CursorDecodeError("payload is not an object")
        if payload.get("sort") != sort.signature():
            raise CursorDecodeError("cursor was issued for a different sort")

        values = payload.get("value")
        if not isinstance(values, list) or len(values) != len(sort.key_fields):
            raise CursorDecodeError("value count does not match sort fields")
        if "id" not in payload:
            raise CursorDecodeError("missing id")

        return Cursor(
            key=tuple(_untag(v) for v in values),
            id=_untag(payload["id"])
        )
    except (ValueError, TypeError, UnicodeError, binascii.Error, RecursionError) as e:
        # json.JSONDecodeError and CursorDecodeError are ValueErrors
        logger.debug(f"Ignoring unusable cursor: {e}")
        return None


def create_link_header(
    base_url: str,
    params: Dict[str, Any],
    next_cursor: Optional[str] = None,
    prev_cursor: Optional[str] = None
) -> Optional[str]:
    """Create Link header for pagination as per RFC 8288.

    Args:
        base_url: Base URL for the resource
        params: Current query parameters
        next_cursor: Cursor for next page
        prev_cursor: Cursor for previous page

    Returns:
        Link header value or None if no links
    """
    links = []

    if next_cursor:
        next_params = {**params, "cursor": next_cursor, "direction": "next"}
        links.append(f'<{base_url}?{urlencode(next_params, doseq=True)}>; rel="next"')

    if prev_cursor:
        prev_params = {**params, "cursor": prev_cursor, "direction": "prev"}
        links.append(f'<{base_url}?{urlencode(prev_params, doseq=True)}>; rel="prev"')

    return ", ".join(links) if links else None
