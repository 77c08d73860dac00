"""Data models for the Move Store API."""

from .records import RecordCreate, RecordUpdate, RecordResponse

__all__ = [
    "RecordCreate",
    "RecordUpdate",
    "RecordResponse"
]
