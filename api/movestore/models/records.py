"""Pydantic models for record requests and responses."""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class RecordCreate(BaseModel):
    """Model for creating a record."""

    body: Dict[str, Any] = Field(
        ...,
        description="Record JSON data, validated against the resource's schema",
        examples=[
            {"name": "Acme Relocations", "city": "Berlin", "isActive": True},
            {"moveDate": "2026-05-01", "status": "planned", "costs": {"total": 1450.0}}
        ]
    )


class RecordUpdate(BaseModel):
    """Model for updating a record; top-level keys replace existing ones."""

    body: Dict[str, Any] = Field(
        ...,
        description="Keys to set on the record"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "body": {
                    "status": "completed"
                }
            }
        }
    )


class RecordResponse(BaseModel):
    """Envelope for a single record."""

    success: bool = True
    data: Dict[str, Any] = Field(
        description="Flat record: body keys plus id, createdAt, updatedAt and createdBy"
    )
