"""Listing configuration for every resource served by the API.

Each resource is a collection of JSON documents. Its configuration declares
which fields clients may sort, filter and search by, and optionally a JSON
Schema that document bodies must satisfy.
"""

from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .pagination.filters import FilterField, FilterType, ValueType
from .pagination.sort import SortDirection, SortField, SortSpec


# Fields kept in table columns rather than the document body
SYSTEM_FIELDS = ("id", "createdAt", "updatedAt", "createdBy")


class ResourceConfig(BaseModel):
    """How one resource is listed and validated."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="URL segment, e.g. 'time-entries'")
    collection: str = Field(description="Collection name in the store")
    title: str = Field(description="OpenAPI tag")
    sort_fields: Tuple[str, ...] = Field(description="Fields clients may sort by")
    filter_fields: Dict[str, FilterField] = Field(default_factory=dict)
    search_fields: Tuple[str, ...] = ()
    default_sort: Optional[SortSpec] = None
    json_schema: Optional[Dict[str, Any]] = None


def _filter(type: FilterType, value_type: ValueType = ValueType.STR, field: Optional[str] = None) -> FilterField:
    return FilterField(type=type, value_type=value_type, field=field)


CREATED_AT_RANGE = _filter(FilterType.DATE_RANGE, ValueType.DATETIME)

CLIENTS = ResourceConfig(
    name="clients",
    collection="clients",
    title="Clients",
    sort_fields=("name", "city", "createdAt"),
    filter_fields={
        "name": _filter(FilterType.REGEX),
        "city": _filter(FilterType.EXACT),
        "isActive": _filter(FilterType.EXACT, ValueType.BOOL),
        "createdAt": CREATED_AT_RANGE,
    },
    search_fields=("name", "email", "contactPerson", "city"),
    json_schema={
        "type": "object",
        "properties": {
            "name": {"type": "string", "minLength": 1},
            "email": {"type": "string"},
            "phone": {"type": "string"},
            "contactPerson": {"type": "string"},
            "street": {"type": "string"},
            "zipCode": {"type": "string"},
            "city": {"type": "string"},
            "isActive": {"type": "boolean"}
        },
        "required": ["name"]
    }
)

MOVES = ResourceConfig(
    name="moves",
    collection="moves",
    title="Moves",
    sort_fields=("moveDate", "status", "createdAt", "costs.total"),
    filter_fields={
        "status": _filter(FilterType.SET),
        "moveDate": _filter(FilterType.DATE_RANGE, ValueType.DATE),
        "paymentStatus": _filter(FilterType.EXACT, field="payment.status"),
        "originZip": _filter(FilterType.EXACT, field="origin.zipCode"),
        "destinationZip": _filter(FilterType.EXACT, field="destination.zipCode"),
        "total": _filter(FilterType.RANGE, ValueType.FLOAT, field="costs.total"),
        "clientId": _filter(FilterType.EXACT),
        "createdAt": CREATED_AT_RANGE,
    },
    search_fields=(
        "customer.name",
        "customer.company",
        "referenceNumber",
        "origin.city",
        "destination.city",
        "notes",
    ),
    json_schema={
        "type": "object",
        "properties": {
            "referenceNumber": {"type": "string"},
            "clientId": {"type": "string"},
            "moveDate": {"type": "string", "format": "date"},
            "status": {
                "type": "string",
                "enum": ["requested", "quoted", "planned", "in_progress", "completed", "cancelled"]
            },
            "customer": {"type": "object"},
            "origin": {"type": "object"},
            "destination": {"type": "object"},
            "costs": {"type": "object", "properties": {"total": {"type": "number"}}},
            "payment": {"type": "object"}
        },
        "required": ["moveDate", "status"]
    }
)

EMPLOYEES = ResourceConfig(
    name="employees",
    collection="employees",
    title="Employees",
    sort_fields=("lastName", "firstName", "hireDate", "createdAt"),
    filter_fields={
        "position": _filter(FilterType.EXACT),
        "isActive": _filter(FilterType.EXACT, ValueType.BOOL),
        "lastName": _filter(FilterType.REGEX),
        "skills": _filter(FilterType.SET),
        "hireDate": _filter(FilterType.DATE_RANGE, ValueType.DATE),
        "createdAt": CREATED_AT_RANGE,
    },
    search_fields=("firstName", "lastName", "phone", "position"),
    default_sort=SortSpec(fields=(
        SortField(field="lastName", direction=SortDirection.ASC),
        SortField(field="id", direction=SortDirection.ASC),
    )),
    json_schema={
        "type": "object",
        "properties": {
            "firstName": {"type": "string", "minLength": 1},
            "lastName": {"type": "string", "minLength": 1},
            "position": {"type": "string"},
            "phone": {"type": "string"},
            "hireDate": {"type": "string", "format": "date"},
            "skills": {"type": "array", "items": {"type": "string"}},
            "isActive": {"type": "boolean"}
        },
        "required": ["firstName", "lastName"]
    }
)

INVOICES = ResourceConfig(
    name="invoices",
    collection="invoices",
    title="Invoices",
    sort_fields=("invoiceNumber", "issueDate", "dueDate", "total", "status", "createdAt"),
    filter_fields={
        "status": _filter(FilterType.SET),
        "issueDate": _filter(FilterType.DATE_RANGE, ValueType.DATE),
        "dueDate": _filter(FilterType.DATE_RANGE, ValueType.DATE),
        "total": _filter(FilterType.RANGE, ValueType.FLOAT),
        "moveId": _filter(FilterType.EXACT),
        "clientId": _filter(FilterType.EXACT),
        "createdAt": CREATED_AT_RANGE,
    },
    search_fields=("invoiceNumber", "customer.name", "notes"),
    json_schema={
        "type": "object",
        "properties": {
            "invoiceNumber": {"type": "string", "minLength": 1},
            "moveId": {"type": "string"},
            "clientId": {"type": "string"},
            "issueDate": {"type": "string", "format": "date"},
            "dueDate": {"type": "string", "format": "date"},
            "total": {"type": "number", "minimum": 0},
            "status": {"type": "string", "enum": ["draft", "sent", "paid", "overdue", "cancelled"]},
            "items": {"type": "array", "items": {"type": "object"}}
        },
        "required": ["invoiceNumber", "issueDate", "total"]
    }
)

TIME_ENTRIES = ResourceConfig(
    name="time-entries",
    collection="time_entries",
    title="Time Entries",
    sort_fields=("date", "hours", "createdAt"),
    filter_fields={
        "employeeId": _filter(FilterType.EXACT),
        "moveId": _filter(FilterType.EXACT),
        "date": _filter(FilterType.DATE_RANGE, ValueType.DATE),
        "hours": _filter(FilterType.RANGE, ValueType.FLOAT),
        "createdAt": CREATED_AT_RANGE,
    },
    search_fields=("activity", "notes"),
    json_schema={
        "type": "object",
        "properties": {
            "employeeId": {"type": "string"},
            "moveId": {"type": "string"},
            "date": {"type": "string", "format": "date"},
            "startTime": {"type": "string"},
            "endTime": {"type": "string"},
            "hours": {"type": "number", "minimum": 0},
            "activity": {"type": "string"},
            "notes": {"type": "string"}
        },
        "required": ["employeeId", "date", "hours"]
    }
)

RESOURCES: Tuple[ResourceConfig, ...] = (CLIENTS, MOVES, EMPLOYEES, INVOICES, TIME_ENTRIES)


def get_resource(name: str) -> ResourceConfig:
    """Look up a resource by its URL segment."""
    for resource in RESOURCES:
        if resource.name == name:
            return resource
    raise KeyError(name)
