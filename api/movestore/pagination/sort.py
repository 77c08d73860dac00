"""Sort specification resolution with a unique tie-breaker."""

from enum import Enum
from typing import Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator

from .exceptions import InvalidSort


DEFAULT_SORT_FIELD = "createdAt"
DEFAULT_TIE_BREAKER = "id"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    def reverse(self) -> "SortDirection":
        return SortDirection.DESC if self is SortDirection.ASC else SortDirection.ASC


class SortField(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    direction: SortDirection = SortDirection.ASC


class SortSpec(BaseModel):
    """Ordered sort keys; the last one is the unique tie-breaker."""

    model_config = ConfigDict(frozen=True)

    fields: Tuple[SortField, ...]

    @field_validator("fields")
    @classmethod
    def validate_fields(cls, v):
        """A sort needs at least the tie-breaker."""
        if not v:
            raise ValueError("Sort specification must not be empty")
        return v

    @property
    def tie_breaker(self) -> SortField:
        return self.fields[-1]

    @property
    def key_fields(self) -> Tuple[SortField, ...]:
        """Sort fields before the tie-breaker."""
        return self.fields[:-1]

    def reversed(self) -> "SortSpec":
        """The same keys with every direction negated."""
        return SortSpec(fields=tuple(
            SortField(field=f.field, direction=f.direction.reverse()) for f in self.fields
        ))

    def signature(self) -> str:
        return ",".join(f"{f.field}:{f.direction.value}" for f in self.fields)


def default_sort_spec(tie_breaker: str = DEFAULT_TIE_BREAKER) -> SortSpec:
    return SortSpec(fields=(
        SortField(field=DEFAULT_SORT_FIELD, direction=SortDirection.DESC),
        SortField(field=tie_breaker, direction=SortDirection.DESC),
    ))


def _parse_sort_key(part: str, allowed: set, tie_breaker: str) -> SortField:
    field, _, direction = part.partition(":")
    field = field.strip()
    direction = direction.strip().lower()

    if not field:
        raise InvalidSort("Empty sort field", field=field)
    if field != tie_breaker and field not in allowed:
        raise InvalidSort(
            f"Sorting by '{field}' is not allowed. Allowed fields: {', '.join(sorted(allowed))}",
            field=field
        )

    if not direction:
        return SortField(field=field, direction=SortDirection.ASC)
    try:
        return SortField(field=field, direction=SortDirection(direction))
    except ValueError:
        raise InvalidSort(f"Invalid sort direction '{direction}' for '{field}'. Use asc or desc", field=field)


def resolve_sort(
    sort_param: Optional[str],
    allowed_fields: Iterable[str],
    tie_breaker: str = DEFAULT_TIE_BREAKER,
    default_direction: SortDirection = SortDirection.DESC,
    default: Optional[SortSpec] = None
) -> SortSpec:
    """Resolve a ``field:asc|desc[,field:asc|desc...]`` parameter.

    The tie-breaker always ends the sequence. If the request names it, it is
    moved to the end with the requested direction; otherwise it is appended
    with ``default_direction``.

    Args:
        sort_param: Raw ``sortBy`` value, or None for the default order
        allowed_fields: Fields clients may sort by
        tie_breaker: Unique field that makes the order total
        default_direction: Direction for an implicitly appended tie-breaker
        default: Spec used when ``sort_param`` is empty

    Returns:
        A sort specification ending with the tie-breaker

    Raises:
        InvalidSort: If a field is not allowed, repeated, or has an unknown direction
    """
    if not sort_param or not sort_param.strip():
        return default or default_sort_spec(tie_breaker)

    allowed = set(allowed_fields)
    keys: List[SortField] = []
    tie: Optional[SortField] = None
    seen = set()

    for part in sort_param.split(","):
        if not part.strip():
            continue
        key = _parse_sort_key(part, allowed, tie_breaker)
        if key.field in seen:
            raise InvalidSort(f"Sort field '{key.field}' is given more than once", field=key.field)
        seen.add(key.field)

        if key.field == tie_breaker:
            tie = key
        else:
            keys.append(key)

    if tie is None:
        tie = SortField(field=tie_breaker, direction=default_direction)

    return SortSpec(fields=tuple(keys) + (tie,))
