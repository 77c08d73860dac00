"""Filter builder: turns raw query parameters into a typed filter expression.

Each allowed query key declares how it is read (``exact``, ``regex``, ``range``,
``set`` or ``dateRange``) and what type its values have. The declared tag alone
decides the predicate; the shape of the incoming value never does. Keys that
are not declared are dropped so client input can never smuggle store-specific
operators into a query.
"""

import math
import re
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Annotated, Any, Dict, Iterable, List, Literal, Mapping, Optional, Sequence, Tuple, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import InvalidFilter


SEARCH_PARAM = "search"
RANGE_MIN_SUFFIX = "Min"
RANGE_MAX_SUFFIX = "Max"
DATE_FROM_SUFFIXES = ("From", "Start")
DATE_TO_SUFFIXES = ("To", "End")

RawParams = Mapping[str, Union[str, Sequence[str]]]

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}


class FilterType(str, Enum):
    """How a query key is turned into a predicate."""

    EXACT = "exact"
    REGEX = "regex"
    RANGE = "range"
    SET = "set"
    DATE_RANGE = "dateRange"


class ValueType(str, Enum):
    """Type that raw query values are coerced to."""

    STR = "str"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    DATE = "date"
    DATETIME = "datetime"
    UUID = "uuid"


class FilterField(BaseModel):
    """Declaration of one filterable query key."""

    model_config = ConfigDict(frozen=True)

    type: FilterType = Field(description="Predicate kind built for this key")
    field: Optional[str] = Field(default=None, description="Record path, defaults to the query key")
    value_type: ValueType = Field(default=ValueType.STR, description="Type raw values are coerced to")

    def path(self, key: str) -> str:
        return self.field or key


class Equals(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["equals"] = "equals"
    value: Any


class Matches(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["matches"] = "matches"
    pattern: str
    case_insensitive: bool = True


class Range(BaseModel):
    """Inclusive range; a ``None`` bound is open."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["range"] = "range"
    min: Any = None
    max: Any = None


class OneOf(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["one_of"] = "one_of"
    values: Tuple[Any, ...]


Predicate = Annotated[Union[Equals, Matches, Range, OneOf], Field(discriminator="kind")]


class TextSearch(BaseModel):
    """Case-insensitive literal match of ``term`` against any of ``fields``."""

    model_config = ConfigDict(frozen=True)

    term: str
    fields: Tuple[str, ...]

    @property
    def pattern(self) -> str:
        return re.escape(self.term)


class ComparisonOp(str, Enum):
    EQ = "eq"
    LT = "lt"
    GT = "gt"
    IS_NULL = "is_null"
    NOT_NULL = "not_null"


class Comparison(BaseModel):
    """One seek condition; the null checks ignore ``value``."""

    model_config = ConfigDict(frozen=True)

    field: str
    op: ComparisonOp
    value: Any = None


class SeekBoundary(BaseModel):
    """OR of branches, each branch an AND of comparisons."""

    model_config = ConfigDict(frozen=True)

    branches: Tuple[Tuple[Comparison, ...], ...]


class FilterExpression(BaseModel):
    """Store-agnostic filter handed to a query executor.

    Treated as immutable: the ``with_*`` helpers return new expressions.
    """

    model_config = ConfigDict(frozen=True)

    predicates: Dict[str, Predicate] = Field(default_factory=dict)
    search: Optional[TextSearch] = None
    seek: Optional[SeekBoundary] = None

    def with_predicate(self, field: str, predicate: Predicate) -> "FilterExpression":
        """Return a copy with ``predicate`` set for ``field``."""
        return self.model_copy(update={"predicates": {**self.predicates, field: predicate}})

    def with_seek(self, seek: Optional[SeekBoundary]) -> "FilterExpression":
        """Return a copy restricted by a keyset boundary."""
        return self.model_copy(update={"seek": seek})


def _values(raw_params: RawParams, key: str) -> List[str]:
    raw = raw_params.get(key)
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = [raw]
    return [value for value in raw if value is not None and value != ""]


def _first(raw_params: RawParams, key: str) -> Optional[str]:
    values = _values(raw_params, key)
    return values[0] if values else None


def _parse_datetime(raw: str) -> datetime:
    parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def coerce_value(raw: str, value_type: ValueType, key: str) -> Any:
    """Coerce a raw query value to ``value_type``.

    Raises:
        InvalidFilter: If the value cannot be read as ``value_type``
    """
    try:
        if value_type is ValueType.INT:
            return int(raw)
        if value_type is ValueType.FLOAT:
            number = float(raw)
            if not math.isfinite(number):
                raise ValueError("not a finite number")
            return number
        if value_type is ValueType.BOOL:
            lowered = raw.strip().lower()
            if lowered in _TRUE_VALUES:
                return True
            if lowered in _FALSE_VALUES:
                return False
            raise ValueError("not a boolean")
        if value_type is ValueType.DATE:
            return date.fromisoformat(raw)
        if value_type is ValueType.DATETIME:
            return _parse_datetime(raw)
        if value_type is ValueType.UUID:
            return UUID(raw)
    except ValueError as e:
        raise InvalidFilter(
            f"Invalid value '{raw}' for filter '{key}': expected {value_type.value}",
            field=key
        ) from e
    return raw


def _date_bound(raw: str, value_type: ValueType, key: str, end: bool) -> Any:
    if value_type is not ValueType.DATETIME or len(raw) != 10:
        return coerce_value(raw, value_type, key)
    # A bare date covers the whole day
    day = coerce_value(raw, ValueType.DATE, key)
    return datetime.combine(day, time.max if end else time.min, tzinfo=timezone.utc)


def _first_suffixed(raw_params: RawParams, key: str, suffixes: Sequence[str]) -> Tuple[Optional[str], str]:
    """First value under ``key`` plus any of ``suffixes``, with the name it came from."""
    for suffix in suffixes:
        raw = _first(raw_params, key + suffix)
        if raw is not None:
            return raw, key + suffix
    return None, key + suffixes[0]


def _build_predicate(key: str, spec: FilterField, raw_params: RawParams) -> Optional[Predicate]:
    if spec.type is FilterType.EXACT:
        raw = _first(raw_params, key)
        return None if raw is None else Equals(value=coerce_value(raw, spec.value_type, key))

    if spec.type is FilterType.REGEX:
        raw = _first(raw_params, key)
        return None if raw is None else Matches(pattern=re.escape(raw), case_insensitive=True)

    if spec.type is FilterType.SET:
        values = [
            coerce_value(part.strip(), spec.value_type, key)
            for raw in _values(raw_params, key)
            for part in raw.split(",")
            if part.strip()
        ]
        return OneOf(values=tuple(values)) if values else None

    if spec.type is FilterType.RANGE:
        low = _first(raw_params, key + RANGE_MIN_SUFFIX)
        high = _first(raw_params, key + RANGE_MAX_SUFFIX)
        if low is None and high is None:
            return None
        return Range(
            min=None if low is None else coerce_value(low, spec.value_type, key + RANGE_MIN_SUFFIX),
            max=None if high is None else coerce_value(high, spec.value_type, key + RANGE_MAX_SUFFIX)
        )

    if spec.type is FilterType.DATE_RANGE:
        start, start_key = _first_suffixed(raw_params, key, DATE_FROM_SUFFIXES)
        end, end_key = _first_suffixed(raw_params, key, DATE_TO_SUFFIXES)
        if start is None and end is None:
            return None
        return Range(
            min=None if start is None else _date_bound(start, spec.value_type, start_key, end=False),
            max=None if end is None else _date_bound(end, spec.value_type, end_key, end=True)
        )

    raise ValueError(f"Unsupported filter type: {spec.type}")


def build_filter(
    raw_params: RawParams,
    allowed_fields: Mapping[str, FilterField],
    search_fields: Iterable[str] = ()
) -> FilterExpression:
    """Build a filter expression from raw query parameters.

    Args:
        raw_params: Query parameters, each a string or a list of strings
        allowed_fields: Declared filter keys mapped to their configuration
        search_fields: Record paths searched by the ``search`` parameter

    Returns:
        A fresh filter expression holding one predicate per recognized key

    Raises:
        InvalidFilter: If a recognized value does not match its declared type
    """
    predicates: Dict[str, Any] = {}
    for key, spec in allowed_fields.items():
        predicate = _build_predicate(key, spec, raw_params)
        if predicate is not None:
            predicates[spec.path(key)] = predicate

    search = None
    search_fields = tuple(search_fields)
    term = _first(raw_params, SEARCH_PARAM)
    if term and search_fields:
        search = TextSearch(term=term, fields=search_fields)

    return FilterExpression(predicates=predicates, search=search)
