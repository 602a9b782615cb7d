"""
Convert filter values to the Python type of their column.

asyncpg binds parameters by the server-side type of the placeholder and
does not convert strings, so `"42"` for a bigint column fails at the store.
Values that arrive as text (scalar lookups, query strings) are converted
here using the column's declared type. Undeclared and textual types pass
values through unchanged.
"""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any
from uuid import UUID

import pydantic
from pydantic import TypeAdapter

from tabledao.core.errors import ValidationError

from . import predicates

_int = TypeAdapter(int)
_float = TypeAdapter(float)
_decimal = TypeAdapter(Decimal)
_bool = TypeAdapter(bool)
_date = TypeAdapter(date)
_datetime = TypeAdapter(datetime)
_time = TypeAdapter(time)
_uuid = TypeAdapter(UUID)

ADAPTERS: dict[str, TypeAdapter[Any]] = {
    "smallint": _int,
    "integer": _int,
    "int": _int,
    "int2": _int,
    "int4": _int,
    "int8": _int,
    "bigint": _int,
    "smallserial": _int,
    "serial": _int,
    "bigserial": _int,
    "real": _float,
    "float4": _float,
    "float8": _float,
    "double precision": _float,
    "numeric": _decimal,
    "decimal": _decimal,
    "boolean": _bool,
    "bool": _bool,
    "date": _date,
    "timestamp": _datetime,
    "timestamptz": _datetime,
    "timestamp with time zone": _datetime,
    "timestamp without time zone": _datetime,
    "time": _time,
    "uuid": _uuid,
}


def adapter_for(type_name: str | None) -> TypeAdapter[Any] | None:
    """
    Adapter for a declared column type; "numeric(10, 2)" looks up "numeric".

    Array types and unknown names have none.
    """
    if not type_name:
        return None
    name = type_name.strip().lower()
    if name.endswith("[]"):
        return None
    return ADAPTERS.get(name.split("(", 1)[0].strip())


def coerce(name: str, type_name: str | None, value: Any) -> Any:
    """
    Convert `value` for column `name`; an unconvertible value is a ValidationError.
    """
    adapter = adapter_for(type_name)
    if adapter is None or value is None:
        return value
    try:
        return adapter.validate_python(value.strip() if isinstance(value, str) else value)
    except pydantic.ValidationError as e:
        raise ValidationError([predicates.default_message(name, value)]) from e
