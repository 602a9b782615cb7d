"""
Entity schema declaration.

`define_model("users", {...})` returns a frozen `Schema`: table name,
ordered column descriptors and the primary key. Unless suppressed, a
generated `id` primary key and the audit columns (`creationTime`,
`actionTime`, `action`) are added to every schema.

A schema is callable and builds entities:

    User = define_model("users", {"email": {"validation": ["notEmpty", "email"]}})
    user = User({"email": "ada@example.com"})
    user.validate()
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import IntEnum
from types import MappingProxyType
from typing import Any

from tabledao.core.errors import ConfigError, ValidationError

from . import coercion, predicates
from .validation import Constraint, compile_validation, validate_attrs

ID_COLUMN = "id"
CREATION_TIME_COLUMN = "creationTime"
ACTION_TIME_COLUMN = "actionTime"
ACTION_COLUMN = "action"


class Action(IntEnum):
    INSERT = 0
    UPDATE = 1
    DELETE = 2


@dataclass(frozen=True)
class Column:
    type: str | None = None
    primary_key: bool = False
    # Value generated by the store.
    auto: bool = False
    validation: tuple[Constraint, ...] = ()

    def coerce(self, name: str, value: Any) -> Any:
        return coercion.coerce(name, self.type, value)


AUDIT_COLUMNS: Mapping[str, Column] = MappingProxyType(
    {
        CREATION_TIME_COLUMN: Column(type="bigint"),
        ACTION_TIME_COLUMN: Column(type="bigint"),
        ACTION_COLUMN: Column(type="smallint"),
    }
)


def _normalize_column(name: str, declared: Any) -> Column:
    if isinstance(declared, Column):
        return declared
    if declared is None:
        return Column()
    if not isinstance(declared, Mapping):
        raise ConfigError(f'Column "{name}" must be a Column or a mapping, got {type(declared).__name__}.')

    return Column(
        type=declared.get("type"),
        primary_key=bool(declared.get("primary_key", False)),
        auto=bool(declared.get("auto", False)),
        validation=compile_validation(declared.get("validation")),
    )


@dataclass(frozen=True, eq=False)
class Schema:
    table_name: str
    columns: Mapping[str, Column]
    primary_key: tuple[str, ...] = field(init=False)

    def __post_init__(self) -> None:
        primary_key = tuple(name for name, column in self.columns.items() if column.primary_key)
        if not primary_key:
            raise ConfigError("The primary key must be specified.")
        object.__setattr__(self, "columns", MappingProxyType(dict(self.columns)))
        object.__setattr__(self, "primary_key", primary_key)

    def __call__(self, attrs: Mapping[str, Any] | None = None, **kwargs: Any) -> Entity:
        return Entity(self, {**(attrs or {}), **kwargs})

    def __repr__(self) -> str:
        return f"Schema(table_name={self.table_name!r}, primary_key={self.primary_key!r})"

    @property
    def has_audit_columns(self) -> bool:
        return ACTION_COLUMN in self.columns

    @property
    def single_primary_key(self) -> str | None:
        return self.primary_key[0] if len(self.primary_key) == 1 else None

    def validate(self, attrs: Mapping[str, Any] | None, columns: str | Iterable[str] | None = None) -> None:
        validate_attrs(self.columns, attrs, columns)

    def validate_primary_key(self, attrs: Mapping[str, Any] | None) -> dict[str, Any]:
        """
        Check that `attrs` carries every primary-key column and that they pass
        their rules; return the key as a filter map.
        """
        self.validate(attrs, self.primary_key)
        attrs = attrs or {}
        missing = [name for name in self.primary_key if attrs.get(name) is None]
        if missing:
            raise ValidationError(predicates.MESSAGES["notNull"](name, None) for name in missing)
        return {name: attrs[name] for name in self.primary_key}

    def has_valid_primary_key(self, attrs: Mapping[str, Any] | None) -> bool:
        try:
            self.validate_primary_key(attrs)
        except ValidationError:
            return False
        return True


class Entity:
    """
    A schema paired with one attribute bag.
    """

    __slots__ = ("schema", "attrs")

    def __init__(self, schema: Schema, attrs: Mapping[str, Any] | None = None) -> None:
        self.schema = schema
        self.attrs: dict[str, Any] = dict(attrs or {})

    def __repr__(self) -> str:
        return f"Entity({self.schema.table_name!r}, {self.attrs!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Entity):
            return NotImplemented
        return self.schema is other.schema and self.attrs == other.attrs

    def __getitem__(self, name: str) -> Any:
        return self.attrs[name]

    def __setitem__(self, name: str, value: Any) -> None:
        self.attrs[name] = value

    def get(self, name: str, default: Any = None) -> Any:
        return self.attrs.get(name, default)

    def validate(self, columns: str | Iterable[str] | None = None) -> None:
        self.schema.validate(self.attrs, columns)

    def primary_key_values(self) -> dict[str, Any]:
        return self.schema.validate_primary_key(self.attrs)


def define_model(
    table_name: str,
    columns: Mapping[str, Any],
    *,
    include_id_column: bool = True,
    include_default_columns: bool = True,
) -> Schema:
    if not table_name:
        raise ConfigError("The table name must be specified.")
    if columns is None:
        raise ConfigError("The columns must be specified.")

    normalized = {name: _normalize_column(name, declared) for name, declared in columns.items()}
    if include_id_column:
        normalized[ID_COLUMN] = Column(type="bigserial", primary_key=True, auto=True)
    if include_default_columns:
        normalized.update(AUDIT_COLUMNS)

    return Schema(table_name=table_name, columns=normalized)
