"""
Column validation rules.

Declared rules are compiled once, at schema declaration, into
`Constraint(predicate, message)` pairs. Running them never short-circuits:
every failing rule of every selected column ends up in one ValidationError.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from tabledao.core.errors import ConfigError, ValidationError

from . import predicates

if TYPE_CHECKING:
    from .schema import Column

EMPTY_PARAMETERS_MESSAGE = "parameters is empty"

Message = str | predicates.MessageFactory


@dataclass(frozen=True)
class Constraint:
    predicate: predicates.Predicate
    message: Message = predicates.default_message

    def check(self, name: str, value: Any) -> str | None:
        """
        Return the failure message, or None when the value passes.
        """
        if self.predicate(value):
            return None
        if callable(self.message):
            return self.message(name, value)
        return self.message


def _regex_predicate(pattern: re.Pattern[str]) -> predicates.Predicate:
    def check(value: Any) -> bool:
        return pattern.search("" if value is None else str(value)) is not None

    return check


def compile_rule(rule: Any) -> Constraint:
    """
    Turn one declared rule into a Constraint.

    A rule is a Constraint, a callable, a compiled regex, a predicate name,
    or a mapping {"constraint": <any of those>, "message": ...}.
    """
    if isinstance(rule, Constraint):
        return rule

    message: Message | None = None
    constraint = rule
    if isinstance(rule, Mapping):
        if "constraint" not in rule:
            raise ConfigError(f"Validation rule has no constraint: {rule!r}")
        constraint = rule["constraint"]
        message = rule.get("message")

    if isinstance(constraint, re.Pattern):
        predicate = _regex_predicate(constraint)
    elif isinstance(constraint, str):
        found = predicates.resolve_predicate(constraint)
        if found is None:
            raise ConfigError(f'This constraint string "{constraint}" can not convert to validator function')
        matched_name, predicate = found
        if not message:
            message = predicates.MESSAGES.get(matched_name)
    elif callable(constraint):
        predicate = constraint
    else:
        raise ConfigError(f"Unsupported validation constraint: {constraint!r}")

    return Constraint(predicate=predicate, message=message or predicates.default_message)


def compile_validation(validation: Any) -> tuple[Constraint, ...]:
    if validation is None:
        return ()
    if isinstance(validation, (list, tuple)):
        return tuple(compile_rule(rule) for rule in validation)
    return (compile_rule(validation),)


def _selected(columns: Mapping[str, Column], names: str | Iterable[str] | None) -> Iterable[tuple[str, Column]]:
    if names is None:
        return columns.items()
    if isinstance(names, str):
        names = [names]
    wanted = set(names)
    return [(name, column) for name, column in columns.items() if name in wanted]


def validate_attrs(
    columns: Mapping[str, Column],
    attrs: Mapping[str, Any] | None,
    names: str | Iterable[str] | None = None,
) -> None:
    """
    Check `attrs` against the rules of `columns` (or only those in `names`).

    Raises ValidationError carrying every failure message.
    """
    if not attrs:
        raise ValidationError([EMPTY_PARAMETERS_MESSAGE])

    messages: list[str] = []
    for name, column in _selected(columns, names):
        value = attrs.get(name)
        for constraint in column.validation:
            message = constraint.check(name, value)
            if message is not None:
                messages.append(message)

    if messages:
        raise ValidationError(messages)

