"""
Named predicates for column validation rules, plus their default messages.

A rule may name a predicate by string. The name is resolved once, when the
schema is declared: first verbatim, then as `"is" + Capitalized` (so
"email" finds "isEmail" and "notNull" is found as-is).
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping, Sized
from datetime import date, datetime
from types import MappingProxyType
from typing import Any
from uuid import UUID

import pydantic
from pydantic import AnyUrl, EmailStr, IPvAnyAddress, TypeAdapter

Predicate = Callable[[Any], bool]
MessageFactory = Callable[[str, Any], str]

_email = TypeAdapter(EmailStr)
_url = TypeAdapter(AnyUrl)
_ip = TypeAdapter(IPvAnyAddress)
_uuid = TypeAdapter(UUID)

_ALPHA = re.compile(r"^[A-Za-z]+$")
_ALPHANUMERIC = re.compile(r"^[A-Za-z0-9]+$")
_NUMERIC = re.compile(r"^[-+]?[0-9]+$")
_INT = re.compile(r"^(?:[-+]?(?:0|[1-9][0-9]*))$")
_FLOAT = re.compile(r"^[-+]?(?:[0-9]+)?(?:\.[0-9]*)?(?:[eE][-+]?[0-9]+)?$")
_HEX = re.compile(r"^(?:0[xX])?[0-9a-fA-F]+$")


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _adapts(adapter: TypeAdapter[Any], value: Any) -> bool:
    if value is None:
        return False
    try:
        adapter.validate_python(value if not isinstance(value, str) else value.strip())
    except pydantic.ValidationError:
        return False
    return True


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (bool, int, float)):
        return True
    if isinstance(value, Sized):
        return len(value) == 0
    return False


def not_empty(value: Any) -> bool:
    return not is_empty(value)


def not_null(value: Any) -> bool:
    return value is not None


def is_null(value: Any) -> bool:
    return value is None or value == ""


def is_email(value: Any) -> bool:
    return _adapts(_email, value)


def is_url(value: Any) -> bool:
    return _adapts(_url, value)


def is_ip(value: Any) -> bool:
    return _adapts(_ip, value)


def is_ipv4(value: Any) -> bool:
    return is_ip(value) and ":" not in _text(value)


def is_ipv6(value: Any) -> bool:
    return is_ip(value) and ":" in _text(value)


def is_uuid(value: Any) -> bool:
    if isinstance(value, UUID):
        return True
    return _adapts(_uuid, value)


def is_date(value: Any) -> bool:
    if isinstance(value, (date, datetime)):
        return True
    try:
        datetime.fromisoformat(_text(value))
    except ValueError:
        return False
    return True


def is_float(value: Any) -> bool:
    text = _text(value)
    return text not in ("", ".", "+", "-") and _FLOAT.match(text) is not None


def _matches(pattern: re.Pattern[str]) -> Predicate:
    def check(value: Any) -> bool:
        return pattern.match(_text(value)) is not None

    return check


PREDICATES: Mapping[str, Predicate] = MappingProxyType(
    {
        "notNull": not_null,
        "notEmpty": not_empty,
        "isNull": is_null,
        "isEmpty": is_empty,
        "isEmail": is_email,
        "isURL": is_url,
        "isIP": is_ip,
        "isIPv4": is_ipv4,
        "isIPv6": is_ipv6,
        "isUUID": is_uuid,
        "isDate": is_date,
        "isAlpha": _matches(_ALPHA),
        "isAlphanumeric": _matches(_ALPHANUMERIC),
        "isNumeric": _matches(_NUMERIC),
        "isInt": _matches(_INT),
        "isFloat": is_float,
        "isHexadecimal": _matches(_HEX),
        "isLowercase": lambda value: _text(value) == _text(value).lower(),
        "isUppercase": lambda value: _text(value) == _text(value).upper(),
    }
)


def _template(text: str) -> MessageFactory:
    def render(name: str, value: Any) -> str:
        return text.format(name=name, value=value)

    return render


default_message = _template('This parameter "{name}:{value}" is invalid')

MESSAGES: dict[str, MessageFactory] = {
    "notNull": _template('This parameter "{name}" can not be null'),
    "notEmpty": _template('This parameter "{name}" can not be empty'),
    "email": _template('This parameter "{name}:{value}" is a invalid email'),
    "URL": _template('This parameter "{name}:{value}" is a invalid URL'),
    "IP": _template('This parameter "{name}:{value}" is a invalid IP'),
    "alpha": _template('This parameter "{name}:{value}" is a invalid alpha'),
}
MESSAGES["isEmail"] = MESSAGES["email"]
MESSAGES["isURL"] = MESSAGES["URL"]
MESSAGES["isIP"] = MESSAGES["IP"]
MESSAGES["isAlpha"] = MESSAGES["alpha"]


def resolve_predicate(name: str) -> tuple[str, Predicate] | None:
    """
    Look `name` up verbatim, then as "is" + capitalized name.

    Returns the name that matched and the predicate, or None.
    """
    if name in PREDICATES:
        return name, PREDICATES[name]
    prefixed = "is" + name[:1].upper() + name[1:]
    if prefixed in PREDICATES:
        return prefixed, PREDICATES[prefixed]
    return None
