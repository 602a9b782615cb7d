"""
Unit tests for named predicates.
"""

import uuid

import pytest

from tabledao.models import predicates
from tabledao.models.predicates import PREDICATES, resolve_predicate


class TestPredicates:
    """Tests for the predicate table."""

    @pytest.mark.parametrize(
        "name,value,expected",
        [
            ("isEmail", "ada@example.com", True),
            ("isEmail", "ada.example.com", False),
            ("isEmail", None, False),
            ("isURL", "https://example.com/path", True),
            ("isURL", "not a url", False),
            ("isIP", "10.0.0.1", True),
            ("isIPv4", "10.0.0.1", True),
            ("isIPv4", "::1", False),
            ("isIPv6", "::1", True),
            ("isIP", "300.1.1.1", False),
            ("isAlpha", "abc", True),
            ("isAlpha", "ab1", False),
            ("isAlphanumeric", "ab1", True),
            ("isNumeric", "-12", True),
            ("isInt", "042", False),
            ("isInt", "42", True),
            ("isFloat", "4.2e3", True),
            ("isFloat", ".", False),
            ("isHexadecimal", "0xff", True),
            ("isLowercase", "abc", True),
            ("isUppercase", "abc", False),
            ("isDate", "2024-02-29", True),
            ("isDate", "yesterday", False),
        ],
    )
    def test_string_predicates(self, name, value, expected):
        assert PREDICATES[name](value) is expected

    def test_uuid(self):
        assert predicates.is_uuid(uuid.uuid4())
        assert predicates.is_uuid(str(uuid.uuid4()))
        assert not predicates.is_uuid("1234")

    def test_emptiness(self):
        assert predicates.is_empty(None)
        assert predicates.is_empty("")
        assert predicates.is_empty([])
        assert not predicates.not_empty("")
        assert predicates.not_empty("x")
        assert predicates.not_null(0)
        assert predicates.is_null("")

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            PREDICATES["isEmail"] = bool


class TestResolvePredicate:
    """Tests for predicate name lookup."""

    def test_verbatim(self):
        assert resolve_predicate("notEmpty") == ("notEmpty", predicates.not_empty)

    def test_is_prefix(self):
        assert resolve_predicate("email") == ("isEmail", predicates.is_email)
        assert resolve_predicate("URL") == ("isURL", PREDICATES["isURL"])

    def test_unknown(self):
        assert resolve_predicate("bogus") is None
        assert resolve_predicate("") is None
