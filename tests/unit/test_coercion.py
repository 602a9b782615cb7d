"""
Unit tests for converting values to their column's declared type.
"""

import uuid
from datetime import date
from decimal import Decimal

import pytest

from tabledao.core.errors import ValidationError
from tabledao.models.coercion import adapter_for, coerce


class TestAdapterFor:
    """Tests for looking up a converter by column type."""

    def test_type_arguments_are_ignored(self):
        assert adapter_for("numeric(10, 2)") is adapter_for("numeric")
        assert adapter_for(" BIGINT ") is adapter_for("bigint")

    @pytest.mark.parametrize("type_name", [None, "", "varchar", "text", "jsonb", "integer[]"])
    def test_untyped_columns_have_none(self, type_name):
        assert adapter_for(type_name) is None


class TestCoerce:
    """Tests for single-value conversion."""

    @pytest.mark.parametrize(
        "type_name, value, expected",
        [
            ("bigserial", "42", 42),
            ("integer", " 7 ", 7),
            ("numeric(10,2)", "1.50", Decimal("1.50")),
            ("boolean", "true", True),
            ("date", "2024-02-29", date(2024, 2, 29)),
            ("uuid", "00000000-0000-0000-0000-00000000002a", uuid.UUID(int=42)),
        ],
    )
    def test_text_is_converted(self, type_name, value, expected):
        assert coerce("col", type_name, value) == expected

    def test_typed_values_are_kept(self):
        assert coerce("id", "bigint", 42) == 42

    def test_text_columns_pass_through(self):
        assert coerce("name", "varchar", "42") == "42"

    def test_none_passes_through(self):
        assert coerce("id", "bigint", None) is None

    def test_unconvertible_value(self):
        with pytest.raises(ValidationError) as excinfo:
            coerce("id", "bigint", "abc")

        assert excinfo.value.messages == ['This parameter "id:abc" is invalid']
        assert excinfo.value.code == 400
