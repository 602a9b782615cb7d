"""
Unit tests for ScopedQuery rendering.

Tests cover:
- WHERE rendering per operator
- ORDER BY / LIMIT / OFFSET
- INSERT, UPDATE, DELETE and aggregate statements
- Immutability of builder calls
- Rejection of unknown operators, directions and aggregates
"""

import pytest

from tabledao.core.errors import ConfigError
from tabledao.query.builder import Condition, Order, ScopedQuery, quote_ident


class TestConditions:
    """Tests for WHERE clause rendering."""

    def test_comparison_and_equality(self):
        sql, params = ScopedQuery("users").where("age", ">", 18).where("status", "active").to_select()

        assert sql == 'SELECT * FROM "users" WHERE "age" > $1 AND "status" = $2'
        assert params == [18, "active"]

    def test_mapping_filters(self):
        sql, params = ScopedQuery("users").where({"status": "active", "name": "ada"}).to_select()

        assert sql == 'SELECT * FROM "users" WHERE "status" = $1 AND "name" = $2'
        assert params == ["active", "ada"]

    def test_none_renders_is_null(self):
        sql, params = ScopedQuery("users").where("deleted").where("status", "!=", None).to_select()

        assert sql == 'SELECT * FROM "users" WHERE "deleted" IS NULL AND "status" IS NOT NULL'
        assert params == []

    def test_between_list_and_string(self):
        sql, params = ScopedQuery("users").where("age", "between", [18, 30]).to_select()
        assert sql == 'SELECT * FROM "users" WHERE "age" BETWEEN $1 AND $2'
        assert params == [18, 30]

        _, params = ScopedQuery("users").where("age", "between", "18, 30").to_select()
        assert params == ["18", "30"]

    def test_between_needs_two_values(self):
        with pytest.raises(ConfigError):
            ScopedQuery("users").where("age", "between", [1, 2, 3]).to_select()

    def test_in_and_not_in(self):
        sql, params = ScopedQuery("users").where("id", "in", [1, 2]).where("id", "not in", "3,4").to_select()

        assert sql == 'SELECT * FROM "users" WHERE "id" = ANY($1) AND NOT "id" = ANY($2)'
        assert params == [[1, 2], ["3", "4"]]

    def test_like_operators(self):
        sql, _ = ScopedQuery("users").where("name", "LIKE", "%a%").where("name", "not like", "b%").to_select()

        assert sql == 'SELECT * FROM "users" WHERE "name" LIKE $1 AND "name" NOT LIKE $2'

    def test_unknown_operator_rejected(self):
        with pytest.raises(ConfigError, match="Unsupported operator"):
            Condition("age", "; DROP TABLE users", 1)

    def test_condition_entries(self):
        assert Condition.from_entry(["status"]) == Condition("status", "=", None)
        assert Condition.from_entry(("status", "active")) == Condition("status", "=", "active")
        assert Condition.from_entry(("age", ">=", 3)) == Condition("age", ">=", 3)
        with pytest.raises(ConfigError):
            Condition.from_entry(())

    def test_identifiers_are_quoted(self):
        assert quote_ident("public.users") == '"public"."users"'
        assert quote_ident('we"ird') == '"we""ird"'
        with pytest.raises(ConfigError):
            quote_ident("")


class TestOrderAndPaging:
    """Tests for ORDER BY, LIMIT and OFFSET."""

    def test_order_limit_offset(self):
        query = ScopedQuery("users").where("status", "active").order_by("name", "DESC").order_by("id")
        sql, params = query.limit(10).offset(20).to_select()

        assert sql == 'SELECT * FROM "users" WHERE "status" = $1 ORDER BY "name" DESC, "id" ASC LIMIT $2 OFFSET $3'
        assert params == ["active", 10, 20]

    def test_bad_direction_rejected(self):
        with pytest.raises(ConfigError, match="Unsupported order direction"):
            Order("name", "sideways")

    def test_selected_columns(self):
        sql, _ = ScopedQuery("users").to_select(["id", "email"])

        assert sql == 'SELECT "id", "email" FROM "users"'


class TestStatements:
    """Tests for write and aggregate statements."""

    def test_insert_batch_fills_defaults(self):
        sql, params = ScopedQuery("t").to_insert([{"a": 1, "b": 2}, {"a": 3}], returning="id")

        assert sql == 'INSERT INTO "t" ("a", "b") VALUES ($1, $2), ($3, DEFAULT) RETURNING "id"'
        assert params == [1, 2, 3]

    def test_insert_nothing_rejected(self):
        with pytest.raises(ConfigError):
            ScopedQuery("t").to_insert([])

    def test_update(self):
        sql, params = ScopedQuery("t").where("id", 5).to_update({"a": 1, "b": None})

        assert sql == 'UPDATE "t" SET "a" = $1, "b" = $2 WHERE "id" = $3'
        assert params == [1, None, 5]

    def test_delete(self):
        sql, params = ScopedQuery("t").where("id", 5).to_delete()

        assert sql == 'DELETE FROM "t" WHERE "id" = $1'
        assert params == [5]

    def test_aggregates(self):
        assert ScopedQuery("t").to_aggregate("count") == ('SELECT count(*) AS ret FROM "t"', [])

        sql, params = ScopedQuery("t").where("age", ">", 1).to_aggregate("MAX", "age")
        assert sql == 'SELECT max("age") AS ret FROM "t" WHERE "age" > $1'
        assert params == [1]

    def test_unknown_aggregate_rejected(self):
        with pytest.raises(ConfigError):
            ScopedQuery("t").to_aggregate("median", "age")


class TestImmutability:
    """Builder calls return new queries."""

    def test_where_does_not_mutate(self):
        base = ScopedQuery("users")
        filtered = base.where("status", "active")

        assert base.conditions == ()
        assert len(filtered.conditions) == 1

    def test_scoped_copies(self):
        query = ScopedQuery("users").where("status", "active").limit(5)
        moved = query.scoped("archived_users")

        assert query.table == "users"
        assert moved.table == "archived_users"
        assert moved.conditions == query.conditions
        assert moved.limit_count == 5

    def test_transaction_does_not_affect_equality(self):
        query = ScopedQuery("users")

        assert query.transacting(object()) == query
