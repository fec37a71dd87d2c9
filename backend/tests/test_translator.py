"""
ZipMetro Backend — Literal Query Translator Tests
===================================================

What:  Tests for translate(): SQL text + parameters → structured plans.
Why:   Every literal query the document store runs goes through here; a
       mistranslated WHERE clause silently reads or writes the wrong rows.
How:   Pure function tests, no store involved.

What we test:
    ✅ SELECT projection, COUNT(*), WHERE, ORDER BY, LIMIT
    ✅ Parameter consumption order (SET before WHERE, WHERE before LIMIT)
    ✅ INSERT with and without VALUES, INSERT OR REPLACE, literals
    ✅ id and active normalisation
    ✅ Timestamp stamping on INSERT and UPDATE
    ✅ Rejection of everything outside the grammar
"""

from datetime import datetime

import pytest

from zipmetro.exceptions import TranslationError
from zipmetro.store.query import (
    AnyLike,
    DeletePlan,
    Equals,
    InsertPlan,
    Like,
    ParsedQuery,
    Sort,
    UpdatePlan,
)
from zipmetro.store.translator import active_flag, collection_name, translate

NOW = datetime(2026, 3, 14, 12, 0, 0)


def tagged_id(value):
    return ("native", value)


class TestCollectionName:

    def test_from_select(self):
        assert collection_name("SELECT * FROM products WHERE id = ?") == "products"

    def test_from_insert(self):
        assert collection_name("INSERT INTO orders (total) VALUES (?)") == "orders"

    def test_from_update(self):
        assert collection_name("UPDATE users SET role = ?") == "users"

    def test_missing_collection_rejected(self):
        with pytest.raises(TranslationError, match="collection"):
            translate("SELECT 1")


class TestSelect:

    def test_select_star_by_id(self):
        """`id = ?` becomes an Equals on id with the native identifier."""
        plan = translate("SELECT * FROM products WHERE id = ?", ["42"], native_id=tagged_id)
        assert isinstance(plan, ParsedQuery)
        assert plan.collection == "products"
        assert plan.fields is None
        assert plan.conditions == [Equals("id", ("native", "42"))]

    def test_projection_strips_alias_prefix(self):
        plan = translate("SELECT p.id, p.name FROM products p")
        assert plan.fields == ["id", "name"]

    def test_count_with_alias(self):
        plan = translate("SELECT COUNT(*) AS total FROM orders WHERE status = ?", ["pending"])
        assert plan.is_count
        assert plan.count_alias == "total"
        assert plan.conditions == [Equals("status", "pending")]

    def test_count_without_alias_defaults_to_count(self):
        plan = translate("SELECT COUNT(*) FROM products")
        assert plan.count_alias == "count"

    def test_like_and_any_like(self):
        """A parenthesised OR of two LIKEs is one AnyLike condition."""
        plan = translate(
            "SELECT * FROM products WHERE category = ? "
            "AND (name LIKE ? OR description LIKE ?)",
            ["flower", "%kush%", "%kush%"],
        )
        assert plan.conditions == [
            Equals("category", "flower"),
            AnyLike((Like("name", "%kush%"), Like("description", "%kush%"))),
        ]

    def test_always_true_prefix_is_dropped(self):
        plan = translate("SELECT * FROM products WHERE 1=1 AND category = ?", ["edibles"])
        assert plan.conditions == [Equals("category", "edibles")]

    def test_active_literal_is_normalised(self):
        plan = translate("SELECT * FROM products WHERE active = 1")
        assert plan.conditions == [Equals("active", True)]

    def test_active_parameter_is_normalised(self):
        plan = translate("SELECT * FROM products WHERE active = ?", ["0"])
        assert plan.conditions == [Equals("active", False)]

    def test_string_literal_condition(self):
        plan = translate("SELECT * FROM users WHERE role = 'admin'")
        assert plan.conditions == [Equals("role", "admin")]

    def test_order_by_desc_and_limit(self):
        plan = translate("SELECT * FROM orders ORDER BY o.created_at DESC LIMIT 100")
        assert plan.sort == Sort("created_at", descending=True)
        assert plan.limit == 100

    def test_order_by_defaults_to_ascending(self):
        plan = translate("SELECT * FROM products ORDER BY name")
        assert plan.sort == Sort("name", descending=False)

    def test_limit_placeholder_consumed_after_where(self):
        """WHERE parameters are consumed before the LIMIT parameter."""
        plan = translate(
            "SELECT * FROM orders WHERE user_id = ? ORDER BY created_at DESC LIMIT ?",
            [7, "5"],
        )
        assert plan.conditions == [Equals("user_id", 7)]
        assert plan.limit == 5

    def test_multiline_statement(self):
        plan = translate(
            """
            SELECT id, email
            FROM users
            WHERE email = ?
            """,
            ["a@b.c"],
        )
        assert plan.fields == ["id", "email"]
        assert plan.conditions == [Equals("email", "a@b.c")]

    def test_trailing_semicolon_is_ignored(self):
        plan = translate("SELECT * FROM products;")
        assert plan.collection == "products"


class TestInsert:

    def test_insert_with_placeholders(self):
        plan = translate(
            "INSERT INTO products (name, price, active) VALUES (?, ?, ?)",
            ["Blue Dream", 35.0, 1],
            now=NOW,
        )
        assert isinstance(plan, InsertPlan)
        assert plan.values["name"] == "Blue Dream"
        assert plan.values["price"] == 35.0
        assert plan.values["active"] is True
        assert not plan.replace

    def test_insert_stamps_timestamps(self):
        plan = translate("INSERT INTO products (name) VALUES (?)", ["x"], now=NOW)
        assert plan.values["created_at"] == NOW
        assert plan.values["updated_at"] == NOW
        assert plan.stamped == ("created_at", "updated_at")

    def test_insert_keeps_supplied_timestamp(self):
        stamp = datetime(2025, 1, 1)
        plan = translate(
            "INSERT INTO orders (total, created_at) VALUES (?, ?)", [10, stamp], now=NOW
        )
        assert plan.values["created_at"] == stamp
        assert plan.stamped == ("updated_at",)

    def test_insert_without_values_clause(self):
        """Field list only: one parameter per field."""
        plan = translate("INSERT INTO admin_settings (key, value)", ["banner", "Hello"])
        assert plan.values["key"] == "banner"
        assert plan.values["value"] == "Hello"

    def test_insert_mixed_literals(self):
        plan = translate(
            "INSERT INTO users (email, role, id_verified, dob, created_at) "
            "VALUES (?, 'customer', 0, NULL, CURRENT_TIMESTAMP)",
            ["x@y.z"],
            now=NOW,
        )
        assert plan.values["role"] == "customer"
        assert plan.values["id_verified"] == 0
        assert plan.values["dob"] is None
        assert plan.values["created_at"] == NOW

    def test_quoted_literal_with_comma_and_escaped_quote(self):
        plan = translate(
            "INSERT INTO admin_settings (key, value) VALUES ('motd', 'Hi, it''s open')"
        )
        assert plan.values["value"] == "Hi, it's open"

    def test_insert_or_replace_with_native_id(self):
        plan = translate(
            "INSERT OR REPLACE INTO notification_preferences (id, user_id) VALUES (?, ?)",
            ["3", 9],
            native_id=tagged_id,
        )
        assert plan.replace
        assert plan.values["id"] == ("native", "3")

    def test_field_value_count_mismatch(self):
        with pytest.raises(TranslationError, match="fields"):
            translate("INSERT INTO products (name, price) VALUES (?)", ["x"])

    def test_unparseable_field_list(self):
        with pytest.raises(TranslationError, match="INSERT fields"):
            translate("INSERT INTO products (name price) VALUES (?, ?)", ["x", 1])


class TestUpdate:

    def test_set_params_consumed_before_where(self):
        plan = translate(
            "UPDATE orders SET status = ? WHERE id = ?",
            ["confirmed", "12"],
            native_id=tagged_id,
            now=NOW,
        )
        assert isinstance(plan, UpdatePlan)
        assert plan.values["status"] == "confirmed"
        assert plan.conditions == [Equals("id", ("native", "12"))]

    def test_updated_at_always_refreshed(self):
        plan = translate("UPDATE products SET stock = 3", now=NOW)
        assert plan.values == {"stock": 3, "updated_at": NOW}
        assert plan.conditions == []

    def test_current_timestamp_literal(self):
        plan = translate(
            "UPDATE admin_settings SET value = ?, updated_at = CURRENT_TIMESTAMP WHERE key = ?",
            ["on", "banner"],
            now=NOW,
        )
        assert plan.values["updated_at"] == NOW
        assert plan.conditions == [Equals("key", "banner")]

    def test_active_set_value_normalised(self):
        plan = translate("UPDATE products SET active = ? WHERE id = ?", [0, 1])
        assert plan.values["active"] is False


class TestDelete:

    def test_delete_by_id(self):
        plan = translate("DELETE FROM products WHERE id = ?", ["5"], native_id=tagged_id)
        assert isinstance(plan, DeletePlan)
        assert plan.collection == "products"
        assert plan.conditions == [Equals("id", ("native", "5"))]


class TestRejections:

    def test_join_rejected(self):
        with pytest.raises(TranslationError, match="JOIN"):
            translate("SELECT * FROM orders o JOIN users u ON o.user_id = u.id")

    def test_group_by_rejected(self):
        with pytest.raises(TranslationError, match="GROUP BY"):
            translate("SELECT user_id FROM orders GROUP BY user_id")

    def test_unsupported_condition_rejected(self):
        with pytest.raises(TranslationError, match="WHERE condition"):
            translate("SELECT * FROM orders WHERE total > ?", [10])

    def test_too_few_parameters(self):
        with pytest.raises(TranslationError, match="more placeholders"):
            translate("SELECT * FROM users WHERE email = ? AND role = ?", ["a@b.c"])

    def test_too_many_parameters(self):
        with pytest.raises(TranslationError, match="placeholders but"):
            translate("SELECT * FROM users WHERE email = ?", ["a@b.c", "extra"])

    def test_null_like_parameter(self):
        with pytest.raises(TranslationError, match="NULL"):
            translate("SELECT * FROM products WHERE name LIKE ?", [None])

    def test_unsupported_verb(self):
        with pytest.raises(TranslationError, match="Unsupported statement"):
            translate("REPLACE INTO products (name) VALUES (?)", ["x"])

    def test_empty_query(self):
        with pytest.raises(TranslationError, match="Empty"):
            translate("   ")

    def test_error_context_carries_statement(self):
        with pytest.raises(TranslationError) as exc_info:
            translate("SELECT * FROM orders WHERE total > 5")
        assert "orders" in exc_info.value.context["sql"]


class TestActiveFlag:

    @pytest.mark.parametrize("value", [1, True, "1"])
    def test_truthy_values(self, value):
        assert active_flag(value) is True

    @pytest.mark.parametrize("value", [0, False, "0", "true", None])
    def test_everything_else_is_inactive(self, value):
        assert active_flag(value) is False
