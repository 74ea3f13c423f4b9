"""Tests for schema introspection and meta commands."""

import pytest

from sqlite_mcp.db.introspection import (
    describe_table,
    list_tables,
    run_meta_command,
)


@pytest.fixture
def shop_db(executor, db_path):
    statements = [
        "CREATE TABLE products (id INTEGER PRIMARY KEY, sku TEXT UNIQUE NOT NULL, "
        "price REAL DEFAULT 0)",
        "CREATE TABLE orders (id INTEGER PRIMARY KEY, product_id INTEGER, qty INTEGER)",
        "CREATE INDEX idx_orders_product ON orders (product_id)",
        "CREATE VIEW big_orders AS SELECT * FROM orders WHERE qty > 10",
    ]
    for sql in statements:
        result = executor.execute(db_path, sql)
        assert result.success, result.error
    return db_path


# ========== get_schema ==========


class TestListTables:
    def test_sorted_user_tables_only(self, executor, shop_db):
        result = list_tables(executor, shop_db)
        assert result.success
        assert result.tables == ["orders", "products"]

    def test_empty_database(self, executor, db_path):
        assert list_tables(executor, db_path).tables == []

    def test_invalid_path(self, executor):
        result = list_tables(executor, "../x.db")
        assert not result.success
        assert result.error.startswith("INVALID_PATH:")


class TestDescribeTable:
    def test_columns_and_ddl(self, executor, shop_db):
        result = describe_table(executor, shop_db, "products")

        assert result.success
        assert result.tables == ["products"]
        assert result.ddl.startswith("CREATE TABLE products")
        assert [c.name for c in result.columns] == ["id", "sku", "price"]

        id_col, sku_col, price_col = result.columns
        assert id_col.pk and id_col.type == "INTEGER"
        assert sku_col.notnull and not sku_col.pk
        assert price_col.dflt_value == "0"

    def test_missing_table(self, executor, shop_db):
        result = describe_table(executor, shop_db, "nope")
        assert not result.success
        assert result.error == "Table 'nope' does not exist"

    def test_views_are_not_tables(self, executor, shop_db):
        assert not describe_table(executor, shop_db, "big_orders").success


# ========== meta commands ==========


class TestMetaCommands:
    def test_tables_lists_tables_and_views(self, executor, shop_db):
        result = run_meta_command(executor, shop_db, ".tables")
        assert result.success
        assert result.result == "orders (table)\nproducts (table)\nbig_orders (view)"

    def test_tables_on_empty_database(self, executor, db_path):
        assert run_meta_command(executor, db_path, ".tables").result == "No tables or views"

    def test_schema_for_one_table(self, executor, shop_db):
        result = run_meta_command(executor, shop_db, ".schema", "orders")
        assert result.result == (
            "CREATE TABLE orders (id INTEGER PRIMARY KEY, product_id INTEGER, qty INTEGER);"
        )

    def test_schema_for_everything(self, executor, shop_db):
        text = run_meta_command(executor, shop_db, ".schema").result
        statements = text.split(";\n\n")
        assert len(statements) == 4
        assert text.endswith(";")
        assert "CREATE INDEX idx_orders_product" in text
        assert "CREATE VIEW big_orders" in text

    def test_schema_for_unknown_name(self, executor, shop_db):
        result = run_meta_command(executor, shop_db, ".schema", "nope")
        assert result.success
        assert result.result == "No schema found for 'nope'"

    def test_indexes_for_table(self, executor, shop_db):
        result = run_meta_command(executor, shop_db, ".indexes", "orders")
        assert result.result == (
            "idx_orders_product: CREATE INDEX idx_orders_product ON orders (product_id)"
        )

    def test_indexes_everywhere_skip_internal_indexes(self, executor, shop_db):
        result = run_meta_command(executor, shop_db, ".indexes")
        assert result.result.startswith("orders.idx_orders_product: ")
        assert "sqlite_autoindex" not in result.result

    def test_no_indexes(self, executor, shop_db):
        assert run_meta_command(executor, shop_db, ".indexes", "products").result == (
            "No indexes on 'products'"
        )

    def test_pragma_with_target(self, executor, shop_db):
        result = run_meta_command(executor, shop_db, ".pragma", "table_info(orders)")
        lines = result.result.splitlines()
        assert lines[0] == "0 | id | INTEGER | 0 | NULL | 1"
        assert len(lines) == 3

    def test_pragma_assignment_takes_effect(self, executor, shop_db):
        assert run_meta_command(executor, shop_db, ".pragma", "user_version = 7").success
        assert run_meta_command(executor, shop_db, ".pragma", "user_version").result == "7"

    def test_pragma_without_rows(self, executor, shop_db):
        result = run_meta_command(executor, shop_db, ".pragma", "table_info(nope)")
        assert result.result == "No results"

    def test_pragma_summary(self, executor, shop_db):
        text = run_meta_command(executor, shop_db, ".pragma").result
        assert "journal_mode = wal" in text
        assert "user_version = 0" in text
        assert text.splitlines()[0].startswith("database_list = 0 | main | ")

    def test_unsupported_command(self, executor, db_path):
        result = run_meta_command(executor, db_path, ".dump")
        assert not result.success
        assert result.error == "Unsupported meta command: .dump"
