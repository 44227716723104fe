import sqlite3

import pytest

from adapters.base import IntrospectionFailedError, UnsupportedDialectError
from adapters.connection import connect, disconnect
from adapters.models import KEY_FOREIGN, KEY_NONE, KEY_PRIMARY, ConnectionProfile


@pytest.fixture
def handle(tmp_path):
    db_path = tmp_path / "shop.db"
    conn = sqlite3.connect(str(db_path))
    try:
        cur = conn.cursor()
        cur.execute("CREATE TABLE customers (id INTEGER PRIMARY KEY, name TEXT NOT NULL, email VARCHAR(120))")
        cur.execute(
            "CREATE TABLE orders (id INTEGER PRIMARY KEY, customer_id INTEGER REFERENCES customers(id), "
            "amount REAL, placed_at DATETIME)"
        )
        cur.execute("CREATE TABLE empty_things (id INTEGER PRIMARY KEY)")
        cur.execute("INSERT INTO customers(name, email) VALUES ('Ann', 'ann@example.com')")
        cur.execute("INSERT INTO customers(name, email) VALUES ('Bob', NULL)")
        cur.execute("INSERT INTO orders(customer_id, amount, placed_at) VALUES (1, 9.5, '2024-01-01 10:00:00')")
        conn.commit()
    finally:
        conn.close()

    db_handle = connect(ConnectionProfile(dialect="sqlite", file_path=str(db_path)))
    yield db_handle
    if not db_handle.closed:
        disconnect(db_handle)


def test_list_tables_is_sorted_and_skips_internal_tables(handle):
    assert handle.adapter.list_tables(handle, "main") == ["customers", "empty_things", "orders"]


def test_list_schemas_returns_attached_databases(handle):
    assert handle.adapter.list_schemas(handle) == ["main"]


def test_get_columns_marks_primary_and_foreign_keys(handle):
    columns = {c.field: c for c in handle.adapter.get_columns(handle, "main", "orders")}
    assert list(columns) == ["id", "customer_id", "amount", "placed_at"]
    assert columns["id"].key == KEY_PRIMARY
    assert columns["customer_id"].key == KEY_FOREIGN
    assert columns["customer_id"].referenced_table == "customers"
    assert columns["customer_id"].referenced_column == "id"
    assert columns["amount"].key == KEY_NONE
    assert columns["amount"].referenced_table == ""


def test_get_columns_for_missing_table(handle):
    with pytest.raises(IntrospectionFailedError, match="not found"):
        handle.adapter.get_columns(handle, "main", "nope")


def test_counts(handle):
    adapter = handle.adapter
    assert adapter.count_rows(handle, "main", "customers") == 2
    assert adapter.count_rows(handle, "main", "empty_things") == 0
    assert adapter.count_columns(handle, "main", "orders") == 4


def test_column_data_type(handle):
    assert handle.adapter.get_column_data_type(handle, "main", "customers", "email") == "VARCHAR(120)"
    with pytest.raises(IntrospectionFailedError):
        handle.adapter.get_column_data_type(handle, "main", "customers", "missing")


def test_show_create_table_returns_stored_sql(handle):
    ddl = handle.adapter.show_create_table(handle, "main", "customers")
    assert ddl.startswith("CREATE TABLE customers")


def test_sizing_is_unsupported(handle):
    with pytest.raises(UnsupportedDialectError):
        handle.adapter.get_table_size_mb(handle, "main", "customers")
    with pytest.raises(UnsupportedDialectError):
        handle.adapter.get_all_table_sizes_mb(handle, "main")
    with pytest.raises(UnsupportedDialectError):
        handle.adapter.get_schema_size_mb(handle, "main")


def test_get_columns_with_quote_in_table_name(handle):
    with handle.cursor() as cur:
        cur.execute('CREATE TABLE "a""b" (id INTEGER PRIMARY KEY, ref INTEGER REFERENCES customers(id))')
    columns = {c.field: c for c in handle.adapter.get_columns(handle, "main", 'a"b')}
    assert columns["id"].key == KEY_PRIMARY
    assert columns["ref"].key == KEY_FOREIGN
    assert columns["ref"].referenced_table == "customers"
