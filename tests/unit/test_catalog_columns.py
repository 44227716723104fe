from adapters.base import merge_column_rows
from adapters.connection import DatabaseHandle
from adapters.models import KEY_FOREIGN, KEY_NONE, KEY_PRIMARY
from adapters.mysql import MySQLAdapter
from adapters.postgres import PostgresAdapter


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn

    def execute(self, sql, params=None):
        self.conn.executed.append((sql, params))

    def fetchall(self):
        return self.conn.rows

    def close(self):
        return None


class FakeConn:
    def __init__(self, rows):
        self.rows = rows
        self.executed = []

    def cursor(self):
        return FakeCursor(self)

    def close(self):
        return None


MYSQL_ROWS = [
    ("id", "int", "PRI", "PRIMARY", None, None),
    ("customer_id", "int", "MUL", "fk_orders_customer", "customers", "id"),
    ("customer_id", "int", "MUL", "fk_orders_customer_dup", "", ""),
    ("email", "varchar(120)", "UNI", "uq_orders_email", None, None),
    ("note", "text", "", None, None, None),
]

POSTGRES_ROWS = [
    ("id", "integer", "PRI", "orders_pkey", "", ""),
    ("customer_id", "integer", "MUL", "orders_customer_fk", "customers", "id"),
    ("customer_id", "integer", "PRI", "orders_pkey", "", ""),
    ("note", "text", "", "", "", ""),
]


def test_merge_keeps_one_entry_per_field_in_catalog_order():
    columns = merge_column_rows(MYSQL_ROWS)
    assert [c.field for c in columns] == ["id", "customer_id", "email", "note"]


def test_merge_prefers_primary_key_and_keeps_references():
    columns = {c.field: c for c in merge_column_rows(POSTGRES_ROWS)}
    assert columns["customer_id"].key == KEY_PRIMARY
    assert columns["customer_id"].constraint_name == "orders_pkey"
    assert columns["customer_id"].referenced_table == "customers"
    assert columns["customer_id"].referenced_column == "id"


def test_mysql_get_columns():
    conn = FakeConn(MYSQL_ROWS)
    handle = DatabaseHandle(conn, MySQLAdapter())

    columns = {c.field: c for c in handle.adapter.get_columns(handle, "shop", "orders")}

    assert conn.executed[0][1] == ("shop", "orders")
    assert "information_schema.KEY_COLUMN_USAGE" in conn.executed[0][0]
    assert list(columns) == ["id", "customer_id", "email", "note"]
    assert columns["id"].key == KEY_PRIMARY
    assert columns["id"].referenced_table == ""
    assert columns["customer_id"].key == KEY_FOREIGN
    assert columns["customer_id"].constraint_name == "fk_orders_customer"
    assert columns["customer_id"].referenced_table == "customers"
    assert columns["customer_id"].referenced_column == "id"
    assert columns["email"].key == KEY_NONE
    assert columns["email"].type == "varchar(120)"
    assert columns["note"].constraint_name == ""


def test_postgres_get_columns():
    conn = FakeConn(POSTGRES_ROWS)
    handle = DatabaseHandle(conn, PostgresAdapter())

    columns = handle.adapter.get_columns(handle, "public", "orders")

    assert conn.executed[0][1] == ("public", "orders")
    assert [c.field for c in columns] == ["id", "customer_id", "note"]
    by_field = {c.field: c for c in columns}
    assert by_field["id"].key == KEY_PRIMARY
    assert by_field["customer_id"].key == KEY_PRIMARY
    assert by_field["customer_id"].referenced_table == "customers"
    assert by_field["note"].key == KEY_NONE
    assert by_field["note"].referenced_column == ""
