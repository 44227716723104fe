import sqlite3

import pytest
from psycopg.conninfo import conninfo_to_dict

from adapters.base import ConnectionFailedError, NoActiveConnectionError, UnsupportedDialectError
from adapters.connection import connect, disconnect
from adapters.factory import get_adapter
from adapters.models import ConnectionProfile


def test_mysql_dsn_uses_default_port():
    profile = ConnectionProfile(dialect="mysql", host="db", user="root", password="pw", database="shop")
    assert get_adapter("mysql").build_dsn(profile) == "root:pw@tcp(db:3306)/shop"


def test_postgres_dsn_is_keyword_form():
    profile = ConnectionProfile(dialect="postgresql", host="db", port=5433, user="u", password="p", database="d")
    assert get_adapter("postgresql").build_dsn(profile) == (
        "host=db port=5433 user=u password=p dbname=d sslmode=disable"
    )


def test_redacted_dsn_hides_password():
    profile = ConnectionProfile(dialect="mysql", host="db", user="root", password="s3cret", database="shop")
    assert get_adapter("mysql").redacted_dsn(profile) == "root:****@tcp(db:3306)/shop"


def test_postgres_dsn_keeps_dbname_with_empty_password():
    profile = ConnectionProfile(dialect="postgresql", host="h", user="bob", password="", database="shop")
    params = conninfo_to_dict(get_adapter("postgresql").build_dsn(profile))
    assert params["dbname"] == "shop"
    assert params.get("password", "") == ""
    assert params["user"] == "bob"


def test_postgres_dsn_quotes_password_with_spaces():
    profile = ConnectionProfile(dialect="postgresql", host="h", user="bob", password="a b", database="shop")
    params = conninfo_to_dict(get_adapter("postgresql").build_dsn(profile))
    assert params["password"] == "a b"
    assert params["dbname"] == "shop"


def test_postgres_connects_with_keyword_params(monkeypatch):
    captured = {}

    def fake_connect(*args, **kwargs):
        captured["args"] = args
        captured["kwargs"] = kwargs
        raise OSError("stop here")

    monkeypatch.setattr("adapters.postgres.psycopg.connect", fake_connect)
    profile = ConnectionProfile(dialect="postgresql", host="h", user="bob", password="", database="shop")
    with pytest.raises(ConnectionFailedError, match="stop here"):
        connect(profile)
    assert captured["args"] == ()
    assert captured["kwargs"]["dbname"] == "shop"
    assert captured["kwargs"]["password"] == ""
    assert captured["kwargs"]["port"] == 5432
    assert captured["kwargs"]["sslmode"] == "disable"
    assert captured["kwargs"]["autocommit"] is True


def test_connect_rejects_unsupported_dialect():
    with pytest.raises(UnsupportedDialectError):
        connect(ConnectionProfile(dialect="oracle", host="db"))


def test_connect_rejects_missing_required_fields():
    with pytest.raises(ConnectionFailedError, match="host is required"):
        connect(ConnectionProfile(dialect="postgresql", user="u", database="d"))


def test_connect_fails_for_missing_sqlite_file(tmp_path):
    with pytest.raises(ConnectionFailedError, match="does not exist"):
        connect(ConnectionProfile(dialect="sqlite", file_path=str(tmp_path / "missing.db")))


def test_connect_wraps_driver_errors(monkeypatch):
    def fake_connect(*_args, **_kwargs):
        raise OSError("connection refused")

    monkeypatch.setattr("adapters.mysql.pymysql.connect", fake_connect)
    profile = ConnectionProfile(dialect="mysql", host="db", user="root", database="shop")
    with pytest.raises(ConnectionFailedError, match="connection refused"):
        connect(profile)


def test_connect_closes_connection_when_ping_fails(monkeypatch):
    class FakeCursor:
        def execute(self, sql, params=None):
            raise RuntimeError("server has gone away")

        def close(self):
            return None

    class FakeConn:
        def __init__(self):
            self.closed = False

        def cursor(self):
            return FakeCursor()

        def close(self):
            self.closed = True

    fake_conn = FakeConn()
    monkeypatch.setattr("adapters.mysql.pymysql.connect", lambda **_kwargs: fake_conn)
    profile = ConnectionProfile(dialect="mysql", host="db", user="root", database="shop")
    with pytest.raises(ConnectionFailedError, match="liveness probe"):
        connect(profile)
    assert fake_conn.closed


def test_sqlite_connect_and_disconnect(tmp_path):
    db_path = tmp_path / "app.db"
    sqlite3.connect(str(db_path)).close()

    handle = connect(ConnectionProfile(dialect="sqlite", file_path=str(db_path)))
    assert not handle.closed
    disconnect(handle)
    assert handle.closed

    with pytest.raises(ConnectionFailedError, match="already closed"):
        disconnect(handle)
    with pytest.raises(NoActiveConnectionError):
        with handle.cursor():
            pass
