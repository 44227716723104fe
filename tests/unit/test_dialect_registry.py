import pytest

from adapters import UnsupportedDialectError, get_adapter, resolve_dialect
from adapters.base import DialectKind
from adapters.mysql import MySQLAdapter
from adapters.postgres import PostgresAdapter
from adapters.sqlite import SQLiteAdapter


@pytest.mark.parametrize(
    "name, kind",
    [
        ("mysql", DialectKind.MYSQL),
        ("MySQL", DialectKind.MYSQL),
        ("postgresql", DialectKind.POSTGRESQL),
        ("postgres", DialectKind.POSTGRESQL),
        ("sqlite", DialectKind.SQLITE),
        ("oracle", DialectKind.UNSUPPORTED),
        ("", DialectKind.UNSUPPORTED),
    ],
)
def test_resolve_dialect(name, kind):
    assert resolve_dialect(name) is kind


def test_get_adapter_returns_dialect_class():
    assert isinstance(get_adapter("mysql"), MySQLAdapter)
    assert isinstance(get_adapter(DialectKind.POSTGRESQL), PostgresAdapter)
    assert isinstance(get_adapter("sqlite"), SQLiteAdapter)


def test_get_adapter_rejects_unknown_dialect():
    with pytest.raises(UnsupportedDialectError):
        get_adapter("oracle")


def test_template_lookup_falls_back_to_common_templates():
    assert get_adapter("sqlite").template("ping") == "SELECT 1"


def test_missing_template_is_unsupported():
    with pytest.raises(UnsupportedDialectError, match="create_database"):
        get_adapter("sqlite").template("create_database")


def test_quote_identifier_escapes_quote_character():
    assert get_adapter("mysql").quote_identifier("we`ird") == "`we``ird`"
    assert get_adapter("postgresql").quote_identifier('a"b') == '"a""b"'
    assert get_adapter("sqlite").quote_identifier("plain") == "plain"
