import pytest

from adapters.base import ConnectionFailedError, NoActiveConnectionError
from adapters.models import ConnectionProfile
from client.registry import SessionRegistry
from client.session import ClientState


class FakeClient:
    def __init__(self, fail=False):
        self.fail = fail
        self.state = ClientState.DISCONNECTED
        self.disconnect_calls = 0

    def connect(self, profile):
        if self.fail:
            raise ConnectionFailedError("boom")
        self.state = ClientState.CONNECTED
        return profile.database, []

    def disconnect(self):
        self.disconnect_calls += 1
        self.state = ClientState.DISCONNECTED


class FakeFactory:
    def __init__(self):
        self.created = []
        self.fail_next = False

    def __call__(self):
        client = FakeClient(fail=self.fail_next)
        self.created.append(client)
        return client


PROFILE = ConnectionProfile(dialect="mysql", host="db", user="u", database="shop")


def test_sessions_are_isolated():
    registry = SessionRegistry(client_factory=FakeFactory())
    first, _, _ = registry.connect("a", PROFILE)
    second, _, _ = registry.connect("b", PROFILE)
    assert registry.get("a") is first
    assert registry.get("b") is second
    assert registry.session_ids() == ["a", "b"]


def test_reconnect_replaces_and_closes_previous_client():
    registry = SessionRegistry(client_factory=FakeFactory())
    old, _, _ = registry.connect("a", PROFILE)
    new, _, _ = registry.connect("a", PROFILE)
    assert registry.get("a") is new
    assert old.disconnect_calls == 1


def test_failed_connect_keeps_existing_session():
    factory = FakeFactory()
    registry = SessionRegistry(client_factory=factory)
    existing, _, _ = registry.connect("a", PROFILE)
    factory.fail_next = True
    with pytest.raises(ConnectionFailedError):
        registry.connect("a", PROFILE)
    assert registry.get("a") is existing
    assert existing.disconnect_calls == 0


def test_unknown_session_has_no_connection():
    registry = SessionRegistry(client_factory=FakeFactory())
    with pytest.raises(NoActiveConnectionError):
        registry.get("missing")
    with pytest.raises(NoActiveConnectionError):
        registry.disconnect("missing")


def test_disconnect_and_close_all():
    registry = SessionRegistry(client_factory=FakeFactory())
    a, _, _ = registry.connect("a", PROFILE)
    b, _, _ = registry.connect("b", PROFILE)
    registry.disconnect("a")
    assert a.disconnect_calls == 1
    registry.close_all()
    assert b.disconnect_calls == 1
    assert registry.session_ids() == []
