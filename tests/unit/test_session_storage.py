"""Unit tests for InMemorySessionStorage (lazy entries, drop, idle expiry, size bound)."""

import pytest

from crm_gateway.infrastructure.session import InMemorySessionStorage


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_reads_do_not_register_a_session() -> None:
    registry = InMemorySessionStorage()
    for n in range(50):
        state = registry.for_session(f"anon-{n}")
        assert state.get("authMethod") is None
        assert dict(state) == {}
        state.pop("tenantId", None)
    assert len(registry) == 0


def test_first_write_registers_and_state_is_live() -> None:
    registry = InMemorySessionStorage()
    state = registry.for_session("tab-1")
    state["authMethod"] = "token"

    assert "tab-1" in registry
    assert registry.for_session("tab-1")["authMethod"] == "token"
    del state["authMethod"]
    assert "authMethod" not in registry.for_session("tab-1")
    with pytest.raises(KeyError):
        del state["authMethod"]


def test_sessions_are_isolated() -> None:
    registry = InMemorySessionStorage()
    registry.for_session("tab-1")["tenantId"] = "a"
    assert registry.for_session("tab-2").get("tenantId") is None


def test_drop_and_clear_forget_the_session() -> None:
    registry = InMemorySessionStorage()
    registry.for_session("tab-1")["tenantId"] = "a"
    registry.for_session("tab-2")["tenantId"] = "b"

    registry.drop("tab-1")
    registry.for_session("tab-2").clear()

    assert len(registry) == 0


def test_idle_sessions_expire_and_activity_extends_them() -> None:
    clock = FakeClock()
    registry = InMemorySessionStorage(ttl_seconds=60, timer=clock)
    registry.for_session("idle")["tenantId"] = "a"
    registry.for_session("busy")["tenantId"] = "b"

    clock.now = 50
    assert registry.for_session("busy").get("tenantId") == "b"
    clock.now = 70

    assert "idle" not in registry
    assert registry.for_session("idle").get("tenantId") is None
    assert registry.for_session("busy").get("tenantId") == "b"
    assert len(registry) == 1


def test_registry_size_is_bounded() -> None:
    registry = InMemorySessionStorage(max_sessions=3)
    for n in range(10):
        registry.for_session(f"tab-{n}")["tenantId"] = "a"
    assert len(registry) == 3
    assert "tab-9" in registry


def test_invalid_bounds_are_rejected() -> None:
    with pytest.raises(ValueError):
        InMemorySessionStorage(ttl_seconds=0)
    with pytest.raises(ValueError):
        InMemorySessionStorage(max_sessions=0)
