import pytest
from fastapi.testclient import TestClient

from vshield import AuditLogger, InMemoryAuditSink, InMemoryWhitelistStore, VShieldGate
from vshield_gateway import config
from vshield_gateway.main import app, get_gate

T = 1_700_000_000_000


class FixedClock:
    def __init__(self, now: int = T):
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def store(clock):
    return InMemoryWhitelistStore(clock=clock)


@pytest.fixture
def audit_sink():
    return InMemoryAuditSink()


@pytest.fixture
def gate(store, audit_sink, clock):
    return VShieldGate(store, AuditLogger([audit_sink]), settings=config.gate_settings(), clock=clock)


@pytest.fixture
def client(gate, monkeypatch):
    # Source address comes from the header the reverse proxy sets
    monkeypatch.setattr(config, "CLIENT_IP_HEADER", "X-Real-IP")
    app.dependency_overrides[get_gate] = lambda: gate
    yield TestClient(app)
    app.dependency_overrides.clear()
