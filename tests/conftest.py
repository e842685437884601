import pytest

from api.dispatch import CallDispatcher
from api.models import CallInvitation
from tests.fakes import FakePushGateway, InMemoryRegistrationStore

AGORA_APP_ID = "970ca35de60c44645bbae8a215061b33"
AGORA_APP_CERTIFICATE = "5cfd2fd1755d40ecb72977518be15d3b"


@pytest.fixture
def agora_env(monkeypatch):
    monkeypatch.setenv("AGORA_APP_ID", AGORA_APP_ID)
    monkeypatch.setenv("AGORA_APP_CERTIFICATE", AGORA_APP_CERTIFICATE)


@pytest.fixture
def invitation():
    return CallInvitation(
        call_id="meeting-123",
        channel="meeting-123",
        caller_id="alice",
        callee_id="bob",
        caller_name="Alice",
        call_type="video",
    )


@pytest.fixture
def gateway():
    return FakePushGateway()


@pytest.fixture
def store():
    return InMemoryRegistrationStore({"bob": ["tok-a", "tok-b", "tok-c", "tok-tablet"]})


@pytest.fixture
def dispatcher(gateway, store):
    return CallDispatcher(gateway=gateway, store=store)


@pytest.fixture
def use_dispatcher(monkeypatch):
    """Route the HTTP views to a dispatcher built from fakes."""
    def _use(dispatcher):
        monkeypatch.setattr("api.views.calls.get_call_dispatcher", lambda: dispatcher)
        return dispatcher
    return _use
