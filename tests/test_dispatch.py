import threading

import pytest

from api.constants import FCM_ERROR_INVALID_REGISTRATION, FCM_ERROR_NOT_REGISTERED
from api.dispatch import CallDispatcher, classify_error_code
from api.errors import GatewaySendError, ReconciliationError
from api.models import CallUpdateKind, ErrorKind, SendOutcome
from tests.fakes import FakePushGateway, InMemoryRegistrationStore


def test_classify_error_code():
    assert classify_error_code(FCM_ERROR_NOT_REGISTERED) is ErrorKind.NOT_REGISTERED
    assert classify_error_code(FCM_ERROR_INVALID_REGISTRATION) is ErrorKind.INVALID_REGISTRATION
    assert classify_error_code("messaging/unavailable") is ErrorKind.OTHER
    assert classify_error_code(None) is ErrorKind.OTHER


class TestDispatchCallInvitation:

    def test_empty_registrations_skip_gateway(self, dispatcher, gateway, store, invitation):
        result = dispatcher.dispatch_call_invitation("bob", [], invitation, "Alice")

        assert result.success_count == 0
        assert result.failure_count == 0
        assert result.outcomes == ()
        assert gateway.batches == []
        assert store.calls == []

    def test_outcomes_follow_input_order(self, store, invitation):
        tokens = ["tok-c", "tok-a", "tok-x", "tok-b"]
        gateway = FakePushGateway({"tok-x": "messaging/internal-error"})
        dispatcher = CallDispatcher(gateway, store)

        result = dispatcher.dispatch_call_invitation("bob", tokens, invitation, "Alice")

        assert [o.registration for o in result.outcomes] == tokens
        assert [o.delivered for o in result.outcomes] == [True, True, False, True]
        assert len(gateway.batches) == 1
        assert gateway.sent_tokens == tokens

    def test_all_success_never_writes_store(self, dispatcher, store, invitation):
        result = dispatcher.dispatch_call_invitation("bob", ["tok-a", "tok-b"], invitation)

        assert result.success_count == 2
        assert result.failure_count == 0
        assert store.calls == []
        assert store.users["bob"] == ["tok-a", "tok-b", "tok-c", "tok-tablet"]

    def test_terminal_failures_are_removed(self, store, invitation):
        gateway = FakePushGateway({
            "tok-b": FCM_ERROR_INVALID_REGISTRATION,
            "tok-c": FCM_ERROR_NOT_REGISTERED,
        })
        dispatcher = CallDispatcher(gateway, store)

        result = dispatcher.dispatch_call_invitation("bob", ["tok-a", "tok-b", "tok-c"], invitation)

        assert result.success_count == 1
        assert result.failure_count == 2
        assert [o.error_kind for o in result.outcomes] == [
            None, ErrorKind.INVALID_REGISTRATION, ErrorKind.NOT_REGISTERED,
        ]
        assert store.calls == [("bob", ["tok-b", "tok-c"])]
        assert store.users["bob"] == ["tok-a", "tok-tablet"]

    def test_transient_failures_keep_registration(self, store, invitation):
        gateway = FakePushGateway({"tok-a": "messaging/unavailable"})
        dispatcher = CallDispatcher(gateway, store)

        result = dispatcher.dispatch_call_invitation("bob", ["tok-a"], invitation)

        assert result.failure_count == 1
        assert result.outcomes[0].error_kind is ErrorKind.OTHER
        assert result.outcomes[0].error_code == "messaging/unavailable"
        assert store.calls == []

    def test_missing_user_document_is_not_an_error(self, invitation):
        store = InMemoryRegistrationStore({})
        gateway = FakePushGateway({"tok-a": FCM_ERROR_NOT_REGISTERED})

        result = CallDispatcher(gateway, store).dispatch_call_invitation("ghost", ["tok-a"], invitation)

        assert result.failure_count == 1
        assert store.calls == [("ghost", ["tok-a"])]

    def test_store_failure_does_not_fail_dispatch(self, invitation):
        store = InMemoryRegistrationStore({"bob": ["tok-a"]}, error=ReconciliationError("boom"))
        gateway = FakePushGateway({"tok-a": FCM_ERROR_NOT_REGISTERED})

        result = CallDispatcher(gateway, store).dispatch_call_invitation("bob", ["tok-a"], invitation)

        assert result.failure_count == 1
        assert result.stale_registrations == ["tok-a"]

    def test_unexpected_store_error_is_swallowed(self, invitation):
        store = InMemoryRegistrationStore({"bob": ["tok-a"]}, error=RuntimeError("deadline exceeded"))
        gateway = FakePushGateway({"tok-a": FCM_ERROR_INVALID_REGISTRATION})

        result = CallDispatcher(gateway, store).dispatch_call_invitation("bob", ["tok-a"], invitation)

        assert result.failure_count == 1

    def test_gateway_failure_propagates(self, store, invitation):
        gateway = FakePushGateway(error=GatewaySendError("auth failed"))

        with pytest.raises(GatewaySendError):
            CallDispatcher(gateway, store).dispatch_call_invitation("bob", ["tok-a"], invitation)
        assert store.calls == []

    def test_misaligned_gateway_response_is_a_send_failure(self, store, invitation):
        class ShortGateway:
            def send_batch(self, messages):
                return [SendOutcome(success=True)]

        with pytest.raises(GatewaySendError):
            CallDispatcher(ShortGateway(), store).dispatch_call_invitation(
                "bob", ["tok-a", "tok-b"], invitation,
            )

    def test_each_registration_is_sent_once(self, store, invitation):
        gateway = FakePushGateway({"tok-b": FCM_ERROR_NOT_REGISTERED})

        CallDispatcher(gateway, store).dispatch_call_invitation("bob", ["tok-a", "tok-b"], invitation)

        assert gateway.sent_tokens == ["tok-a", "tok-b"]

    def test_concurrent_dispatches_do_not_lose_updates(self, invitation):
        store = InMemoryRegistrationStore({"bob": ["t1", "t2", "t3", "t4", "t5", "t6"]})
        first = CallDispatcher(FakePushGateway({"t1": FCM_ERROR_NOT_REGISTERED, "t2": FCM_ERROR_NOT_REGISTERED}), store)
        second = CallDispatcher(FakePushGateway({"t4": FCM_ERROR_INVALID_REGISTRATION}), store)
        barrier = threading.Barrier(2)

        def run(dispatcher, tokens):
            barrier.wait()
            dispatcher.dispatch_call_invitation("bob", tokens, invitation)

        threads = [
            threading.Thread(target=run, args=(first, ["t1", "t2", "t3"])),
            threading.Thread(target=run, args=(second, ["t4", "t5"])),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert store.users["bob"] == ["t3", "t5", "t6"]


class TestSendCallUpdate:

    def test_sends_without_cleanup(self, store):
        gateway = FakePushGateway({"tok-a": FCM_ERROR_NOT_REGISTERED})

        result = CallDispatcher(gateway, store).send_call_update(
            ["tok-a", "tok-b"], CallUpdateKind.REJECTED, "c1",
        )

        assert result.success_count == 1
        assert result.failure_count == 1
        assert store.calls == []
        assert gateway.batches[0][0].data == {"type": "call_rejected", "callId": "c1"}

    def test_empty_registrations(self, dispatcher, gateway):
        result = dispatcher.send_call_update([], CallUpdateKind.MISSED, "c1")

        assert result.success_count == 0
        assert gateway.batches == []
