"""
Call invitation dispatch: fan out one push per device registration, classify
the per-device outcomes and purge registrations the gateway reports as dead.
"""
import logging
from typing import List, Optional, Sequence

from .constants import FCM_ERROR_INVALID_REGISTRATION, FCM_ERROR_NOT_REGISTERED
from .errors import GatewaySendError
from .models import (
    CallInvitation,
    CallUpdateKind,
    DispatchOutcome,
    DispatchResult,
    ErrorKind,
    SendOutcome,
)
from .notifications import build_call_update_message, build_incoming_call_message

logger = logging.getLogger("api")

TERMINAL_ERROR_CODES = {
    FCM_ERROR_NOT_REGISTERED: ErrorKind.NOT_REGISTERED,
    FCM_ERROR_INVALID_REGISTRATION: ErrorKind.INVALID_REGISTRATION,
}


def classify_error_code(error_code: Optional[str]) -> ErrorKind:
    return TERMINAL_ERROR_CODES.get(error_code, ErrorKind.OTHER)


def _to_outcome(registration: str, sent: SendOutcome) -> DispatchOutcome:
    if sent.success:
        return DispatchOutcome(registration=registration, delivered=True)
    return DispatchOutcome(
        registration=registration,
        delivered=False,
        error_kind=classify_error_code(sent.error_code),
        error_code=sent.error_code,
    )


class CallDispatcher:
    """
    Sends call signaling pushes through a push gateway and keeps the
    registration store free of dead tokens.

    gateway: object with send_batch(messages) -> list of SendOutcome
    store: object with remove_registrations(user_id, registrations)

    Holds no per-call state; one instance serves concurrent requests.
    """

    def __init__(self, gateway, store):
        self.gateway = gateway
        self.store = store

    def _send(self, registrations: Sequence[str], messages: list) -> List[DispatchOutcome]:
        sent = self.gateway.send_batch(messages)
        if len(sent) != len(registrations):
            raise GatewaySendError(
                f"Gateway returned {len(sent)} outcomes for {len(registrations)} messages"
            )
        return [_to_outcome(reg, outcome) for reg, outcome in zip(registrations, sent)]

    def dispatch_call_invitation(
        self,
        callee_id: str,
        registrations: Sequence[str],
        invitation: CallInvitation,
        caller_name: Optional[str] = None,
    ) -> DispatchResult:
        """
        Push a call invitation to every registration of the callee.

        Registrations that fail with NotRegistered/InvalidRegistration are
        removed from the callee's stored set. Cleanup failures are logged and
        never change the returned result.

        Raises:
            GatewaySendError: the batch send failed as a whole
        """
        registrations = list(registrations)
        if not registrations:
            return DispatchResult.empty()

        messages = [
            build_incoming_call_message(reg, invitation, caller_name)
            for reg in registrations
        ]
        result = DispatchResult.from_outcomes(self._send(registrations, messages))

        stale = result.stale_registrations
        if stale:
            self._reconcile(callee_id, stale)

        return result

    def _reconcile(self, user_id: str, stale: List[str]) -> None:
        try:
            self.store.remove_registrations(user_id, stale)
        except Exception:
            logger.exception(f"[DISPATCH] Registration cleanup failed for {user_id}")

    def send_call_update(
        self,
        registrations: Sequence[str],
        kind: CallUpdateKind,
        call_id: str,
    ) -> DispatchResult:
        """
        Announce a rejected or missed call. No registration cleanup.

        Raises:
            GatewaySendError: the batch send failed as a whole
        """
        registrations = list(registrations)
        if not registrations:
            return DispatchResult.empty()

        messages = [build_call_update_message(reg, kind, call_id) for reg in registrations]
        return DispatchResult.from_outcomes(self._send(registrations, messages))
