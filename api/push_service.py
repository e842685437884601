"""
Push gateway backed by Firebase Cloud Messaging (Firebase Admin SDK).

One batch call per dispatch. send_each() returns one response per message in
request order; each failed response is reduced to a gateway error code string.
"""
import logging
from typing import List, Optional, Sequence

from firebase_admin import exceptions as firebase_exceptions
from firebase_admin import messaging

from .constants import (
    FCM_ERROR_INVALID_ARGUMENT,
    FCM_ERROR_INVALID_REGISTRATION,
    FCM_ERROR_MISMATCHED_CREDENTIAL,
    FCM_ERROR_NOT_REGISTERED,
    FCM_ERROR_UNKNOWN,
)
from .errors import GatewaySendError
from .models import SendOutcome

logger = logging.getLogger("api")


def error_code_for(exc: Optional[Exception]) -> str:
    """Map a per-message FCM exception to a gateway error code."""
    if isinstance(exc, messaging.UnregisteredError):
        return FCM_ERROR_NOT_REGISTERED
    if isinstance(exc, messaging.SenderIdMismatchError):
        return FCM_ERROR_MISMATCHED_CREDENTIAL
    if isinstance(exc, firebase_exceptions.InvalidArgumentError):
        # INVALID_ARGUMENT also covers malformed payloads, which say nothing
        # about the device
        if "registration token" in str(exc).lower():
            return FCM_ERROR_INVALID_REGISTRATION
        return FCM_ERROR_INVALID_ARGUMENT
    if isinstance(exc, firebase_exceptions.FirebaseError) and exc.code:
        return "messaging/" + str(exc.code).lower().replace("_", "-")
    return FCM_ERROR_UNKNOWN


class FcmPushGateway:
    """
    Firebase Cloud Messaging batch sender.

    The app handle is passed in explicitly; None means the default
    firebase_admin app.
    """

    def __init__(self, app=None):
        self.app = app

    def send_batch(self, messages: Sequence[messaging.Message]) -> List[SendOutcome]:
        """
        Send all messages in one round trip.

        Returns:
            One SendOutcome per message, aligned with the input order

        Raises:
            GatewaySendError: the batch call itself failed (network, auth,
                invalid request)
        """
        if not messages:
            return []

        try:
            response = messaging.send_each(list(messages), app=self.app)
        except (firebase_exceptions.FirebaseError, ValueError) as e:
            logger.error(f"[FCM] Batch send failed: {e}")
            raise GatewaySendError(str(e)) from e

        outcomes = []
        for resp in response.responses:
            if resp.success:
                outcomes.append(SendOutcome(success=True, message_id=resp.message_id))
            else:
                outcomes.append(SendOutcome(success=False, error_code=error_code_for(resp.exception)))

        logger.info(f"[FCM] Sent: {response.success_count} success, {response.failure_count} failures")
        return outcomes
