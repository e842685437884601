"""
Message composition for call signaling pushes (FCM via Firebase Admin SDK).

Every incoming call push carries both a data payload (read by the app even
when it is in the background) and a visible notification, so the call still
rings when the app has been killed.
"""
import time
from typing import Dict, Optional

from firebase_admin import messaging

from .constants import (
    ANDROID_CALL_CHANNEL_ID,
    APNS_CALL_CATEGORY,
    CALL_PUSH_TTL_SECONDS,
    DEFAULT_CALL_TYPE,
    UNKNOWN_CALLER_NAME,
)
from .models import CallInvitation, CallUpdateKind

INCOMING_CALL_TITLE = "Incoming Call"

CALL_UPDATE_TEXT = {
    CallUpdateKind.REJECTED: ("Call Rejected", "The callee rejected your call."),
    CallUpdateKind.MISSED: ("Missed Call", "Call not answered."),
}


def incoming_call_data(invitation: CallInvitation, caller_name: Optional[str] = None) -> Dict[str, str]:
    """Data payload for an incoming call. FCM requires every value to be a string."""
    name = caller_name or invitation.caller_name or UNKNOWN_CALLER_NAME
    return {
        "type": "incoming_call",
        "callId": str(invitation.call_id),
        "callerId": str(invitation.caller_id),
        "callerName": str(name),
        "channel": str(invitation.channel),
        "callType": str(invitation.call_type or DEFAULT_CALL_TYPE),
    }


def build_incoming_call_message(
    registration: str,
    invitation: CallInvitation,
    caller_name: Optional[str] = None,
    now: Optional[float] = None,
) -> messaging.Message:
    """
    Build the push for one device registration.

    Args:
        registration: FCM registration token of the target device
        invitation: The call being announced
        caller_name: Display name shown to the callee, falls back to the
            invitation's caller name and then to "Unknown"
        now: Epoch seconds used for the APNs expiration header

    Returns:
        firebase_admin.messaging.Message ready for send_each()
    """
    data = incoming_call_data(invitation, caller_name)
    body = f"{data['callerName']} is calling..."
    if now is None:
        now = time.time()

    return messaging.Message(
        token=registration,
        data=data,
        notification=messaging.Notification(
            title=INCOMING_CALL_TITLE,
            body=body,
        ),
        android=messaging.AndroidConfig(
            priority="high",
            ttl=CALL_PUSH_TTL_SECONDS,
            notification=messaging.AndroidNotification(
                channel_id=ANDROID_CALL_CHANNEL_ID,
                priority="max",
                default_sound=True,
                default_vibrate_timings=True,
                # Pushes for the same call collapse into one notification
                tag=data["callId"],
            ),
        ),
        apns=messaging.APNSConfig(
            headers={
                "apns-priority": "10",
                "apns-expiration": str(int(now + CALL_PUSH_TTL_SECONDS)),
                "apns-collapse-id": data["callId"],
            },
            payload=messaging.APNSPayload(
                aps=messaging.Aps(
                    alert=messaging.ApsAlert(title=INCOMING_CALL_TITLE, body=body),
                    sound="default",
                    category=APNS_CALL_CATEGORY,
                    content_available=True,
                ),
            ),
        ),
    )


def build_call_update_message(
    registration: str,
    kind: CallUpdateKind,
    call_id: str,
) -> messaging.Message:
    """Tell the caller's device that the call was rejected or went unanswered."""
    title, body = CALL_UPDATE_TEXT[kind]
    return messaging.Message(
        token=registration,
        data={
            "type": kind.value,
            "callId": str(call_id),
        },
        notification=messaging.Notification(title=title, body=body),
        android=messaging.AndroidConfig(
            priority="high",
            notification=messaging.AndroidNotification(
                channel_id=ANDROID_CALL_CHANNEL_ID,
                priority="max",
            ),
        ),
    )
