import logging

from django.http import JsonResponse, HttpResponseNotAllowed
from django.views.decorators.csrf import csrf_exempt

from ..constants import DEFAULT_CALL_TYPE
from ..errors import GatewaySendError, ValidationError
from ..http import json_body, server_error, validation_error
from ..models import CallInvitation, CallUpdateKind
from ..services import get_call_dispatcher
from ..utils import generate_call_id, parse_registrations

logger = logging.getLogger("api")


@csrf_exempt
def incoming_call(request):
    """
    Ring the callee: push a call invitation to every registration token sent
    by the caller's app and drop tokens FCM reports as dead.
    """
    logger.info(f"[INCOMING_CALL] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    data, error = json_body(request)
    if error:
        return error

    caller_id = data.get("callerId")
    callee_id = data.get("calleeId")
    callee_tokens = data.get("calleeTokens")

    if not caller_id or not callee_id or callee_tokens in (None, ""):
        return JsonResponse({
            "error": "callerId, calleeId and calleeTokens are required",
        }, status=400)

    try:
        tokens = parse_registrations(callee_tokens, "calleeTokens")
    except ValidationError as exc:
        return validation_error(exc)

    call_id = data.get("meetingDocId") or generate_call_id()
    invitation = CallInvitation(
        call_id=str(call_id),
        channel=str(call_id),
        caller_id=str(caller_id),
        callee_id=str(callee_id),
        caller_name=data.get("callerName") or None,
        call_type=data.get("type") or DEFAULT_CALL_TYPE,
    )

    try:
        result = get_call_dispatcher().dispatch_call_invitation(
            invitation.callee_id,
            tokens,
            invitation,
            invitation.caller_name,
        )
    except GatewaySendError as exc:
        logger.error(f"[INCOMING_CALL] FCM send error: {exc}")
        return server_error(exc)
    except Exception as exc:
        logger.exception("[INCOMING_CALL] Unexpected error")
        return server_error(exc)

    logger.info(
        f"[INCOMING_CALL] call={invitation.call_id} callee={invitation.callee_id} "
        f"success={result.success_count} failure={result.failure_count}"
    )
    stale = result.stale_registrations
    if stale:
        logger.info(f"[INCOMING_CALL] {len(stale)} dead registration(s) for callee={invitation.callee_id}")

    return JsonResponse({
        "ok": True,
        "callId": invitation.call_id,
        "channel": invitation.channel,
        "fcmResponse": result.to_dict(),
    })


@csrf_exempt
def call_update(request):
    """
    Tell the caller the call was rejected or missed. Delivery is best effort:
    a failed send is logged and reported, never turned into an error status.
    """
    logger.info(f"[CALL_UPDATE] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    data, error = json_body(request)
    if error:
        return error

    call_id = data.get("callId")
    kind = CallUpdateKind.parse(data.get("type"))
    if not call_id:
        return JsonResponse({"error": "missing_call_id"}, status=400)
    if kind is None:
        return JsonResponse({
            "error": "invalid_type",
            "valid": ["rejected", "missed"],
        }, status=400)

    try:
        tokens = parse_registrations(data.get("tokens"), "tokens")
    except ValidationError as exc:
        return validation_error(exc)

    not_sent = JsonResponse({
        "ok": True,
        "sent": False,
        "successCount": 0,
        "failureCount": len(tokens),
    })
    try:
        result = get_call_dispatcher().send_call_update(tokens, kind, str(call_id))
    except GatewaySendError as exc:
        logger.error(f"[CALL_UPDATE] Error sending update: {exc}")
        return not_sent
    except Exception:
        logger.exception("[CALL_UPDATE] Unexpected error")
        return not_sent

    return JsonResponse({
        "ok": True,
        "sent": True,
        "successCount": result.success_count,
        "failureCount": result.failure_count,
    })
