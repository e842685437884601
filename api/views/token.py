import logging
import os

from django.http import JsonResponse, HttpResponseNotAllowed
from django.views.decorators.csrf import csrf_exempt

from ..constants import ROLE_PUBLISHER
from ..errors import SigningError, ValidationError
from ..http import json_body, require_env, server_error, validation_error
from ..tokens import build_rtc_token, expire_timestamp
from ..utils import parse_rtc_identity

logger = logging.getLogger("api")


@csrf_exempt
def create_token(request):
    logger.info(f"[TOKEN] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "POST":
        logger.warning(f"[TOKEN] Method not allowed: {request.method}")
        return HttpResponseNotAllowed(["POST"])

    data, error = json_body(request)
    if error:
        logger.error("[TOKEN] Invalid JSON body")
        return error

    channel = data.get("channelName")
    if not isinstance(channel, str) or not channel:
        logger.error("[TOKEN] Missing channelName")
        return JsonResponse({
            "error": "missing_channel",
            "message": "channelName and either uid or account are required",
        }, status=400)

    try:
        identity = parse_rtc_identity(data)
    except ValidationError as exc:
        logger.warning(f"[TOKEN] Invalid identity: {exc.code}")
        return validation_error(exc)

    missing_env = require_env("AGORA_APP_ID", "AGORA_APP_CERTIFICATE")
    if missing_env:
        logger.error("[TOKEN] Agora credentials not configured")
        return missing_env

    try:
        token_value = build_rtc_token(
            os.environ["AGORA_APP_ID"],
            os.environ["AGORA_APP_CERTIFICATE"],
            channel,
            identity,
            ROLE_PUBLISHER,
            expire_timestamp(),
        )
    except SigningError as exc:
        logger.error(f"[TOKEN] Token generation error: {exc}")
        return server_error(exc)

    logger.info(f"[TOKEN] Success: channel={channel}, identity={identity}")
    return JsonResponse({"token": token_value})
