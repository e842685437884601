import json
import os
from typing import Optional, Tuple

from django.http import JsonResponse

from .errors import ValidationError


def json_body(request) -> Tuple[Optional[dict], Optional[JsonResponse]]:
    try:
        body = request.body.decode("utf-8") if request.body else "{}"
        data = json.loads(body)
        if not isinstance(data, dict):
            raise ValueError("JSON body must be an object")
        return data, None
    except (UnicodeDecodeError, json.JSONDecodeError, ValueError) as exc:
        return None, JsonResponse({"error": f"invalid_json: {exc}"}, status=400)


def require_env(*keys) -> Optional[JsonResponse]:
    missing = [key for key in keys if not os.environ.get(key)]
    if missing:
        return JsonResponse({"error": "missing_env", "missing": missing}, status=500)
    return None


def validation_error(exc: ValidationError) -> JsonResponse:
    body = {"error": exc.code}
    if str(exc) != exc.code:
        body["message"] = str(exc)
    return JsonResponse(body, status=400)


def server_error(exc: Exception) -> JsonResponse:
    return JsonResponse({"error": "internal_server_error", "details": str(exc)}, status=500)
