import uuid
from datetime import datetime, timezone
from typing import List

from .errors import ValidationError
from .models import ByAccountName, ByNumericId, RtcIdentity


def parse_rtc_identity(data: dict) -> RtcIdentity:
    """
    Resolve the token identity from a request body.

    A numeric uid takes precedence over an account name when both are sent.
    """
    uid = data.get("uid")
    account = data.get("account")

    if uid is not None and uid != "":
        if isinstance(uid, bool):
            raise ValidationError("uid_must_be_int", "uid must be an integer")
        if isinstance(uid, int):
            return ByNumericId(uid)
        if isinstance(uid, str) and uid.strip().isdigit():
            return ByNumericId(int(uid.strip()))
        raise ValidationError("uid_must_be_int", "uid must be an integer")

    if account is not None:
        if not isinstance(account, str) or not account.strip():
            raise ValidationError("invalid_account", "account must be a non-empty string")
        return ByAccountName(account)

    raise ValidationError(
        "missing_uid_or_account",
        "channelName and either uid or account are required",
    )


def parse_registrations(value, field: str) -> List[str]:
    """Accept a single token or a list of tokens."""
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise ValidationError(f"invalid_{field}", f"{field} must be a string or an array of strings")
    for token in value:
        if not isinstance(token, str) or not token:
            raise ValidationError(f"invalid_{field}", f"{field} must contain non-empty strings")
    return value


def generate_call_id() -> str:
    return str(uuid.uuid4())


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
