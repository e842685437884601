import time
from typing import Optional

from agora_token_builder import RtcTokenBuilder

from .constants import ROLE_PUBLISHER, TOKEN_EXPIRE_SECONDS
from .errors import SigningError
from .models import ByAccountName, ByNumericId, RtcIdentity


def expire_timestamp(now: Optional[float] = None, expire: int = TOKEN_EXPIRE_SECONDS) -> int:
    if now is None:
        now = time.time()
    return int(now) + expire

def build_rtc_token(
    app_id: str,
    app_certificate: str,
    channel_name: str,
    identity: RtcIdentity,
    role: int = ROLE_PUBLISHER,
    expire_ts: Optional[int] = None,
) -> str:
    """Sign an RTC channel token for a numeric uid or a user account."""
    if expire_ts is None:
        expire_ts = expire_timestamp()

    try:
        if isinstance(identity, ByNumericId):
            token = RtcTokenBuilder.buildTokenWithUid(
                app_id, app_certificate, channel_name, identity.uid, role, expire_ts
            )
        elif isinstance(identity, ByAccountName):
            token = RtcTokenBuilder.buildTokenWithAccount(
                app_id, app_certificate, channel_name, identity.account, role, expire_ts
            )
        else:
            raise TypeError(f"Unsupported identity: {identity!r}")
    except Exception as e:
        raise SigningError(str(e)) from e

    if not token:
        raise SigningError("Signer returned an empty token")
    return token
