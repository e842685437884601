from .health import health
from .token import create_token
from .calls import incoming_call, call_update

__all__ = [
    "health",
    "create_token",
    "incoming_call",
    "call_update",
]
