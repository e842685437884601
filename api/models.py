# Value types for call signaling. Nothing here is persisted through the
# Django ORM; user documents live in Firestore.
#
# Firestore Collections:
# - users/{uid}: fcmTokens (list of device registration tokens)
#
# See firebase_service.py for Firestore operations.
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


class ErrorKind(str, Enum):
    NOT_REGISTERED = "NotRegistered"
    INVALID_REGISTRATION = "InvalidRegistration"
    OTHER = "Other"

    @property
    def is_terminal(self) -> bool:
        """Terminal errors mean the registration is dead and must be purged."""
        return self in (ErrorKind.NOT_REGISTERED, ErrorKind.INVALID_REGISTRATION)


class CallUpdateKind(str, Enum):
    REJECTED = "call_rejected"
    MISSED = "call_missed"

    @classmethod
    def parse(cls, value) -> Optional["CallUpdateKind"]:
        if not isinstance(value, str):
            return None
        value = value.strip().lower()
        for kind in cls:
            if value in (kind.value, kind.value[len("call_"):]):
                return kind
        return None


@dataclass(frozen=True)
class CallInvitation:
    call_id: str
    channel: str
    caller_id: str
    callee_id: str
    caller_name: Optional[str] = None
    call_type: str = "audio"


@dataclass(frozen=True)
class SendOutcome:
    """Raw per-message result reported by the push gateway"""
    success: bool
    message_id: Optional[str] = None
    error_code: Optional[str] = None


@dataclass(frozen=True)
class DispatchOutcome:
    registration: str
    delivered: bool
    error_kind: Optional[ErrorKind] = None
    error_code: Optional[str] = None

    @property
    def is_terminal_failure(self) -> bool:
        return not self.delivered and self.error_kind is not None and self.error_kind.is_terminal


@dataclass(frozen=True)
class DispatchResult:
    success_count: int = 0
    failure_count: int = 0
    outcomes: Tuple[DispatchOutcome, ...] = field(default_factory=tuple)

    @classmethod
    def empty(cls) -> "DispatchResult":
        return cls()

    @classmethod
    def from_outcomes(cls, outcomes: List[DispatchOutcome]) -> "DispatchResult":
        delivered = sum(1 for outcome in outcomes if outcome.delivered)
        return cls(
            success_count=delivered,
            failure_count=len(outcomes) - delivered,
            outcomes=tuple(outcomes),
        )

    @property
    def stale_registrations(self) -> List[str]:
        """Registrations that failed terminally, in input order."""
        return [o.registration for o in self.outcomes if o.is_terminal_failure]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "successCount": self.success_count,
            "failureCount": self.failure_count,
        }


@dataclass(frozen=True)
class ByNumericId:
    uid: int


@dataclass(frozen=True)
class ByAccountName:
    account: str


RtcIdentity = Union[ByNumericId, ByAccountName]
