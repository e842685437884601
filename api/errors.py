class CallServiceError(Exception):
    """Base class for errors raised by the call signaling service."""


class ValidationError(CallServiceError):
    """Request field missing or malformed. Maps to HTTP 400."""

    def __init__(self, code: str, message: str = ""):
        super().__init__(message or code)
        self.code = code


class SigningError(CallServiceError):
    """The RTC token signer failed."""


class GatewaySendError(CallServiceError):
    """The whole push batch failed; no per-device outcome is available."""


class ReconciliationError(CallServiceError):
    """Removing dead registrations from the store failed."""
