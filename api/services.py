from functools import lru_cache

from .dispatch import CallDispatcher
from .firebase_service import build_registration_store, initialize_firebase_app
from .push_service import FcmPushGateway


def build_call_dispatcher() -> CallDispatcher:
    """Wire the dispatcher to FCM and Firestore using the default Firebase app."""
    app = initialize_firebase_app()
    return CallDispatcher(
        gateway=FcmPushGateway(app=app),
        store=build_registration_store(app=app),
    )


@lru_cache(maxsize=None)
def get_call_dispatcher() -> CallDispatcher:
    return build_call_dispatcher()
