"""
Firebase bootstrap and the Firestore-backed registration store.

Firestore Collections:
- users/{uid}: fcmTokens (array of device registration tokens)
"""
import json
import logging
import os
from typing import Iterable, List, Optional

import firebase_admin
from firebase_admin import credentials, firestore

from .constants import DEFAULT_REGISTRATION_COLLECTION, DEFAULT_REGISTRATION_FIELD
from .errors import ReconciliationError

logger = logging.getLogger("api")

DEFAULT_SERVICE_ACCOUNT_PATH = "./service_account_key.json"


def initialize_firebase_app():
    """
    Initialize the default Firebase Admin app from the environment.

    Returns the existing default app when one is already registered, or None
    when no credentials are available.
    """
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    use_emulator = os.environ.get("FIREBASE_USE_EMULATOR", "false").lower() == "true"
    project_id = os.environ.get("FIREBASE_PROJECT_ID")

    logger.info(f"Firebase init: use_emulator={use_emulator}, project_id={project_id}")

    if use_emulator:
        # Must be set before the Firestore client is created
        firestore_host = os.environ.get("FIRESTORE_EMULATOR_HOST", "localhost:8080")
        os.environ["FIRESTORE_EMULATOR_HOST"] = firestore_host
        app = firebase_admin.initialize_app(
            options={"projectId": project_id or "demo-project"},
        )
        logger.info(f"Firebase Admin initialized with EMULATOR (Firestore: {firestore_host})")
        return app

    service_account_json = os.environ.get("FIREBASE_SERVICE_ACCOUNT")
    service_account_path = os.environ.get("FIREBASE_SERVICE_ACCOUNT_PATH", DEFAULT_SERVICE_ACCOUNT_PATH)

    cred = None
    if service_account_json:
        try:
            cred = credentials.Certificate(json.loads(service_account_json))
            logger.info("Using FIREBASE_SERVICE_ACCOUNT env var")
        except json.JSONDecodeError as e:
            logger.error(f"Invalid FIREBASE_SERVICE_ACCOUNT JSON: {e}")
    elif os.path.exists(service_account_path):
        cred = credentials.Certificate(service_account_path)
        logger.info(f"Using service account from {service_account_path}")

    if cred is None:
        logger.warning("Firebase credentials not found - push and Firestore operations will fail")
        return None

    options = {"projectId": project_id} if project_id else None
    app = firebase_admin.initialize_app(cred, options=options)
    logger.info("Firebase Admin initialized (production)")
    return app


def prune_registrations(existing: Iterable[str], stale: Iterable[str]) -> List[str]:
    """Set difference that keeps the stored order of the surviving tokens."""
    stale = set(stale)
    return [token for token in existing if token not in stale]


class FirestoreRegistrationStore:
    """Device registrations stored as an array field on the user document"""

    def __init__(
        self,
        db,
        collection: str = DEFAULT_REGISTRATION_COLLECTION,
        field: str = DEFAULT_REGISTRATION_FIELD,
    ):
        self.db = db
        self.collection = collection
        self.field = field

    def _user_ref(self, user_id: str):
        return self.db.collection(self.collection).document(user_id)

    def get_registrations(self, user_id: str) -> Optional[List[str]]:
        """Stored registrations for a user, or None if the user document does not exist."""
        doc = self._user_ref(user_id).get()
        if not doc.exists:
            logger.info(f"[STORE] User document not found: {user_id}")
            return None
        data = doc.to_dict() or {}
        return list(data.get(self.field) or [])

    def remove_registrations(self, user_id: str, registrations: Iterable[str]) -> Optional[List[str]]:
        """
        Remove registrations from a user's stored set.

        Runs as a Firestore transaction: the document is re-read inside the
        transaction and Firestore reruns the function if the document changes
        before commit, so tokens added concurrently are never overwritten.

        Returns:
            The tokens actually removed, or None if the user document does
            not exist

        Raises:
            ReconciliationError: the transaction failed
        """
        stale = list(dict.fromkeys(registrations))
        if not stale:
            return []

        doc_ref = self._user_ref(user_id)

        @firestore.transactional
        def _txn(transaction):
            snapshot = doc_ref.get(transaction=transaction)
            if not snapshot.exists:
                return None
            data = snapshot.to_dict() or {}
            existing = list(data.get(self.field) or [])
            updated = prune_registrations(existing, stale)
            if len(updated) == len(existing):
                return []
            transaction.update(doc_ref, {self.field: updated})
            return [token for token in existing if token not in updated]

        try:
            removed = _txn(self.db.transaction())
        except Exception as e:
            raise ReconciliationError(f"Failed to remove registrations for {user_id}: {e}") from e

        if removed is None:
            logger.info(f"[STORE] Skipping cleanup, user document not found: {user_id}")
        elif removed:
            logger.info(f"[STORE] Removed {len(removed)} stale registration(s) for {user_id}")
        return removed


def build_registration_store(app=None) -> FirestoreRegistrationStore:
    db = firestore.client(app=app)
    return FirestoreRegistrationStore(
        db,
        collection=os.environ.get("REGISTRATION_COLLECTION", DEFAULT_REGISTRATION_COLLECTION),
        field=os.environ.get("REGISTRATION_FIELD", DEFAULT_REGISTRATION_FIELD),
    )
