"""
Firebase Config Module

Initializes the Firebase Admin SDK once per process and exposes the Firestore
client used by the store module.

Credentials are resolved in this order:
    1. FIREBASE_CREDENTIALS - path to a service account JSON file
    2. Application default credentials (GOOGLE_APPLICATION_CREDENTIALS, GCE, ...)

Functions:
    get_db: Return the Firestore client, or None if Firebase is unavailable.
"""

import firebase_admin
from firebase_admin import credentials, firestore

from config.settings import FIREBASE_CREDENTIALS, FIREBASE_PROJECT_ID
from logging_setup import get_logger

logger = get_logger("firebase_config")

_db = None


def _initialize_app() -> firebase_admin.App:
    """Return the default Firebase app, creating it on first use."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    options = {"projectId": FIREBASE_PROJECT_ID} if FIREBASE_PROJECT_ID else None
    if FIREBASE_CREDENTIALS:
        cred = credentials.Certificate(FIREBASE_CREDENTIALS)
    else:
        cred = credentials.ApplicationDefault()
    return firebase_admin.initialize_app(cred, options)


def get_db():
    """
    Get the Firestore client.

    Returns:
        google.cloud.firestore.Client | None: The client, or None when the
        Firebase app cannot be initialized (missing credentials, bad file).
    """
    global _db
    if _db is not None:
        return _db

    try:
        app = _initialize_app()
        _db = firestore.client(app)
    except Exception as exc:
        logger.warning("Firestore unavailable: %s", exc)
        return None

    logger.info("Firestore client initialized")
    return _db
