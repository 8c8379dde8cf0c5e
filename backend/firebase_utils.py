"""Firebase initialization helpers."""
import json
import logging
import os
from typing import Dict, Any

import firebase_admin
from firebase_admin import credentials

from config.settings import Settings

logger = logging.getLogger(__name__)

CREDENTIAL_ENV_VARS = [
    'FIREBASE_CREDENTIALS_JSON',
    'FIREBASE_CREDENTIALS_PATH',
    'GOOGLE_APPLICATION_CREDENTIALS',
]


def get_firebase_credentials() -> Dict[str, Any]:
    """
    Load the service account from the first configured source.

    FIREBASE_CREDENTIALS_JSON may hold inline JSON or a file path; the
    other two variables hold file paths.

    Raises:
        ValueError: If no valid credentials are found
    """
    for var in CREDENTIAL_ENV_VARS:
        value = os.getenv(var)
        if not value:
            continue
        if var == 'FIREBASE_CREDENTIALS_JSON':
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass
        if os.path.exists(value):
            with open(value, 'r') as f:
                return json.load(f)

    raise ValueError(
        "Firebase credentials not found. Set one of: " + ", ".join(CREDENTIAL_ENV_VARS)
    )


def init_firebase() -> bool:
    """Initialize the default Firebase app; returns whether Firestore is usable."""
    if Settings.DEV_MODE:
        logger.info("Running in DEV_MODE - Firebase disabled")
        return False

    if firebase_admin._apps:
        return True

    if Settings.use_emulator():
        logger.info(f"Firestore Emulator: {Settings.FIRESTORE_EMULATOR_HOST}")
        os.environ.setdefault("GCLOUD_PROJECT", Settings.GCLOUD_PROJECT)
        firebase_admin.initialize_app(options={'projectId': os.environ["GCLOUD_PROJECT"]})
        return True

    try:
        cred = credentials.Certificate(get_firebase_credentials())
    except ValueError as e:
        logger.warning(f"{e}. Set FIRESTORE_EMULATOR_HOST to use the emulator instead.")
        return False

    firebase_admin.initialize_app(cred)
    logger.info("Firebase initialized (cloud mode)")
    return True
