"""
Firebase Admin credentials loading.

FIREBASE_CREDENTIALS = content of the service account JSON (inline, minified
on one line), so the key file never has to live inside the project.
"""

import json
import logging
import os

from firebase_admin import credentials

logger = logging.getLogger(__name__)


def get_firebase_credentials():
    """
    Build a credentials.Certificate from FIREBASE_CREDENTIALS.

    Returns:
        credentials.Certificate, or None when not configured/invalid
        (callers fall back to application-default credentials).
    """
    json_str = os.getenv("FIREBASE_CREDENTIALS", "").strip()
    if not json_str:
        return None

    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        logger.error(f"FIREBASE_CREDENTIALS: invalid JSON ({e})")
        return None

    # .env files often carry the PEM with escaped newlines
    if isinstance(data.get("private_key"), str):
        data["private_key"] = data["private_key"].replace("\\n", "\n")

    try:
        return credentials.Certificate(data)
    except ValueError as e:
        logger.error(f"FIREBASE_CREDENTIALS: not a service account key ({e})")
        return None
