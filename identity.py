import base64
import json
import logging
from typing import Any, Dict

import firebase_admin
from firebase_admin import auth, credentials
from firebase_admin.exceptions import FirebaseError

logger = logging.getLogger(__name__)

APP_NAME = "scholarlink"


class IdentityError(Exception):
    pass


def decode_service_key(encoded: str) -> Dict[str, Any]:
    try:
        return json.loads(base64.b64decode(encoded).decode("utf-8"))
    except (ValueError, TypeError) as e:
        raise RuntimeError("FB_SERVICE_KEY is not base64-encoded JSON") from e


class FirebaseVerifier:
    """Verifies Firebase ID tokens and returns their claims."""

    def __init__(self, app: firebase_admin.App):
        self.app = app

    @classmethod
    def from_service_key(cls, encoded: str) -> "FirebaseVerifier":
        if not encoded:
            raise RuntimeError("FB_SERVICE_KEY is not set")
        try:
            app = firebase_admin.get_app(APP_NAME)
        except ValueError:
            cred = credentials.Certificate(decode_service_key(encoded))
            app = firebase_admin.initialize_app(cred, name=APP_NAME)
        return cls(app)

    def verify(self, token: str) -> Dict[str, Any]:
        try:
            return auth.verify_id_token(token, app=self.app)
        except (ValueError, FirebaseError) as e:
            logger.info("ID token rejected: %s", e)
            raise IdentityError(str(e)) from e
