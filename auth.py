import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pymongo.database import Database

from database import USERS, get_db
from errors import Forbidden, Unauthorized, InternalError
from identity import IdentityError

logger = logging.getLogger(__name__)

# auto_error is off so a missing header maps to 401 rather than FastAPI's default
auth_scheme = HTTPBearer(auto_error=False)


def get_verifier(request: Request):
    verifier = getattr(request.app.state, "verifier", None)
    if verifier is None:
        raise InternalError("Identity verifier not configured")
    return verifier


def verify_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme),
    verifier=Depends(get_verifier),
) -> dict:
    if credentials is None or not credentials.credentials:
        raise Unauthorized()
    try:
        decoded = verifier.verify(credentials.credentials)
    except IdentityError:
        raise Forbidden()
    request.state.decoded = decoded
    return decoded


def require_role(role: str):
    def _checker(decoded: dict = Depends(verify_token), db: Database = Depends(get_db)):
        email = decoded.get("email")
        user = db[USERS].find_one({"email": email}) if email else None
        if not user or user.get("role") != role:
            logger.warning("Role %s required, denied for %s", role, email)
            raise Forbidden()
        return decoded
    return _checker


verify_admin = require_role("admin")
