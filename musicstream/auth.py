# auth.py
import logging
from dataclasses import dataclass
from typing import Optional

from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import id_token as google_id_token

from .config import FunctionConfig
from .errors import Unauthorized

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, as established by the identity provider."""

    user_id: str
    email: Optional[str] = None


def _bearer_token(request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def authenticate(request, config: FunctionConfig, message: str = "Unauthorized") -> Identity:
    """
    Verify the Firebase ID token sent as ``Authorization: Bearer <token>``.
    Raises Unauthorized when the header is missing or the token does not verify.
    """
    token = _bearer_token(request)
    if not token:
        raise Unauthorized(message)

    try:
        claims = google_id_token.verify_firebase_token(token, GoogleAuthRequest(), audience=config.project_id)
    except ValueError as e:
        logger.info(f"Rejected ID token: {e}")
        raise Unauthorized(message)

    user_id = (claims or {}).get("sub") or (claims or {}).get("user_id")
    if not user_id:
        raise Unauthorized(message)
    return Identity(user_id=user_id, email=claims.get("email"))
