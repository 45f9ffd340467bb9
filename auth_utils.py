"""
Bearer token handling for access tokens issued by the identity provider
"""

import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional

from backend.utils.errors import AuthError
from config.settings import settings


def _require_secret() -> str:
    if not settings.jwt_secret_key:
        raise ValueError("JWT_SECRET_KEY is not set. Cannot handle JWT tokens.")
    return settings.jwt_secret_key


def create_jwt(email: str, expires_in: timedelta = timedelta(hours=1)) -> str:
    """
    Issue a token shaped like the provider's: `sub` and `email` claims.
    Used by tooling and tests; production tokens come from the provider.
    """
    payload = {
        "sub": email,
        "email": email,
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    if settings.jwt_audience:
        payload["aud"] = settings.jwt_audience
    return jwt.encode(payload, _require_secret(), algorithm=settings.jwt_algorithm)


def decode_jwt(token: str) -> Optional[dict]:
    """Decode a JWT token. Returns None if invalid or expired."""
    secret = _require_secret()
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            options={"verify_aud": bool(settings.jwt_audience)},
        )
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization[len("Bearer "):].strip()
    return token or None


def email_from_authorization(authorization: Optional[str]) -> str:
    """
    Resolve the caller's email from an Authorization header.

    Raises:
        AuthError: If the header is missing, the token is invalid or expired,
            or it carries no email claim
    """
    token = extract_bearer_token(authorization)
    if not token:
        raise AuthError("No authorization header provided")

    try:
        payload = decode_jwt(token)
    except ValueError as e:
        raise AuthError(str(e)) from e
    if not payload:
        raise AuthError("Invalid or expired token")

    email = payload.get("email")
    if not email or not isinstance(email, str):
        raise AuthError("User not authenticated or email not available")
    return email.strip().lower()
