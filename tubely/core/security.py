from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from .errors import Unauthenticated

TOKEN_ISSUER = "tubely-access"
ALGORITHM = "HS256"


def get_bearer_token(authorization: Optional[str]) -> str:
    """
    Pulls the token out of an ``Authorization: Bearer <token>`` header value.

    Raises:
        Unauthenticated: header missing or not a bearer credential
    """
    if not authorization:
        raise Unauthenticated("Missing authorization header")

    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise Unauthenticated("Malformed authorization header")
    return token


def make_jwt(user_id: str, secret: str, expires_in: int = 3600) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "iss": TOKEN_ISSUER,
        "sub": user_id,
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
    }
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def validate_jwt(token: str, secret: str) -> str:
    """
    Verifies a signed access token and returns the owner id it was issued to.

    Raises:
        Unauthenticated: bad signature, expired, wrong issuer or no subject
    """
    if not secret:
        raise Unauthenticated("JWT secret is not configured")
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            issuer=TOKEN_ISSUER,
            options={"require": ["exp", "sub", "iss"]},
        )
    except jwt.PyJWTError as e:
        raise Unauthenticated(f"Invalid token: {e}") from e

    user_id = claims.get("sub")
    if not user_id:
        raise Unauthenticated("Token has no subject")
    return str(user_id)
