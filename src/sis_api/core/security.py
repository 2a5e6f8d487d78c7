"""Bearer token verification.

End-user tokens are issued by the hosted auth service; this module only
verifies them and maps them to a profile id.
"""

import uuid

import jwt

ACCESS_TOKEN_TYPE = "access"


def decode_token(token: str, secret_key: str, algorithm: str = "HS256") -> dict:
    """Decode and validate a JWT token.

    Raises:
        jwt.ExpiredSignatureError: If the token has expired.
        jwt.InvalidTokenError: If the token is invalid.
    """
    return jwt.decode(token, secret_key, algorithms=[algorithm])


def profile_id_from_token(token: str, secret_key: str, algorithm: str = "HS256") -> uuid.UUID:
    """Return the profile id carried by a valid access token.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, not an
            access token, or its subject is not a UUID.
    """
    payload = decode_token(token, secret_key, algorithm)
    if payload.get("type") != ACCESS_TOKEN_TYPE:
        msg = "Not an access token"
        raise jwt.InvalidTokenError(msg)
    try:
        return uuid.UUID(str(payload.get("sub")))
    except ValueError as exc:
        msg = "Token subject is not a profile id"
        raise jwt.InvalidTokenError(msg) from exc
