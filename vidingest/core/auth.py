from __future__ import annotations

from typing import Mapping, Optional

import jwt
from fastapi import Depends, HTTPException, Request, status

from .config import Settings, get_settings


class AuthenticationError(Exception):
    """Raised when a request carries no usable bearer token."""

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


def extract_bearer_token(headers: Mapping[str, str]) -> str:
    header = headers.get("authorization") or headers.get("Authorization")
    if not header:
        raise AuthenticationError("missing_authorization")
    scheme, _, token = header.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("malformed_authorization")
    return token.strip()


def validate_principal(
    token: str,
    secret: str,
    *,
    algorithm: str = "HS256",
    issuer: Optional[str] = None,
    audience: Optional[str] = None,
) -> str:
    """Decode ``token`` and return the user id held in its ``sub`` claim."""
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            audience=audience,
            issuer=issuer,
            options={"verify_aud": audience is not None, "require": ["sub"]},
        )
    except jwt.PyJWTError as exc:
        raise AuthenticationError("invalid_token") from exc

    subject = payload.get("sub")
    if not subject:
        raise AuthenticationError("invalid_token")
    return str(subject)


async def get_current_user_id(request: Request, settings: Settings = Depends(get_settings)) -> str:
    try:
        token = extract_bearer_token(request.headers)
        user_id = validate_principal(
            token,
            settings.secrets.jwt_secret,
            algorithm=settings.jwt_algorithm,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
        )
    except AuthenticationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.code,
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
    request.state.user_id = user_id
    return user_id


__all__ = ["AuthenticationError", "extract_bearer_token", "validate_principal", "get_current_user_id"]
