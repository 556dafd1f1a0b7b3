"""Bearer-token gate for the admin and client caller classes."""

import secrets
from typing import Optional

from fastapi import Header

from .config import settings
from .errors import AuthorizationError


def extract_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    if authorization.startswith("Bearer "):
        return authorization[len("Bearer "):].strip()
    return authorization.strip()


def check_token(authorization: Optional[str], expected: Optional[str]) -> None:
    token = extract_token(authorization)
    if not token or not expected:
        raise AuthorizationError()
    if not secrets.compare_digest(token.encode(), expected.encode()):
        raise AuthorizationError()


def require_admin(authorization: Optional[str] = Header(None)) -> None:
    check_token(authorization, settings.admin_token)


def require_client(authorization: Optional[str] = Header(None)) -> None:
    check_token(authorization, settings.user_token)
