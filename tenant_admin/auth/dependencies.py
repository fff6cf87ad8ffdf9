"""
FastAPI dependency resolving the caller identity from a bearer token.
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config import get_settings
from ..errors import Unauthenticated
from .jwt_auth import TokenIssuer

security = HTTPBearer(auto_error=False)


def get_token_issuer() -> TokenIssuer:
    return TokenIssuer(get_settings())


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> int:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise Unauthenticated("Authorization header with bearer token is required")
    return issuer.verify(credentials.credentials)
