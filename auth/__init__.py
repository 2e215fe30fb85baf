"""Authentication and authorization helpers.

This module provides:
1. Bearer JWT sessions whose subject is the user id
2. Guards used at the entry of protected operations (require_auth, require_store_owner)
3. The capability check for trusted internal callers such as the payment pipeline
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt

from config import settings_conf

# Configure logging
logger = logging.getLogger(__name__)

# Constants
JWT_ALGORITHM = "HS256"
JWT_SECRET = settings_conf.get('jwt_secret') or secrets.token_urlsafe(32)
SERVICE_TOKEN_HEADER = "X-Service-Token"

class AuthError(Exception):
    """Base exception for authentication errors."""
    pass

class SessionExpiredError(AuthError):
    """Raised when a session token has expired."""
    pass

class InvalidTokenError(AuthError):
    """Raised when a session token cannot be verified."""
    pass

class UnauthorizedError(AuthError):
    """Raised when the caller may not perform the requested operation."""
    pass

def create_access_token(subject: str, expires_minutes: Optional[int] = None) -> str:
    """Issue a session token for a user.

    Args:
        subject: The user id the token authenticates
        expires_minutes: Lifetime, defaults to the jwt_expiry_minutes setting

    Returns:
        Encoded JWT
    """
    expires_minutes = expires_minutes or settings_conf['jwt_expiry_minutes']
    now = datetime.now(timezone.utc)
    claims = {
        'sub': subject,
        'iat': now,
        'exp': now + timedelta(minutes=expires_minutes)
    }
    return jwt.encode(claims, JWT_SECRET, algorithm=JWT_ALGORITHM)

def decode_access_token(token: str) -> Dict[str, Any]:
    """Verify a session token and return its claims.

    Raises:
        SessionExpiredError: If the token has expired
        InvalidTokenError: If the token is malformed, tampered with or has no subject
    """
    try:
        claims = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise SessionExpiredError("Session has expired")
    except JWTError as e:
        raise InvalidTokenError(f"Invalid session token: {e}")

    if not claims.get('sub'):
        raise InvalidTokenError("Session token has no subject")
    return claims

def require_auth(caller_id: Optional[str]) -> str:
    """Guard for operations that need an authenticated caller.

    Returns:
        The caller's user id

    Raises:
        UnauthorizedError: If there is no authenticated caller
    """
    if not caller_id:
        raise UnauthorizedError("Authentication required")
    return caller_id

async def require_store_owner(store_id, caller_id: Optional[str], session) -> Dict[str, Any]:
    """Guard for seller operations on a store.

    A store that does not exist is reported the same way as one owned by
    someone else.

    Args:
        store_id: The store being accessed
        caller_id: Authenticated user id
        session: Repository session used to load the store

    Returns:
        The store record

    Raises:
        UnauthorizedError: If the caller is not authenticated or does not own the store
    """
    caller_id = require_auth(caller_id)
    store = await session.get_store(store_id)
    if not store or store['user_id'] != caller_id:
        logger.warning(f"User {caller_id} denied access to store {store_id}")
        raise UnauthorizedError("Unauthorized: you don't own this store")
    return store

# FastAPI security scheme
auth_scheme = HTTPBearer(
    auto_error=True,  # Return 401 automatically if token is missing
    description="JWT Bearer token required"
)

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(auth_scheme)
) -> str:
    """FastAPI dependency for getting the authenticated user id.

    Raises:
        HTTPException: If authentication fails
    """
    try:
        return decode_access_token(credentials.credentials)['sub']
    except SessionExpiredError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session has expired"
        )
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e)
        )

async def require_internal_service(
    service_token: Optional[str] = Header(None, alias=SERVICE_TOKEN_HEADER)
) -> None:
    """FastAPI dependency admitting only trusted internal callers.

    An empty internal_service_token setting disables the internal surface.

    Raises:
        HTTPException: If the service token is missing or wrong
    """
    expected = settings_conf.get('internal_service_token')
    if not expected or not service_token or not secrets.compare_digest(service_token, expected):
        logger.warning("Rejected internal call without a valid service token")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Internal endpoint"
        )

# Export public interface
__all__ = [
    'AuthError',
    'SessionExpiredError',
    'InvalidTokenError',
    'UnauthorizedError',
    'create_access_token',
    'decode_access_token',
    'require_auth',
    'require_store_owner',
    'auth_scheme',
    'get_current_user',
    'require_internal_service',
    'SERVICE_TOKEN_HEADER'
]
