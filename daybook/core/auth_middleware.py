"""Authentication dependencies for FastAPI."""

import asyncio
import logging
from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from daybook.db.supabase_client import get_supabase

logger = logging.getLogger(__name__)

# HTTP Bearer scheme for Authorization header
security = HTTPBearer(auto_error=False)


class AuthContext:
    """Context object containing authenticated user info."""

    def __init__(self, user_id: UUID, token: str, email: Optional[str] = None):
        self.user_id = user_id
        self.token = token
        self.email = email


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[AuthContext]:
    """
    Validate the Supabase JWT from the Authorization header.

    Returns None if no valid auth is present.
    """
    if not credentials:
        return None

    token = credentials.credentials

    try:
        client = get_supabase()

        # Validates the JWT signature and expiration
        auth_response = await asyncio.to_thread(client.auth.get_user, token)

        if not auth_response or not auth_response.user:
            return None

        return AuthContext(
            user_id=UUID(str(auth_response.user.id)),
            token=token,
            email=auth_response.user.email,
        )

    except Exception as e:
        logger.warning(f"Auth error: {e}")
        return None


async def require_auth(
    auth: Optional[AuthContext] = Depends(get_current_user),
) -> AuthContext:
    """Require authentication. Raises 401 if not authenticated."""
    if not auth:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return auth
