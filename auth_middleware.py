"""Authentication dependency backed by the Supabase identity provider."""
import hashlib
import logging

from fastapi import HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from supabase import Client

from database import get_supabase_admin
from cache import get as cache_get, set as cache_set

logger = logging.getLogger(__name__)

security = HTTPBearer()

USER_CACHE_TTL = 60


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Client = Depends(get_supabase_admin)
) -> dict:
    """Resolve the bearer token to the identity-provider user.

    Returns ``{"id": ..., "email": ...}``; ``id`` is the ``auth_id`` stored in event_admins.
    """
    token = credentials.credentials
    cache_key = f"auth:{hashlib.sha256(token.encode()).hexdigest()}"
    cached_user = cache_get(cache_key)
    if cached_user is not None:
        return cached_user

    try:
        response = db.auth.get_user(token)
    except Exception as e:
        logger.info(f"Token rejected by identity provider: {e}")
        response = None

    user = getattr(response, "user", None)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    current_user = {"id": str(user.id), "email": getattr(user, "email", None)}
    cache_set(cache_key, current_user, ttl=USER_CACHE_TTL)
    return current_user
