import hashlib
import time
from supabase import Client
from app.config import settings
from app.modules.auth.schemas import Identity
from fastapi import HTTPException
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)

# In-memory cache for verified identities to reduce Supabase auth calls (e.g. many parallel requests with same token)
_IDENTITY_CACHE: Dict[str, tuple] = {}
_IDENTITY_CACHE_MAX_SIZE = 500


def clear_identity_cache():
    _IDENTITY_CACHE.clear()


def identity_from_user(user: Any) -> Identity:
    """Map a Supabase Auth user (email or Google OAuth sign-in) to a portal identity"""
    if not user.email:
        raise HTTPException(status_code=401, detail="Identity has no verified email")
    metadata = user.user_metadata or {}
    return Identity(
        email=user.email,
        display_name=metadata.get("full_name") or metadata.get("name"),
        avatar_url=metadata.get("avatar_url") or metadata.get("picture"),
    )


class AuthService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_identity(self, token: str) -> Identity:
        """Verify a Supabase Auth token and return the caller's identity. Uses short TTL cache."""
        cache_key = hashlib.sha256(token.encode()).hexdigest()
        now = time.monotonic()
        cached: Optional[tuple] = _IDENTITY_CACHE.get(cache_key)
        if cached is not None:
            identity, expiry = cached
            if now < expiry:
                return identity
            _IDENTITY_CACHE.pop(cache_key, None)

        try:
            user_response = self.supabase.auth.get_user(jwt=token)
        except Exception as e:
            error_msg = str(e)
            logger.info(f"Token verification failed: {error_msg}")
            if "JWT" in error_msg or "expired" in error_msg.lower() or "invalid" in error_msg.lower():
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            raise HTTPException(status_code=401, detail="Authentication failed")

        if not user_response or not user_response.user:
            raise HTTPException(status_code=401, detail="Invalid or expired token")

        identity = identity_from_user(user_response.user)
        if len(_IDENTITY_CACHE) < _IDENTITY_CACHE_MAX_SIZE:
            _IDENTITY_CACHE[cache_key] = (identity, now + settings.identity_cache_ttl_seconds)
        return identity

    def logout(self, token: str) -> bool:
        """Drop the cached identity and sign out of Supabase Auth"""
        _IDENTITY_CACHE.pop(hashlib.sha256(token.encode()).hexdigest(), None)
        try:
            # Supabase Auth tokens are stateless JWTs; they expire on their own
            self.supabase.auth.sign_out()
            return True
        except Exception as e:
            logger.warning(f"Supabase sign_out failed: {e}")
            return False
