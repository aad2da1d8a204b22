"""
Core dependencies for route protection and permission checking
"""

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.config.resources_config import Action
from app.database.supabase_client import get_supabase
from app.modules.auth.schemas import Identity
from app.modules.auth.service import AuthService
from app.modules.users.resolver import AccessDecision, AuthorizationResolver
from app.modules.users.schemas import Account
from app.modules.users.store import AccountStore
from supabase import Client
from typing import Optional
import logging

logger = logging.getLogger(__name__)

# auto_error=False so a missing token is reported as 401, not 403
security = HTTPBearer(auto_error=False)


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_account_store(supabase: Client = Depends(get_supabase)) -> AccountStore:
    return AccountStore(supabase)


def get_resolver(store: AccountStore = Depends(get_account_store)) -> AuthorizationResolver:
    return AuthorizationResolver(store)


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security)
) -> Optional[str]:
    return credentials.credentials if credentials else None


def get_optional_identity(
    token: Optional[str] = Depends(get_bearer_token),
    auth_service: AuthService = Depends(get_auth_service)
) -> Optional[Identity]:
    """Verified identity, or None when the request carries no valid token"""
    if not token:
        return None
    try:
        return auth_service.get_identity(token)
    except HTTPException as e:
        if e.status_code == status.HTTP_401_UNAUTHORIZED:
            return None
        raise


def get_current_identity(identity: Optional[Identity] = Depends(get_optional_identity)) -> Identity:
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


def get_current_account(
    identity: Identity = Depends(get_current_identity),
    resolver: AuthorizationResolver = Depends(get_resolver)
) -> Account:
    """Resolve (and on first contact provision) the caller's account"""
    return resolver.resolve_account(identity.email, identity.display_name, identity.avatar_url)


def require_approved(account: Account = Depends(get_current_account)) -> Account:
    if not account.approved and not account.is_superadmin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is pending approval"
        )
    return account


def require_superadmin(account: Account = Depends(get_current_account)) -> Account:
    if not account.is_superadmin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only super admins can perform this action"
        )
    return account


def require_permission(resource_path: str, action: Action):
    """Factory function to create a page permission check dependency"""
    def check_permission(
        account: Account = Depends(get_current_account),
        resolver: AuthorizationResolver = Depends(get_resolver)
    ) -> Account:
        decision = resolver.check(account, resource_path, action)
        if decision is AccessDecision.UNAPPROVED:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Account is pending approval"
            )
        if decision is AccessDecision.FORBIDDEN:
            logger.info(f"Denied {action.value} on {resource_path} for {account.email}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required: {action.value} on {resource_path}"
            )
        return account
    return check_permission
