from fastapi import APIRouter, Depends, Query
from app.config.resources_config import Action, find_resource_by_path
from app.modules.auth.schemas import (
    Identity, SessionResponse, MeResponse, AccessCheckResponse, PageAccessResponse
)
from app.modules.auth.service import AuthService
from app.modules.users.resolver import AccessDecision, AuthorizationResolver, RedirectSignal
from app.modules.users.schemas import Account
from app.core.dependencies import (
    get_auth_service,
    get_bearer_token,
    get_current_account,
    get_current_identity,
    get_optional_identity,
    get_resolver,
)
from typing import Optional

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/sign-in", response_model=SessionResponse)
async def sign_in(
    identity: Identity = Depends(get_current_identity),
    resolver: AuthorizationResolver = Depends(get_resolver)
):
    """Sign-in callback: provision the account or sync its profile, then pick a landing page"""
    account = resolver.resolve_account(identity.email, identity.display_name, identity.avatar_url)
    return SessionResponse(account=account, landing_path=resolver.landing_path(account))


@router.post("/logout", status_code=200)
async def logout(
    token: Optional[str] = Depends(get_bearer_token),
    identity: Identity = Depends(get_current_identity),
    service: AuthService = Depends(get_auth_service)
):
    """Logout and forget the cached identity"""
    service.logout(token)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=MeResponse)
async def get_me(
    account: Account = Depends(get_current_account),
    resolver: AuthorizationResolver = Depends(get_resolver)
):
    """Current account and its effective permissions (for frontend UI)"""
    return MeResponse(
        account=account,
        permissions=resolver.effective_grants(account),
        landing_path=resolver.landing_path(account),
    )


@router.get("/access", response_model=AccessCheckResponse)
async def check_access(
    path: str = Query(..., min_length=1),
    action: Action = Query(Action.VIEW),
    account: Account = Depends(get_current_account),
    resolver: AuthorizationResolver = Depends(get_resolver)
):
    """Whether the caller may perform `action` on the page at `path`"""
    decision = resolver.check(account, path, action)
    return AccessCheckResponse(
        allowed=decision is AccessDecision.ALLOWED,
        decision=decision,
        path=path,
        action=action,
        resource_id=find_resource_by_path(path),
    )


@router.get("/page-access", response_model=PageAccessResponse)
async def check_page_access(
    path: str = Query(..., min_length=1),
    identity: Optional[Identity] = Depends(get_optional_identity),
    resolver: AuthorizationResolver = Depends(get_resolver)
):
    """Page gate: the account when it may view `path`, otherwise the redirect to follow"""
    if identity is None:
        result = resolver.require_view_or_redirect(None, path)
    else:
        result = resolver.require_view_or_redirect(
            identity.email, path, identity.display_name, identity.avatar_url
        )
    if isinstance(result, RedirectSignal):
        return PageAccessResponse(allowed=False, redirect=result)
    return PageAccessResponse(allowed=True, account=result)
