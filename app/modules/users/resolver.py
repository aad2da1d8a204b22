"""
Authorization resolver: decides whether an identity may perform an action on a
cataloged portal resource, provisioning the identity's account on first contact.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlencode
import logging
import uuid

from pydantic import BaseModel

from app.config import settings
from app.config.resources_config import Action, find_resource_by_path, get_resource_path
from app.modules.users.exceptions import AccountAlreadyExists, AccountStoreUnavailable
from app.modules.users.schemas import (
    DEFAULT_DISPLAY_NAME, Account, PermissionGrant, Role, full_grants
)
from app.modules.users.store import AccountStore

logger = logging.getLogger(__name__)


class AccessDecision(str, Enum):
    ALLOWED = "allowed"
    UNAPPROVED = "unapproved"
    FORBIDDEN = "forbidden"


class RedirectReason(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    UNAPPROVED = "unapproved"
    FORBIDDEN = "forbidden"


class RedirectSignal(BaseModel):
    location: str
    reason: RedirectReason


def superadmin_changes() -> Dict[str, Any]:
    """Fields forced onto an account promoted to superadmin"""
    return {
        "role": Role.SUPERADMIN,
        "approved": True,
        "permission_grants": full_grants(),
    }


def _normalize_email(email: str) -> str:
    normalized = (email or "").strip().lower()
    if not normalized:
        raise ValueError("identity email must not be empty")
    return normalized


class AuthorizationResolver:
    def __init__(
        self,
        store: AccountStore,
        unknown_resource_policy: Optional[str] = None,
        login_path: Optional[str] = None,
        waiting_path: Optional[str] = None,
        dashboard_path: Optional[str] = None,
        forbidden_redirect_path: Optional[str] = None,
    ):
        self.store = store
        self.unknown_resource_policy = unknown_resource_policy or settings.unknown_resource_policy
        self.login_path = login_path or settings.login_path
        self.waiting_path = waiting_path or settings.waiting_path
        self.dashboard_path = dashboard_path or settings.dashboard_path
        self.forbidden_redirect_path = forbidden_redirect_path or settings.forbidden_redirect_path

    def resolve_account(
        self,
        email: str,
        display_name: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> Account:
        """Return the account for an identity, creating it on first contact.

        Presentational fields are refreshed when the caller supplies values that
        differ from the stored ones. Store failures propagate.
        """
        email = _normalize_email(email)
        account = self.store.find_by_email(email)
        if account is None:
            return self._provision(email, display_name, avatar_url)

        changes = {}
        if display_name is not None and display_name != account.display_name:
            changes["display_name"] = display_name
        if avatar_url is not None and avatar_url != account.avatar_url:
            changes["avatar_url"] = avatar_url
        if changes:
            self.store.update_by_email(email, changes)
            account = account.model_copy(update=changes)
        return account

    def _provision(self, email: str, display_name: Optional[str], avatar_url: Optional[str]) -> Account:
        is_first = self.store.count() == 0 and self.store.claim_bootstrap(email)
        now = datetime.now(timezone.utc)
        account = Account(
            id=str(uuid.uuid4()),
            email=email,
            display_name=display_name or DEFAULT_DISPLAY_NAME,
            avatar_url=avatar_url,
            role=Role.SUPERADMIN if is_first else Role.USER,
            approved=is_first,
            permission_grants=full_grants() if is_first else [],
            created_at=now,
            updated_at=now,
        )
        try:
            self.store.insert(account)
        except AccountAlreadyExists:
            # A concurrent first contact for the same email inserted first
            existing = self.store.find_by_email(email)
            if existing is None:
                raise AccountStoreUnavailable(f"account for {email} vanished after conflicting insert")
            if is_first and not existing.is_superadmin:
                changes = superadmin_changes()
                self.store.update_by_email(email, changes)
                existing = existing.model_copy(update=changes)
            return existing

        logger.info(f"Provisioned account {email} as {account.role.value}")
        return account

    def check(self, account: Account, resource_path: str, action: Union[Action, str]) -> AccessDecision:
        """Pure access decision for an already resolved account"""
        action = Action(action)
        if account.is_superadmin:
            return AccessDecision.ALLOWED
        if not account.approved:
            return AccessDecision.UNAPPROVED

        resource_id = find_resource_by_path(resource_path)
        if resource_id is None:
            if self.unknown_resource_policy == "allow":
                logger.warning(f"Allowing {action.value} on uncataloged path {resource_path!r} for {account.email}")
                return AccessDecision.ALLOWED
            return AccessDecision.FORBIDDEN

        grant = account.grant_for(resource_id)
        if grant is not None and action in grant.actions:
            return AccessDecision.ALLOWED
        return AccessDecision.FORBIDDEN

    def authorize(self, email: str, resource_path: str, action: Union[Action, str]) -> bool:
        account = self.resolve_account(email)
        return self.check(account, resource_path, action) is AccessDecision.ALLOWED

    def require_view_or_redirect(
        self,
        email: Optional[str],
        resource_path: str,
        display_name: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> Union[Account, RedirectSignal]:
        """Page-level gate: the account when it may view the page, otherwise where to send it"""
        if not email:
            query = urlencode({"callbackUrl": resource_path})
            return RedirectSignal(
                location=f"{self.login_path}?{query}",
                reason=RedirectReason.UNAUTHENTICATED,
            )

        account = self.resolve_account(email, display_name, avatar_url)
        decision = self.check(account, resource_path, Action.VIEW)
        if decision is AccessDecision.UNAPPROVED:
            return RedirectSignal(location=self.waiting_path, reason=RedirectReason.UNAPPROVED)
        if decision is AccessDecision.FORBIDDEN:
            return RedirectSignal(
                location=self.forbidden_redirect_path or self.waiting_path,
                reason=RedirectReason.FORBIDDEN,
            )
        return account

    def landing_path(self, account: Account) -> Optional[str]:
        if account.is_superadmin:
            return self.dashboard_path
        if not account.approved:
            return None
        for grant in account.permission_grants:
            if Action.VIEW in grant.actions:
                return get_resource_path(grant.resource_id)
        return None

    def first_permitted_resource_path(self, email: str) -> Optional[str]:
        return self.landing_path(self.resolve_account(email))

    def effective_grants(self, account: Account) -> List[PermissionGrant]:
        if account.is_superadmin:
            return full_grants()
        return list(account.permission_grants)
