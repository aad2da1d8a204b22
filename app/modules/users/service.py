from datetime import datetime, timezone
from typing import Any, Dict
import logging
import uuid

from fastapi import HTTPException

from app.config.resources_config import USERS_PATH, Action, get_resource_catalog
from app.modules.users.resolver import AccessDecision, AuthorizationResolver, superadmin_changes
from app.modules.users.schemas import (
    Account, Role, UserCreate, UserUpdate, UserListResponse,
    UserMutationResponse, ResourceResponse, full_grants, has_any_grant, merge_grants
)
from app.modules.users.store import AccountStore

logger = logging.getLogger(__name__)

ADMIN_NEEDS_GRANT = "Admin users must have at least one page permission. Grant permissions before assigning the admin role."


class UserService:
    def __init__(self, store: AccountStore, resolver: AuthorizationResolver):
        self.store = store
        self.resolver = resolver

    def _can(self, account: Account, action: Action) -> bool:
        return self.resolver.check(account, USERS_PATH, action) is AccessDecision.ALLOWED

    def _reload(self, email: str) -> Account:
        account = self.store.find_by_email(email)
        if account is None:
            raise HTTPException(status_code=404, detail="User not found")
        return account

    def list_users(self) -> UserListResponse:
        """All accounts, with the resource catalog for the permission editor"""
        users = self.store.list_all()
        logger.debug(f"Listing {len(users)} accounts")
        return UserListResponse(
            users=users,
            resources=[ResourceResponse(**r) for r in get_resource_catalog()],
        )

    def get_user(self, user_id: str) -> Account:
        """Get account by id, or by email when the identifier contains '@'"""
        if "@" in user_id:
            account = self.store.find_by_email(user_id)
        else:
            account = self.store.find_by_id(user_id)
        if account is None:
            raise HTTPException(status_code=404, detail="User not found")
        return account

    def create_or_update_user(self, current: Account, user_data: UserCreate) -> UserMutationResponse:
        """Create an account by email, or refresh it when it already exists.

        Superadmins may set role and grants. Holders of `add` on the users page
        may only create plain users; renaming someone else's existing account
        also takes `edit`.
        """
        is_super = current.is_superadmin
        if not is_super:
            if not self._can(current, Action.ADD):
                raise HTTPException(
                    status_code=403,
                    detail="You do not have permission to add users. Only super admins or users with add permission on the Users page can add users."
                )
            if user_data.permission_grants:
                raise HTTPException(status_code=403, detail="Only super admins can set page permissions when creating users.")
            if user_data.role is not None and user_data.role != Role.USER:
                raise HTTPException(status_code=403, detail="Only super admins can set user roles when creating users.")

        email = user_data.email.strip().lower()
        existing = self.store.find_by_email(email)

        if existing is None:
            role = (user_data.role or Role.USER) if is_super else Role.USER
            grants = merge_grants(user_data.permission_grants or []) if is_super else []
        else:
            if not is_super and current.email != existing.email and not self._can(current, Action.EDIT):
                raise HTTPException(status_code=403, detail="You do not have permission to edit this user")
            # Omitted role or grants keep the stored values
            role = (user_data.role or existing.role) if is_super else existing.role
            if is_super and user_data.permission_grants is not None:
                grants = merge_grants(user_data.permission_grants)
            else:
                grants = existing.permission_grants

        if is_super and role == Role.ADMIN and not has_any_grant(grants):
            raise HTTPException(status_code=400, detail=ADMIN_NEEDS_GRANT)
        if role == Role.SUPERADMIN:
            grants = full_grants()

        if existing is None:
            now = datetime.now(timezone.utc)
            account = Account(
                id=str(uuid.uuid4()),
                email=email,
                display_name=user_data.display_name,
                avatar_url=user_data.avatar_url,
                role=role,
                approved=is_super and role in (Role.ADMIN, Role.SUPERADMIN),
                permission_grants=grants,
                created_at=now,
                updated_at=now,
            )
            self.store.insert(account)
            logger.info(f"{current.email} created account {email} ({role.value})")
            return UserMutationResponse(message="User created successfully", user=account)

        changes: Dict[str, Any] = {"display_name": user_data.display_name}
        if user_data.avatar_url is not None:
            changes["avatar_url"] = user_data.avatar_url
        if is_super:
            changes["role"] = role
            changes["permission_grants"] = grants
        self.store.update_by_email(email, changes)
        logger.info(f"{current.email} updated account {email}")
        return UserMutationResponse(message="User updated successfully", user=self._reload(email))

    def update_user(self, current: Account, user_id: str, user_data: UserUpdate) -> UserMutationResponse:
        target = self.get_user(user_id)

        privileged = (
            user_data.role is not None
            or user_data.approved is not None
            or user_data.permission_grants is not None
        )
        if privileged and not current.is_superadmin:
            raise HTTPException(status_code=403, detail="Only super admins can manage user permissions, roles, and approvals")
        if not current.is_superadmin and current.email != target.email and not self._can(current, Action.EDIT):
            raise HTTPException(status_code=403, detail="You do not have permission to edit this user")

        changes: Dict[str, Any] = {}
        if user_data.display_name is not None:
            changes["display_name"] = user_data.display_name.strip()
        if user_data.avatar_url is not None:
            changes["avatar_url"] = user_data.avatar_url

        if current.is_superadmin:
            if user_data.permission_grants is not None:
                changes["permission_grants"] = merge_grants(user_data.permission_grants)
            if user_data.role is not None:
                changes["role"] = user_data.role
                # Promotion to a privileged role implies approval
                if user_data.role in (Role.ADMIN, Role.SUPERADMIN):
                    changes["approved"] = True
                if user_data.role == Role.SUPERADMIN:
                    changes.update(superadmin_changes())
            if user_data.approved is not None:
                changes["approved"] = user_data.approved

        final_role = changes.get("role", target.role)
        final_grants = changes.get("permission_grants", target.permission_grants)
        if final_role == Role.ADMIN and not has_any_grant(final_grants):
            raise HTTPException(status_code=400, detail=ADMIN_NEEDS_GRANT)

        if not changes:
            return UserMutationResponse(message="No changes", user=target)

        self.store.update_by_email(target.email, changes)
        logger.info(f"{current.email} updated account {target.email}: {sorted(changes)}")
        return UserMutationResponse(message="User updated successfully", user=self._reload(target.email))

    def delete_user(self, current: Account, user_id: str) -> bool:
        if not current.is_superadmin:
            raise HTTPException(status_code=403, detail="Only super admins can delete users")
        target = self.get_user(user_id)
        deleted = self.store.delete_by_id(target.id) > 0
        logger.info(f"{current.email} deleted account {target.email}")
        return deleted

    def promote_to_superadmin(self, email: str) -> UserMutationResponse:
        """Force role=superadmin, approved=true and full grants on an existing account"""
        target = self.get_user(email.strip().lower())
        self.store.update_by_email(target.email, superadmin_changes())
        logger.info(f"Promoted account {target.email} to superadmin")
        return UserMutationResponse(
            message="User promoted to superadmin successfully",
            user=self._reload(target.email),
        )
