from fastapi import APIRouter, Depends
from app.config.resources_config import ACTIONS, USERS_PATH, Action, get_resource_catalog
from app.modules.users.resolver import AuthorizationResolver
from app.modules.users.schemas import (
    Account, UserCreate, UserUpdate, PromoteSuperadminRequest,
    UserListResponse, UserMutationResponse, UserStatusResponse,
    ResourceCatalogResponse, ResourceResponse
)
from app.modules.users.service import UserService
from app.modules.users.store import AccountStore
from app.core.dependencies import (
    get_account_store,
    get_current_account,
    get_resolver,
    require_permission,
    require_superadmin,
)

router = APIRouter(prefix="/users", tags=["users"])


def get_user_service(
    store: AccountStore = Depends(get_account_store),
    resolver: AuthorizationResolver = Depends(get_resolver)
) -> UserService:
    return UserService(store, resolver)


@router.get("/me", response_model=UserStatusResponse)
async def get_my_status(
    account: Account = Depends(get_current_account),
    resolver: AuthorizationResolver = Depends(get_resolver)
):
    """Current user's approval status; provisions the account on first contact"""
    return UserStatusResponse(
        approved=account.approved or account.is_superadmin,
        role=account.role,
        email=account.email,
        display_name=account.display_name,
        landing_path=resolver.landing_path(account),
    )


@router.get("/resources", response_model=ResourceCatalogResponse)
async def list_resources(account: Account = Depends(get_current_account)):
    return ResourceCatalogResponse(
        resources=[ResourceResponse(**r) for r in get_resource_catalog()],
        actions=ACTIONS,
    )


@router.get("", response_model=UserListResponse)
async def list_users(
    account: Account = Depends(require_permission(USERS_PATH, Action.VIEW)),
    service: UserService = Depends(get_user_service)
):
    """List all accounts with the resource catalog"""
    return service.list_users()


@router.post("", response_model=UserMutationResponse)
async def create_or_update_user(
    user_data: UserCreate,
    account: Account = Depends(get_current_account),
    service: UserService = Depends(get_user_service)
):
    """Create a user, or update the existing user with the same email"""
    return service.create_or_update_user(account, user_data)


@router.post("/promote-superadmin", response_model=UserMutationResponse)
async def promote_superadmin(
    request: PromoteSuperadminRequest,
    account: Account = Depends(require_superadmin),
    service: UserService = Depends(get_user_service)
):
    """Promote an existing user to superadmin with full permissions"""
    return service.promote_to_superadmin(request.email)


@router.get("/{user_id}", response_model=Account)
async def get_user(
    user_id: str,
    account: Account = Depends(require_permission(USERS_PATH, Action.VIEW)),
    service: UserService = Depends(get_user_service)
):
    """Get user by id or email"""
    return service.get_user(user_id)


@router.put("/{user_id}", response_model=UserMutationResponse)
async def update_user(
    user_id: str,
    user_data: UserUpdate,
    account: Account = Depends(get_current_account),
    service: UserService = Depends(get_user_service)
):
    """Update profile fields, or role/approval/permissions (super admins only)"""
    return service.update_user(account, user_id, user_data)


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: str,
    account: Account = Depends(get_current_account),
    service: UserService = Depends(get_user_service)
):
    """Delete user (super admins only)"""
    service.delete_user(account, user_id)
    return None
