from pydantic import BaseModel, EmailStr, field_validator
from typing import Optional, List
from datetime import datetime
from enum import Enum

from app.config.resources_config import ACTIONS, Action, ResourceId, get_full_grants

DEFAULT_DISPLAY_NAME = "User"


class Role(str, Enum):
    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    USER = "user"


class PermissionGrant(BaseModel):
    resource_id: ResourceId
    actions: List[Action] = []

    @field_validator("actions")
    @classmethod
    def normalize_actions(cls, v: List[Action]) -> List[Action]:
        present = set(v)
        return [action for action in ACTIONS if action in present]


def merge_grants(grants: List[PermissionGrant]) -> List[PermissionGrant]:
    """Collapse duplicate resource ids; the last entry wins but keeps the first position."""
    merged = {}
    for grant in grants:
        merged[grant.resource_id] = grant
    return list(merged.values())


def has_any_grant(grants: List[PermissionGrant]) -> bool:
    return any(grant.actions for grant in grants)


def full_grants() -> List[PermissionGrant]:
    return [PermissionGrant(**grant) for grant in get_full_grants()]


class Account(BaseModel):
    id: str
    email: str
    display_name: str = DEFAULT_DISPLAY_NAME
    avatar_url: Optional[str] = None
    role: Role = Role.USER
    approved: bool = False
    permission_grants: List[PermissionGrant] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("permission_grants")
    @classmethod
    def dedupe_grants(cls, v: List[PermissionGrant]) -> List[PermissionGrant]:
        return merge_grants(v)

    @property
    def is_superadmin(self) -> bool:
        return self.role == Role.SUPERADMIN

    def grant_for(self, resource_id: ResourceId) -> Optional[PermissionGrant]:
        for grant in self.permission_grants:
            if grant.resource_id == resource_id:
                return grant
        return None


class UserCreate(BaseModel):
    email: EmailStr
    display_name: str
    avatar_url: Optional[str] = None
    role: Optional[Role] = None
    permission_grants: Optional[List[PermissionGrant]] = None

    @field_validator("display_name")
    @classmethod
    def display_name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("display_name must not be blank")
        return v.strip()


class UserUpdate(BaseModel):
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    role: Optional[Role] = None
    approved: Optional[bool] = None
    permission_grants: Optional[List[PermissionGrant]] = None


class PromoteSuperadminRequest(BaseModel):
    email: EmailStr


class ResourceResponse(BaseModel):
    resource_id: ResourceId
    name: str
    path: str


class ResourceCatalogResponse(BaseModel):
    resources: List[ResourceResponse]
    actions: List[Action]


class UserListResponse(BaseModel):
    users: List[Account]
    resources: List[ResourceResponse]


class UserMutationResponse(BaseModel):
    message: str
    user: Account


class UserStatusResponse(BaseModel):
    approved: bool
    role: Role
    email: str
    display_name: str
    landing_path: Optional[str] = None
