from pydantic import BaseModel, field_validator
from typing import Optional, List

from app.config.resources_config import Action, ResourceId
from app.modules.users.resolver import AccessDecision, RedirectSignal
from app.modules.users.schemas import Account, PermissionGrant


class Identity(BaseModel):
    email: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.strip().lower()


class SessionResponse(BaseModel):
    account: Account
    landing_path: Optional[str] = None


class MeResponse(BaseModel):
    account: Account
    permissions: List[PermissionGrant]
    landing_path: Optional[str] = None


class AccessCheckResponse(BaseModel):
    allowed: bool
    decision: AccessDecision
    path: str
    action: Action
    resource_id: Optional[ResourceId] = None


class PageAccessResponse(BaseModel):
    allowed: bool
    redirect: Optional[RedirectSignal] = None
    account: Optional[Account] = None
