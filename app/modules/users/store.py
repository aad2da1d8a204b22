from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
import logging

from postgrest.exceptions import APIError
from supabase import Client

from app.config import settings
from app.config.resources_config import Action, ResourceId
from app.modules.users.exceptions import AccountAlreadyExists, AccountStoreUnavailable
from app.modules.users.schemas import Account, PermissionGrant

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
BOOTSTRAP_SENTINEL_ID = "superadmin"

_KNOWN_RESOURCE_IDS = {resource_id.value for resource_id in ResourceId}
_KNOWN_ACTIONS = {action.value for action in Action}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _serialize_grants(grants: List[Any]) -> List[dict]:
    serialized = []
    for grant in grants:
        if not isinstance(grant, PermissionGrant):
            grant = PermissionGrant(**grant)
        serialized.append(grant.model_dump(mode="json"))
    return serialized


def serialize_changes(changes: Dict[str, Any]) -> Dict[str, Any]:
    """Turn a partial Account update into a JSON-ready row patch stamped with updated_at"""
    update_data = {}
    for key, value in changes.items():
        if key == "permission_grants":
            update_data[key] = _serialize_grants(value)
        elif isinstance(value, Enum):
            update_data[key] = value.value
        else:
            update_data[key] = value
    update_data["updated_at"] = _now()
    return update_data


def row_to_account(row: Dict[str, Any]) -> Account:
    """Build an Account from a stored row, dropping grants for resources or actions no longer cataloged"""
    grants = []
    for grant in row.get("permission_grants") or []:
        resource_id = grant.get("resource_id")
        if resource_id not in _KNOWN_RESOURCE_IDS:
            logger.warning(f"Ignoring grant for unknown resource {resource_id!r} on account {row.get('email')}")
            continue
        actions = grant.get("actions") or []
        unknown = [a for a in actions if a not in _KNOWN_ACTIONS]
        if unknown:
            logger.warning(f"Ignoring unknown actions {unknown} on {resource_id!r} for account {row.get('email')}")
        grants.append({**grant, "actions": [a for a in actions if a in _KNOWN_ACTIONS]})
    return Account(**{**row, "permission_grants": grants})


class AccountStore:
    """Account documents in the Supabase `users` table, keyed by lowercased email.

    Every client failure is raised as AccountStoreUnavailable so that callers
    can never mistake a store outage for an empty result.
    """

    def __init__(
        self,
        supabase: Client,
        table: Optional[str] = None,
        bootstrap_table: Optional[str] = None,
    ):
        self.supabase = supabase
        self.table = table or settings.accounts_table
        self.bootstrap_table = bootstrap_table or settings.bootstrap_table

    def _execute(self, operation: str, query):
        try:
            return query.execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise AccountAlreadyExists(f"{operation}: {e.message}") from e
            logger.error(f"Account store error during {operation}: {e}")
            raise AccountStoreUnavailable(f"{operation} failed") from e
        except Exception as e:
            logger.error(f"Account store unreachable during {operation}: {e}")
            raise AccountStoreUnavailable(f"{operation} failed") from e

    def find_by_email(self, email: str) -> Optional[Account]:
        result = self._execute(
            "find_by_email",
            self.supabase.table(self.table)
                .select("*")
                .eq("email", email.strip().lower())
                .limit(1),
        )
        if not result.data:
            return None
        return row_to_account(result.data[0])

    def find_by_id(self, account_id: str) -> Optional[Account]:
        result = self._execute(
            "find_by_id",
            self.supabase.table(self.table)
                .select("*")
                .eq("id", account_id)
                .limit(1),
        )
        if not result.data:
            return None
        return row_to_account(result.data[0])

    def list_all(self) -> List[Account]:
        result = self._execute(
            "list_all",
            self.supabase.table(self.table)
                .select("*")
                .order("created_at"),
        )
        return [row_to_account(row) for row in result.data or []]

    def count(self) -> int:
        result = self._execute(
            "count",
            self.supabase.table(self.table)
                .select("id", count="exact")
                .limit(1),
        )
        return result.count or 0

    def insert(self, account: Account) -> str:
        row = account.model_dump(mode="json")
        result = self._execute("insert", self.supabase.table(self.table).insert(row))
        if not result.data:
            raise AccountStoreUnavailable("insert returned no row")
        return result.data[0]["id"]

    def update_by_email(self, email: str, changes: Dict[str, Any]) -> int:
        """Apply a partial update and return the number of matched rows"""
        update_data = serialize_changes(changes)
        result = self._execute(
            "update_by_email",
            self.supabase.table(self.table)
                .update(update_data)
                .eq("email", email.strip().lower()),
        )
        return len(result.data or [])

    def delete_by_id(self, account_id: str) -> int:
        result = self._execute(
            "delete_by_id",
            self.supabase.table(self.table)
                .delete()
                .eq("id", account_id),
        )
        return len(result.data or [])

    def claim_bootstrap(self, email: str) -> bool:
        """Atomically claim the single superadmin bootstrap slot.

        Returns True only for the one caller whose sentinel insert lands first.
        """
        try:
            self._execute(
                "claim_bootstrap",
                self.supabase.table(self.bootstrap_table).insert({
                    "id": BOOTSTRAP_SENTINEL_ID,
                    "email": email.strip().lower(),
                    "created_at": _now(),
                }),
            )
        except AccountAlreadyExists:
            return False
        return True
