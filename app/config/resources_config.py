"""
Resource Catalog Configuration
Defines the protected areas of the admin portal and the actions a grant may hold.
Used by the authorization resolver to map a requested path to a resource, and by
account provisioning to build full grants for superadmins.
"""

from enum import Enum
from typing import Dict, List, Optional


class Action(str, Enum):
    VIEW = "view"
    ADD = "add"
    EDIT = "edit"
    DELETE = "delete"


# Canonical order, used when normalizing action lists
ACTIONS: List[Action] = [Action.VIEW, Action.ADD, Action.EDIT, Action.DELETE]


class ResourceId(str, Enum):
    DASHBOARD = "dashboard"
    TICKETS = "tickets"
    EXPENSES = "expenses"
    STATIONS = "stations"
    EQUIPMENT = "equipment"
    INTERNET_CONNECTIONS = "internet-connections"
    USERS = "users"
    SETTINGS = "settings"
    SEND_MESSAGE = "send-message"
    EQUIPMENT_REQUESTS = "equipment-requests"
    MANAGE_REQUESTS = "manage-requests"
    STATION_TASKS = "station-tasks"


# Ordered catalog: resource id -> display name and page path
RESOURCES = {
    ResourceId.DASHBOARD: {"name": "Dashboard", "path": "/admin"},
    ResourceId.TICKETS: {"name": "Tickets", "path": "/admin/tickets"},
    ResourceId.EXPENSES: {"name": "Expenses", "path": "/admin/expenses"},
    ResourceId.STATIONS: {"name": "Stations", "path": "/admin/stations"},
    ResourceId.EQUIPMENT: {"name": "Equipment", "path": "/admin/equipment"},
    ResourceId.INTERNET_CONNECTIONS: {"name": "Internet Connections", "path": "/admin/internet-connections"},
    ResourceId.USERS: {"name": "User Management", "path": "/admin/users"},
    ResourceId.SETTINGS: {"name": "Settings", "path": "/admin/settings"},
    ResourceId.SEND_MESSAGE: {"name": "Send Message", "path": "/admin/send-message"},
    ResourceId.EQUIPMENT_REQUESTS: {"name": "Request Equipment", "path": "/admin/equipment-requests"},
    ResourceId.MANAGE_REQUESTS: {"name": "Manage Requests", "path": "/admin/manage-requests"},
    ResourceId.STATION_TASKS: {"name": "Station Tasks", "path": "/admin/station-tasks"},
}

USERS_PATH = RESOURCES[ResourceId.USERS]["path"]


def _normalize_path(path: str) -> str:
    # A single trailing slash is not significant ("/admin/tickets/" == "/admin/tickets")
    if len(path) > 1 and path.endswith("/"):
        return path[:-1]
    return path


_RESOURCES_BY_PATH: Dict[str, ResourceId] = {
    _normalize_path(config["path"]): resource_id for resource_id, config in RESOURCES.items()
}


def find_resource_by_path(path: str) -> Optional[ResourceId]:
    """Return the catalog resource for a page path, or None when the path is not cataloged"""
    if not path:
        return None
    return _RESOURCES_BY_PATH.get(_normalize_path(path))


def get_resource_path(resource_id: ResourceId) -> str:
    return RESOURCES[resource_id]["path"]


def get_resource_catalog() -> List[dict]:
    """
    Returns the catalog in display order
    Format: [{"resource_id": "tickets", "name": "Tickets", "path": "/admin/tickets"}, ...]
    """
    return [
        {"resource_id": resource_id.value, "name": config["name"], "path": config["path"]}
        for resource_id, config in RESOURCES.items()
    ]


def get_full_grants() -> List[dict]:
    """Every catalog resource with all four actions, as granted to superadmins"""
    return [
        {"resource_id": resource_id.value, "actions": [action.value for action in ACTIONS]}
        for resource_id in RESOURCES
    ]
