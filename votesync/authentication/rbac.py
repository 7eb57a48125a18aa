# votesync/authentication/rbac.py

from enum import Enum
from functools import wraps
from flask import current_app, jsonify
from flask_jwt_extended import get_jwt, verify_jwt_in_request
import requests
import logging

logger = logging.getLogger(__name__)

# Role-Based Access Control. When OPA_URL is configured the decision is
# delegated to the policy server, otherwise ROLE_PERMISSIONS is authoritative.


class UserRole(Enum):
    VOTER = "voter"
    COMMITTEE = "committee"
    ADMINISTRATOR = "administrator"


class Permission(Enum):
    VOTE = "vote"
    VIEW_OWN_STATUS = "view_own_status"
    VIEW_RECAPITULATION = "view_recapitulation"


# Role -> Permissions mapping
ROLE_PERMISSIONS = {
    UserRole.VOTER: [
        Permission.VOTE,
        Permission.VIEW_OWN_STATUS,
    ],
    UserRole.COMMITTEE: [
        Permission.VIEW_RECAPITULATION,
    ],
    UserRole.ADMINISTRATOR: [
        Permission.VIEW_RECAPITULATION,
    ],
}

ADMIN_ROLES = (UserRole.COMMITTEE.value, UserRole.ADMINISTRATOR.value)


class RBACService:
    def has_permission(self, user_role, permission):
        try:
            if isinstance(user_role, str):
                user_role = UserRole(user_role)
            if isinstance(permission, str):
                permission = Permission(permission)
        except ValueError:
            return False
        return permission in ROLE_PERMISSIONS.get(user_role, [])


def opa_check_permission(user_role, permission, opa_url):
    data = {
        "input": {
            "role": str(user_role).lower().strip(),
            "permission": str(permission).lower().strip(),
        }
    }
    try:
        response = requests.post(opa_url, json=data, timeout=2)
        if response.status_code == 200:
            return response.json().get("result", False) is True
        logger.warning("OPA returned status %s for %s", response.status_code, data["input"])
    except (requests.RequestException, ValueError) as e:
        logger.warning("OPA request error: %s", e)
    # Fail closed
    return False


def check_permission(user_role, permission):
    perm_str = permission.value if isinstance(permission, Enum) else str(permission)
    opa_url = current_app.config.get('OPA_URL')
    if opa_url:
        return opa_check_permission(user_role, perm_str, opa_url)
    return RBACService().has_permission(user_role, perm_str)


def require_permission(permission):
    """Reject the request unless the session's role carries `permission`."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            role = get_jwt().get('role')
            if not role or not check_permission(role, permission):
                return jsonify({'error': 'Access denied.'}), 403
            return func(*args, **kwargs)
        return wrapper
    return decorator
