"""User operations: list, get, create, update, delete.

Users are addressed by object id or userPrincipalName; both are accepted by
Graph in the ``/users/{id}`` segment.
"""

import json
from typing import Any, Dict, List, Optional

from .http_client import GraphClient, decode_json, expect_found, expect_status, path_segment
from .models import User


def user_path(user: str) -> str:
    return f"users/{path_segment(user)}"


def make_create_user_payload(
    user_principal_name: str,
    display_name: str,
    mail_nickname: str,
    password: str,
    force_change_password: bool = True,
    account_enabled: bool = True,
) -> Dict[str, Any]:
    """Build the minimal POST /users body Graph requires for a new account."""
    return {
        "accountEnabled": account_enabled,
        "displayName": display_name,
        "mailNickname": mail_nickname,
        "userPrincipalName": user_principal_name,
        "passwordProfile": {
            "forceChangePasswordNextSignIn": force_change_password,
            "password": password,
        },
    }


def parse_property_value(raw: str) -> Any:
    """Interpret a command-line value for a PATCH body.

    Valid JSON becomes the decoded value (``true``, ``42``, ``["+1 555"]``);
    anything else is sent as the literal string.
    """
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def list_users(client: GraphClient, odata_filter: Optional[str] = None) -> List[User]:
    """Return every user in the tenant, optionally narrowed by an OData ``$filter``."""
    params = {"$filter": odata_filter} if odata_filter else None
    return client.get_all("users", User.from_dict, "get users", params=params)


def get_user(client: GraphClient, user: str) -> User:
    """Fetch one user by id or principal name.

    Raises:
        NotFoundError: no such user.
        RequestError:  any other non-200 status.
    """
    action = "get user"
    resp = expect_found(client.get(user_path(user)), action)
    return User.from_dict(decode_json(resp, action))


def create_user(
    client: GraphClient,
    user_principal_name: str,
    display_name: str,
    mail_nickname: str,
    password: str,
    force_change_password: bool = True,
) -> User:
    """Create an enabled account and return the user Graph echoes back (201)."""
    action = "create user"
    payload = make_create_user_payload(
        user_principal_name, display_name, mail_nickname, password,
        force_change_password=force_change_password,
    )
    resp = expect_status(client.post("users", payload), 201, action)
    return User.from_dict(decode_json(resp, action))


def update_user(client: GraphClient, user: str, properties: Dict[str, Any]) -> None:
    """PATCH only the given properties (204 on success)."""
    expect_status(client.patch(user_path(user), properties), 204, "update user")


def delete_user(client: GraphClient, user: str) -> None:
    expect_status(client.delete(user_path(user)), 204, "delete user")
