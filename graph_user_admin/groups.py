"""Group operations: list groups, a user's memberships, add/remove members."""

from typing import List

from .http_client import GraphClient, expect_status, path_segment
from .models import Group
from .users import user_path


def group_path(group_id: str) -> str:
    return f"groups/{path_segment(group_id)}"


def directory_object_ref(client: GraphClient, object_id: str) -> str:
    """Canonical ``@odata.id`` URL for a directory object (used in ``$ref`` bodies)."""
    return f"{client.base_url}/directoryObjects/{path_segment(object_id)}"


def list_groups(client: GraphClient) -> List[Group]:
    return client.get_all("groups", Group.from_dict, "get groups")


def get_user_groups(client: GraphClient, user: str) -> List[Group]:
    """Directory objects the user is a direct member of."""
    return client.get_all(f"{user_path(user)}/memberOf", Group.from_dict, "get user groups")


def add_member(client: GraphClient, group_id: str, user_id: str) -> None:
    """Add a directory object (by object id) to a group (204)."""
    payload = {"@odata.id": directory_object_ref(client, user_id)}
    expect_status(client.post(f"{group_path(group_id)}/members/$ref", payload), 204, "add member to group")


def remove_member(client: GraphClient, group_id: str, user_id: str) -> None:
    expect_status(
        client.delete(f"{group_path(group_id)}/members/{path_segment(user_id)}/$ref"),
        204,
        "remove member from group",
    )
