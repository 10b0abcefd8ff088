"""License operations: tenant SKUs, per-user and per-group assignment.

``assignLicense`` failures come back as a Graph error envelope::

    {"error": {"code": "Request_BadRequest", "message": "..."}}

The message is matched against ``LICENSE_ERROR_HINTS`` to attach remediation
guidance.  Graph's wording is not a stable contract, so the table is an
ordinary list: callers can pass their own, or append to it.
"""

from typing import Any, Dict, List, Optional, Sequence

from .errors import LicenseAssignmentError, RequestError
from .http_client import (
    GraphClient,
    GraphResponse,
    decode_json,
    expect_found,
    path_segment,
)
from .models import LicenseDetail, SubscribedSku
from .users import user_path

USER = "user"
GROUP = "group"


class LicenseErrorHint:
    """A known ``assignLicense`` failure and how to fix it.

    Attributes:
        name:            Short identifier (e.g. ``usage-location``).
        substrings:      Case-insensitive fragments; any one matching selects the hint.
        guidance:        Remediation text for user assignments.
        group_guidance:  Remediation text for group assignments (falls back to ``guidance``).
    """

    def __init__(self, name: str, substrings: Sequence[str], guidance: str, group_guidance: str = ""):
        self.name = name
        self.substrings = tuple(s.lower() for s in substrings)
        self.guidance = guidance
        self.group_guidance = group_guidance or guidance

    def matches(self, message: str) -> bool:
        lower = message.lower()
        return any(s in lower for s in self.substrings)

    def guidance_for(self, target: str) -> str:
        return self.group_guidance if target == GROUP else self.guidance

    def __repr__(self):
        return f"LicenseErrorHint({self.name!r})"


# Checked in order; first match wins.  Usage location comes first because
# Graph's usage-location error text also contains the word "license".
LICENSE_ERROR_HINTS: List[LicenseErrorHint] = [
    LicenseErrorHint(
        "usage-location",
        ["usage location", "usagelocation"],
        "User must have a usageLocation set. Use:\n"
        "  gua users update <UPN> usageLocation <country-code>\n"
        "  Example: gua users update user@example.com usageLocation US\n"
        "Also confirm the SKU still has available licenses (check with 'gua licenses list-skus')",
        group_guidance=(
            "Group members must have a usageLocation set. Use:\n"
            "  gua users update <UPN> usageLocation <country-code>\n"
            "Also confirm the SKU still has available licenses (check with 'gua licenses list-skus')"
        ),
    ),
    LicenseErrorHint(
        "license-units",
        ["no available licenses", "license"],
        "Possible causes:\n"
        "  - Not enough available licenses (check with 'gua licenses list-skus')\n"
        "  - User doesn't have usageLocation set (use 'gua users update <UPN> usageLocation US')",
        group_guidance=(
            "Possible causes:\n"
            "  - Not enough available licenses (check with 'gua licenses list-skus')\n"
            "  - Group members don't have usageLocation set"
        ),
    ),
]


def match_license_hint(
    message: str, hints: Optional[Sequence[LicenseErrorHint]] = None
) -> Optional[LicenseErrorHint]:
    """Return the first hint whose substrings occur in ``message``."""
    for hint in LICENSE_ERROR_HINTS if hints is None else hints:
        if hint.matches(message):
            return hint
    return None


def make_assign_license_payload(add_sku_ids: Sequence[str], remove_sku_ids: Sequence[str]) -> Dict[str, Any]:
    return {
        "addLicenses": [{"skuId": sku_id, "disabledPlans": []} for sku_id in add_sku_ids],
        "removeLicenses": list(remove_sku_ids),
    }


def list_subscribed_skus(client: GraphClient) -> List[SubscribedSku]:
    return client.get_all("subscribedSkus", SubscribedSku.from_dict, "get SKUs")


def get_user_licenses(client: GraphClient, user: str) -> List[LicenseDetail]:
    return client.get_all(f"{user_path(user)}/licenseDetails", LicenseDetail.from_dict, "get user licenses")


def get_group_licenses(client: GraphClient, group_id: str) -> List[LicenseDetail]:
    """Return the SKUs assigned to a group.

    Groups expose ``assignedLicenses`` as a property rather than a
    ``licenseDetails`` collection, so only ``sku_id`` is populated; see
    ``resolve_part_numbers``.
    """
    action = "get group licenses"
    resp = expect_found(
        client.get(f"groups/{path_segment(group_id)}", params={"$select": "id,assignedLicenses"}),
        action,
    )
    data = decode_json(resp, action)
    return [
        LicenseDetail(sku_id=entry.get("skuId") or "")
        for entry in data.get("assignedLicenses") or []
    ]


def resolve_part_numbers(details: List[LicenseDetail], skus: List[SubscribedSku]) -> List[LicenseDetail]:
    """Fill in missing ``sku_part_number`` values from the tenant's SKU list (in place)."""
    by_id = {sku.sku_id.lower(): sku.sku_part_number for sku in skus}
    for detail in details:
        if not detail.sku_part_number:
            detail.sku_part_number = by_id.get(detail.sku_id.lower(), "")
    return details


def assign_user_licenses(
    client: GraphClient,
    user: str,
    add_sku_ids: Sequence[str],
    remove_sku_ids: Sequence[str],
    hints: Optional[Sequence[LicenseErrorHint]] = None,
) -> None:
    """Add and remove licenses for a user in one ``assignLicense`` call (200)."""
    resp = client.post(f"{user_path(user)}/assignLicense",
                       make_assign_license_payload(add_sku_ids, remove_sku_ids))
    if resp.status_code != 200:
        _raise_assign_error(resp, "assign license", "license assignment", USER, hints)


def assign_group_licenses(
    client: GraphClient,
    group_id: str,
    add_sku_ids: Sequence[str],
    remove_sku_ids: Sequence[str],
    hints: Optional[Sequence[LicenseErrorHint]] = None,
) -> None:
    """Add and remove group-based licenses in one ``assignLicense`` call (200)."""
    resp = client.post(f"groups/{path_segment(group_id)}/assignLicense",
                       make_assign_license_payload(add_sku_ids, remove_sku_ids))
    if resp.status_code != 200:
        _raise_assign_error(resp, "assign group license", "group license assignment", GROUP, hints)


def graph_error_message(resp: GraphResponse) -> Optional[str]:
    """Extract ``error.message`` from a Graph error body, or ``None``."""
    try:
        data = resp.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if not isinstance(error, dict):
        return None
    message = error.get("message")
    return message if isinstance(message, str) and message else None


def _raise_assign_error(
    resp: GraphResponse,
    action: str,
    label: str,
    target: str,
    hints: Optional[Sequence[LicenseErrorHint]],
):
    message = graph_error_message(resp)
    if message is None:
        raise RequestError(action, resp.status_code, resp.body)

    hint = match_license_hint(message, hints)
    text = f"{label} failed (status {resp.status_code}): {message}"
    if hint is not None:
        text += "\n\n" + hint.guidance_for(target)
    raise LicenseAssignmentError(action, resp.status_code, resp.body, message, text, hint=hint)
