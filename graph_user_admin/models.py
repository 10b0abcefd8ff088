"""Flat DTOs mirroring the Graph JSON shapes used by this tool.

Each type maps camelCase Graph properties to snake_case attributes via
``from_dict`` and back via ``to_dict``.  Properties Graph omits decode to
empty strings, zero, or ``False``.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")

NEXT_LINK_KEY = "@odata.nextLink"


@dataclass
class User:
    """A directory user (principal)."""

    id: str = ""
    display_name: str = ""
    user_principal_name: str = ""
    mail: str = ""
    mail_nickname: str = ""
    account_enabled: bool = False
    usage_location: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            id=data.get("id") or "",
            display_name=data.get("displayName") or "",
            user_principal_name=data.get("userPrincipalName") or "",
            mail=data.get("mail") or "",
            mail_nickname=data.get("mailNickname") or "",
            account_enabled=bool(data.get("accountEnabled", False)),
            usage_location=data.get("usageLocation") or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "displayName": self.display_name,
            "userPrincipalName": self.user_principal_name,
            "mail": self.mail,
            "mailNickname": self.mail_nickname,
            "accountEnabled": self.account_enabled,
            "usageLocation": self.usage_location,
        }


@dataclass
class Group:
    id: str = ""
    display_name: str = ""
    description: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Group":
        return cls(
            id=data.get("id") or "",
            display_name=data.get("displayName") or "",
            description=data.get("description") or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "displayName": self.display_name,
            "description": self.description,
        }


@dataclass
class PrepaidUnits:
    enabled: int = 0
    suspended: int = 0
    warning: int = 0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "PrepaidUnits":
        data = data or {}
        return cls(
            enabled=int(data.get("enabled") or 0),
            suspended=int(data.get("suspended") or 0),
            warning=int(data.get("warning") or 0),
        )


@dataclass
class SubscribedSku:
    """A tenant-wide license pool for one SKU."""

    id: str = ""
    sku_id: str = ""
    sku_part_number: str = ""
    consumed_units: int = 0
    prepaid_units: PrepaidUnits = field(default_factory=PrepaidUnits)

    @property
    def available_units(self) -> int:
        """Enabled units not yet assigned.  Negative when over-assigned."""
        return self.prepaid_units.enabled - self.consumed_units

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SubscribedSku":
        return cls(
            id=data.get("id") or "",
            sku_id=data.get("skuId") or "",
            sku_part_number=data.get("skuPartNumber") or "",
            consumed_units=int(data.get("consumedUnits") or 0),
            prepaid_units=PrepaidUnits.from_dict(data.get("prepaidUnits")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "skuId": self.sku_id,
            "skuPartNumber": self.sku_part_number,
            "consumedUnits": self.consumed_units,
            "prepaidUnits": asdict(self.prepaid_units),
        }


@dataclass
class LicenseDetail:
    """A license assigned to a user or group."""

    id: str = ""
    sku_id: str = ""
    sku_part_number: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LicenseDetail":
        return cls(
            id=data.get("id") or "",
            sku_id=data.get("skuId") or "",
            sku_part_number=data.get("skuPartNumber") or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "skuId": self.sku_id,
            "skuPartNumber": self.sku_part_number,
        }


@dataclass
class Page(Generic[T]):
    """One page of a Graph collection response.

    ``next_link`` is the server's opaque continuation URL, or ``None`` on the
    last page.
    """

    items: List[T] = field(default_factory=list)
    next_link: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], parse_item: Callable[[Dict[str, Any]], T]) -> "Page[T]":
        return cls(
            items=[parse_item(item) for item in data.get("value") or []],
            next_link=data.get(NEXT_LINK_KEY) or None,
        )
