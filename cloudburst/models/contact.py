"""
Contact Model
Notification recipients associated with one or more nodes
"""
from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class NotificationPreference(str, Enum):
    SMS = "sms"
    EMAIL = "email"
    BOTH = "both"


class Contact(BaseModel):
    """Contact stored under ``contacts/{id}``"""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    id: str
    name: str
    phone: str
    email: str = ""
    notification_preference: NotificationPreference = Field(
        NotificationPreference.SMS, alias="notificationPreference"
    )
    associated_nodes: List[str] = Field(default_factory=list, alias="associatedNodes")
    created_at: int = Field(..., alias="createdAt")
    last_updated: int = Field(..., alias="lastUpdated")

    def watches_any(self, node_ids) -> bool:
        """True if any of ``node_ids`` is among the associated nodes"""
        return not set(self.associated_nodes).isdisjoint(node_ids)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
