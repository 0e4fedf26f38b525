"""
Alert Models
Severity-tagged messages tied to one or more nodes
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

MAX_MESSAGE_LENGTH = 500


class Severity(str, Enum):
    WARNING = "warning"
    CRITICAL = "critical"


class Alert(BaseModel):
    """Alert record stored under ``alerts/{id}``"""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    id: str
    type: str = "manual"
    severity: Severity
    message: str
    affected_nodes: List[str] = Field(default_factory=list, alias="affectedNodes")
    timestamp: int
    acknowledged: bool = False
    acknowledged_by: Optional[str] = Field(None, alias="acknowledgedBy")
    acknowledged_at: Optional[int] = Field(None, alias="acknowledgedAt")
    sent_sms: bool = Field(False, alias="sentSMS")
    sms_sent_at: Optional[int] = Field(None, alias="smsSentAt")
    recipients: List[str] = Field(default_factory=list)
    created_by: str = Field("analytical", alias="createdBy")
    source: str = "analytical_panel"

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class AlertBackReference(BaseModel):
    """Per-node copy stored under ``nodes/{nodeId}/alerts/{alertId}``"""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    alert_id: str = Field(..., alias="alertId")
    severity: Severity
    timestamp: int
    acknowledged: bool = False

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
