"""
Notification Models
SMS delivery records and in-app notifications under ``notifications/{id}``
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

IN_APP_TTL_MS = 7 * 24 * 60 * 60 * 1000


class DeliveryOutcome(str, Enum):
    """Overall result of one SMS fan-out"""
    SENT = "sent"
    NOT_CONFIGURED = "not_configured"
    PARTIAL = "partial"
    FAILED = "failed"


class DeliveryResult(BaseModel):
    """Per-recipient provider result"""
    to: str
    success: bool
    status: str
    sid: Optional[str] = None
    error: Optional[str] = None
    code: Optional[Any] = None


class SMSDispatchResponse(BaseModel):
    """Body returned by the SMS dispatch endpoint"""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    partial_success: bool = Field(False, alias="partialSuccess")
    configured: bool
    recipients: int = 0
    success_count: int = Field(0, alias="successCount")
    failure_count: int = Field(0, alias="failureCount")
    message: str = ""
    delivery_results: List[DeliveryResult] = Field(default_factory=list, alias="deliveryResults")
    errors: List[Dict[str, Any]] = Field(default_factory=list)

    @property
    def outcome(self) -> DeliveryOutcome:
        if not self.configured:
            return DeliveryOutcome.NOT_CONFIGURED
        if self.success:
            return DeliveryOutcome.SENT
        if self.partial_success:
            return DeliveryOutcome.PARTIAL
        return DeliveryOutcome.FAILED


class SMSProviderStatus(BaseModel):
    """Body returned by the SMS status endpoint"""

    model_config = ConfigDict(populate_by_name=True)

    enabled: bool
    configured: bool
    account_sid: str = Field(..., alias="accountSid")
    auth_token: str = Field(..., alias="authToken")
    phone_number: str = Field(..., alias="phoneNumber")
    sdk_installed: bool = Field(..., alias="sdkInstalled")
    status: str


class SMSNotificationResult(BaseModel):
    """What the caller of an SMS notification learns"""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    success: bool
    configured: bool
    outcome: DeliveryOutcome
    notification_id: Optional[str] = Field(None, alias="notificationId")
    recipients: int = 0
    message: str = ""
    error: Optional[str] = None
