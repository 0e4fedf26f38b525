"""
Notification Services
SMS delivery through the provider and notification records in the store
"""
from cloudburst.services.notification.sms_client import SMSClient
from cloudburst.services.notification.notification_service import (
    NotificationService,
    NOTIFICATIONS_PATH,
)

__all__ = [
    'SMSClient',
    'NotificationService',
    'NOTIFICATIONS_PATH',
]
