"""Notification providers: port, in-memory outbox and SMTP/Twilio delivery."""

from services.commerce_service.providers.notifications.mock import (
    MockNotificationProvider,
)
from services.commerce_service.providers.notifications.port import (
    EmailMessage,
    NotificationProvider,
    NotificationReceipt,
    SmsMessage,
)
from services.commerce_service.providers.notifications.real import (
    RealNotificationProvider,
)

__all__ = [
    "EmailMessage",
    "MockNotificationProvider",
    "NotificationProvider",
    "NotificationReceipt",
    "RealNotificationProvider",
    "SmsMessage",
]
