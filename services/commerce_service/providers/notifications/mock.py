"""Notification provider that keeps messages in an in-memory outbox."""

from uuid import uuid4

from libs.common.logging import get_logger
from services.commerce_service.providers.notifications.port import (
    EmailMessage,
    NotificationProvider,
    NotificationReceipt,
    SmsMessage,
)

logger = get_logger(__name__)


class MockNotificationProvider(NotificationProvider):
    name = "mock"

    def __init__(self) -> None:
        self.outbox: list[EmailMessage | SmsMessage] = []

    async def send_email(self, message: EmailMessage) -> NotificationReceipt:
        self.outbox.append(message)
        logger.info("Would have sent email to %s: %s", message.to, message.subject)
        return NotificationReceipt(
            accepted=True,
            provider=self.name,
            channel="email",
            message_id=f"mock_email_{uuid4().hex[:12]}",
        )

    async def send_sms(self, message: SmsMessage) -> NotificationReceipt:
        self.outbox.append(message)
        logger.info("Would have sent SMS to %s", message.to)
        return NotificationReceipt(
            accepted=True,
            provider=self.name,
            channel="sms",
            message_id=f"mock_sms_{uuid4().hex[:12]}",
        )
