"""Notification provider port (email and SMS)."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    body: str
    html_body: Optional[str] = None


@dataclass(frozen=True)
class SmsMessage:
    to: str
    body: str


@dataclass(frozen=True)
class NotificationReceipt:
    accepted: bool
    provider: str
    channel: str
    message_id: str


class NotificationProvider(ABC):
    name: str = "notifications"

    @abstractmethod
    async def send_email(self, message: EmailMessage) -> NotificationReceipt:
        ...

    @abstractmethod
    async def send_sms(self, message: SmsMessage) -> NotificationReceipt:
        ...
