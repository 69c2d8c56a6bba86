"""SMTP email and Twilio SMS delivery."""

import asyncio
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional
from uuid import uuid4

import httpx
from libs.common.logging import get_logger
from services.commerce_service.exceptions import ProviderError
from services.commerce_service.providers.http import ProviderHTTPClient
from services.commerce_service.providers.notifications.port import (
    EmailMessage,
    NotificationProvider,
    NotificationReceipt,
    SmsMessage,
)

logger = get_logger(__name__)

TWILIO_API_BASE = "https://api.twilio.com"


class TwilioClient(ProviderHTTPClient):
    provider_name = "twilio"

    async def send_message(
        self, account_sid: str, to: str, from_: str, body: str
    ) -> dict:
        return await self._request(
            "POST",
            f"/2010-04-01/Accounts/{account_sid}/Messages.json",
            form_data={"To": to, "From": from_, "Body": body},
        )


class RealNotificationProvider(NotificationProvider):
    name = "real"

    def __init__(
        self,
        *,
        email_from: str = "",
        smtp_host: str = "",
        smtp_port: int = 587,
        smtp_user: str = "",
        smtp_password: str = "",
        twilio_account_sid: str = "",
        twilio_auth_token: str = "",
        sms_from: str = "",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.email_from = email_from
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.twilio_account_sid = twilio_account_sid
        self.sms_from = sms_from
        self.timeout = timeout
        self.twilio_auth_token = twilio_auth_token
        self._twilio = TwilioClient(
            base_url=TWILIO_API_BASE,
            timeout=timeout,
            transport=transport,
            auth=(twilio_account_sid, twilio_auth_token),
        )

    def _require(self, **values: str) -> None:
        missing = [key for key, value in values.items() if not value]
        if missing:
            raise ProviderError(self.name, f"missing configuration: {', '.join(missing)}")

    def _deliver_smtp(self, message: EmailMessage) -> None:
        if message.html_body:
            msg = MIMEMultipart("alternative")
            msg.attach(MIMEText(message.body, "plain"))
            msg.attach(MIMEText(message.html_body, "html"))
        else:
            msg = MIMEText(message.body, "plain")
        msg["Subject"] = message.subject
        msg["From"] = self.email_from
        msg["To"] = message.to

        with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
            server.starttls()
            server.login(self.smtp_user, self.smtp_password)
            server.sendmail(self.email_from, message.to, msg.as_string())

    async def send_email(self, message: EmailMessage) -> NotificationReceipt:
        self._require(
            EMAIL_FROM=self.email_from,
            SMTP_HOST=self.smtp_host,
            SMTP_USER=self.smtp_user,
            SMTP_PASSWORD=self.smtp_password,
        )
        if not message.to or not message.subject:
            raise ProviderError(self.name, "email requires to + subject")

        logger.info("Sending email to %s: %s", message.to, message.subject)
        try:
            await asyncio.to_thread(self._deliver_smtp, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("SMTP error sending email: %s", e)
            raise ProviderError("smtp", str(e)) from e

        return NotificationReceipt(
            accepted=True,
            provider="smtp",
            channel="email",
            message_id=uuid4().hex,
        )

    async def send_sms(self, message: SmsMessage) -> NotificationReceipt:
        self._require(
            SMS_FROM=self.sms_from,
            TWILIO_ACCOUNT_SID=self.twilio_account_sid,
            TWILIO_AUTH_TOKEN=self.twilio_auth_token,
        )
        if not message.to or not message.body:
            raise ProviderError(self.name, "SMS requires to + body")

        data = await self._twilio.send_message(
            self.twilio_account_sid, message.to, self.sms_from, message.body
        )
        return NotificationReceipt(
            accepted=True,
            provider="twilio",
            channel="sms",
            message_id=str(data.get("sid") or uuid4().hex),
        )

