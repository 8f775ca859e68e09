"""Outbound account emails — SendGrid / Resend integration."""

import logging

import httpx

from labgate.common.config import LabgateSettings

logger = logging.getLogger(__name__)


class EmailSender:
    """Sends account emails (welcome, password reset).

    Supports SendGrid and Resend via configuration.
    Falls back to logging if no provider is configured.
    """

    def __init__(
        self,
        provider: str = "",
        api_key: str = "",
        from_email: str = "no-reply@labgate.local",
        from_name: str = "Labgate",
    ):
        self.provider = provider.lower()  # "sendgrid" or "resend"
        self.api_key = api_key
        self.from_email = from_email
        self.from_name = from_name

    @classmethod
    def from_settings(cls, settings: LabgateSettings) -> "EmailSender":
        return cls(
            provider=settings.email_provider,
            api_key=settings.email_api_key,
            from_email=settings.email_from,
            from_name=settings.email_from_name,
        )

    async def send_welcome(
        self, to_email: str, name: str, role: str, temporary_password: str,
    ) -> bool:
        subject = "Your laboratory system account"
        body = (
            f"Hi {name},\n\n"
            f"An account with the '{role}' profile was created for you.\n\n"
            f"Temporary password:\n\n  {temporary_password}\n\n"
            f"Please change it after your first login.\n\n"
            f"— {self.from_name}"
        )
        return await self.send(to_email, subject, body)

    async def send_password_reset(self, to_email: str, new_password: str) -> bool:
        subject = "Your password was reset"
        body = (
            f"A new password was generated for your account:\n\n"
            f"  {new_password}\n\n"
            f"Please change it after logging in.\n\n"
            f"— {self.from_name}"
        )
        return await self.send(to_email, subject, body)

    async def send(self, to_email: str, subject: str, body: str) -> bool:
        if self.provider == "sendgrid":
            return await self._send_sendgrid(to_email, subject, body)
        elif self.provider == "resend":
            return await self._send_resend(to_email, subject, body)
        else:
            logger.info(
                "No email provider configured; skipped '%s' for %s", subject, to_email,
            )
            return False

    async def _send_sendgrid(self, to: str, subject: str, body: str) -> bool:
        """Send via SendGrid v3 API."""
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.post(
                    "https://api.sendgrid.com/v3/mail/send",
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "personalizations": [{"to": [{"email": to}]}],
                        "from": {"email": self.from_email, "name": self.from_name},
                        "subject": subject,
                        "content": [{"type": "text/plain", "value": body}],
                    },
                    timeout=30,
                )
                if resp.status_code in (200, 202):
                    logger.info("SendGrid email sent to %s", to)
                    return True
                logger.warning("SendGrid error: %s %s", resp.status_code, resp.text)
                return False
        except httpx.HTTPError:
            logger.exception("SendGrid send failed")
            return False

    async def _send_resend(self, to: str, subject: str, body: str) -> bool:
        """Send via Resend API."""
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.post(
                    "https://api.resend.com/emails",
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "from": f"{self.from_name} <{self.from_email}>",
                        "to": [to],
                        "subject": subject,
                        "text": body,
                    },
                    timeout=30,
                )
                if resp.status_code in (200, 201):
                    logger.info("Resend email sent to %s", to)
                    return True
                logger.warning("Resend error: %s %s", resp.status_code, resp.text)
                return False
        except httpx.HTTPError:
            logger.exception("Resend send failed")
            return False
