"""SMTP mail transport with Jinja2-rendered pattern emails."""

from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from pattern_pdf.exceptions import MailError
from pattern_pdf.models import (
    ContactInfo,
    Pattern,
    PaymentIntent,
    PaymentPayload,
    StoredFile,
)

logger = logging.getLogger(__name__)

EMAIL_TEMPLATE_DIR = Path(__file__).resolve().parent / "templates" / "email"

SUBJECTS = {
    "free": "Your free pattern: {name}",
    "premium": "Your premium pattern: {name}",
    "coupon": "Your premium pattern: {name}",
}


def setup_email_env() -> Environment:
    """Jinja2 environment for email bodies (HTML-escaped)."""
    return Environment(
        loader=FileSystemLoader(str(EMAIL_TEMPLATE_DIR)),
        autoescape=select_autoescape(["html"]),
    )


class SmtpMailService:
    """Sends pattern emails through an SMTP relay."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        *,
        username: Optional[str] = None,
        password: Optional[str] = None,
        sender: str = "patterns@localhost",
        use_tls: bool = True,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.use_tls = use_tls
        self._env = setup_email_env()

    def build_message(self, kind: str, contact: ContactInfo, **context) -> EmailMessage:
        """Render the ``kind`` template into a ready-to-send message."""
        pattern = context["pattern"]
        html = self._env.get_template(f"{kind}.html").render(contact=contact, **context)

        msg = EmailMessage()
        msg["Subject"] = SUBJECTS[kind].format(name=pattern.name)
        msg["From"] = self.sender
        msg["To"] = contact.email
        msg.set_content(
            f"Your pattern {pattern.name} is ready: {context['file'].url}"
        )
        msg.add_alternative(html, subtype="html")
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=30) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username and self.password:
                smtp.login(self.username, self.password)
            smtp.send_message(msg)

    async def _send(self, msg: EmailMessage) -> None:
        try:
            await asyncio.to_thread(self._deliver, msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise MailError(f"Could not send email to {msg['To']}: {exc}") from exc
        logger.info("Sent %r to %s", msg["Subject"], msg["To"])

    async def send_free_pattern(
        self, contact: ContactInfo, pattern: Pattern, file: StoredFile,
    ) -> None:
        await self._send(self.build_message("free", contact, pattern=pattern, file=file))

    async def send_premium_pattern(
        self,
        contact: ContactInfo,
        pattern: Pattern,
        file: StoredFile,
        payment_intent: PaymentIntent,
        payment_payload: PaymentPayload,
    ) -> None:
        await self._send(self.build_message(
            "premium", contact,
            pattern=pattern, file=file,
            payment_intent=payment_intent, payment_payload=payment_payload,
        ))

    async def send_coupon_pattern(
        self, contact: ContactInfo, pattern: Pattern, file: StoredFile, coupon_id: str,
    ) -> None:
        await self._send(self.build_message(
            "coupon", contact, pattern=pattern, file=file, coupon_id=coupon_id,
        ))
