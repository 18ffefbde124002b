"""Tests for the SMTP mail transport (smtplib mocked)."""

from __future__ import annotations

import asyncio
import smtplib
from unittest.mock import patch

import pytest

from pattern_pdf.exceptions import MailError
from pattern_pdf.mail import SmtpMailService
from pattern_pdf.models import ContactInfo, Pattern, PaymentIntent, PaymentPayload, StoredFile

CONTACT = ContactInfo(email="ada@example.com", first_name="Ada")
PATTERN = Pattern(id="pat-1", name="Summer <Dress>")
FILE = StoredFile(id="file-1", url="https://files.test/summer.pdf")


@pytest.fixture
def service():
    return SmtpMailService("smtp.test", 2525, username="user", password="secret",
                           sender="patterns@shop.test")


def _html_part(msg) -> str:
    return msg.get_body(preferencelist=("html",)).get_content()


class TestBuildMessage:
    def test_free_message(self, service):
        msg = service.build_message("free", CONTACT, pattern=PATTERN, file=FILE)
        assert msg["To"] == "ada@example.com"
        assert msg["From"] == "patterns@shop.test"
        assert msg["Subject"] == "Your free pattern: Summer <Dress>"
        html = _html_part(msg)
        assert "Hi Ada" in html
        assert "https://files.test/summer.pdf" in html
        assert "Summer &lt;Dress&gt;" in html

    def test_greeting_uses_full_name(self, service):
        contact = ContactInfo(email="ada@example.com", first_name="Ada", last_name="Lovelace")
        msg = service.build_message("free", contact, pattern=PATTERN, file=FILE)
        assert "Hi Ada Lovelace," in _html_part(msg)

    def test_greeting_without_name(self, service):
        msg = service.build_message("free", ContactInfo(email="ada@example.com"),
                                    pattern=PATTERN, file=FILE)
        assert "<p>Hi,</p>" in _html_part(msg)

    def test_premium_message_mentions_payment(self, service):
        msg = service.build_message(
            "premium", CONTACT, pattern=PATTERN, file=FILE,
            payment_intent=PaymentIntent(id="pi_77", status="succeeded"),
            payment_payload=PaymentPayload(),
        )
        assert "pi_77" in _html_part(msg)

    def test_coupon_message_mentions_code(self, service):
        msg = service.build_message("coupon", CONTACT, pattern=PATTERN, file=FILE,
                                    coupon_id="FRIEND")
        assert "FRIEND" in _html_part(msg)


class TestSend:
    @patch("pattern_pdf.mail.smtplib.SMTP")
    def test_sends_with_tls_and_login(self, mock_smtp, service):
        asyncio.run(service.send_free_pattern(CONTACT, PATTERN, FILE))

        mock_smtp.assert_called_once_with("smtp.test", 2525, timeout=30)
        smtp = mock_smtp.return_value.__enter__.return_value
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("user", "secret")
        sent = smtp.send_message.call_args.args[0]
        assert sent["To"] == "ada@example.com"

    @patch("pattern_pdf.mail.smtplib.SMTP")
    def test_no_login_without_credentials(self, mock_smtp):
        service = SmtpMailService("smtp.test", use_tls=False)
        asyncio.run(service.send_coupon_pattern(CONTACT, PATTERN, FILE, "FRIEND"))
        smtp = mock_smtp.return_value.__enter__.return_value
        smtp.starttls.assert_not_called()
        smtp.login.assert_not_called()
        smtp.send_message.assert_called_once()

    @patch("pattern_pdf.mail.smtplib.SMTP")
    def test_smtp_failure_raises_mail_error(self, mock_smtp, service):
        smtp = mock_smtp.return_value.__enter__.return_value
        smtp.send_message.side_effect = smtplib.SMTPRecipientsRefused({})
        with pytest.raises(MailError, match="ada@example.com"):
            asyncio.run(service.send_premium_pattern(
                CONTACT, PATTERN, FILE,
                PaymentIntent(id="pi_1", status="succeeded"), PaymentPayload(),
            ))
