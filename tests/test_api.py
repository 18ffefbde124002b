"""Tests for the request-facing FulfillmentAPI."""

from __future__ import annotations

import asyncio
import logging

import pytest

from conftest import FakePayments, FakePool, InMemoryBackend, RecordingMail, promo_code

from pattern_pdf.api import GENERIC_ERROR, INCOMPLETE_REQUEST, FulfillmentAPI
from pattern_pdf.config import Settings
from pattern_pdf.fulfillment import NO_SUCH_CODE, PAYMENT_NOT_SUCCEEDED, PdfService

PIECE = {
    "piece": {"id": "p1", "assetId": "a1", "image": '<svg fill="{primaryColor}"/>'},
    "primaryColor": "#C62D2D",
    "positionX": 210.4,
    "positionY": 33,
    "categoryId": "c1",
}
ASSET = {
    "id": "a1",
    "name": "Bodice",
    "instructions": [
        {"id": "i2", "instructionText": "Then hem.", "createdAt": "2024-03-01T10:05:00.000Z"},
        {"id": "i1", "instructionText": "Cut {primaryColorName}.",
         "createdAt": "2024-03-01T10:00:00.000Z"},
    ],
}
PATTERN = {"patternName": "Summer Dress", "patternPieces": [PIECE], "patternAssets": [ASSET]}
CONTACT = {"email": "ada@example.com", "firstName": "Ada"}


@pytest.fixture
def parts():
    return FakePool(), InMemoryBackend(), FakePayments(), RecordingMail()


@pytest.fixture
def api(parts):
    pool, backend, payments, mail = parts
    return FulfillmentAPI(PdfService(pool, backend, backend, payments, mail, Settings()))


class TestOperations:
    def test_generate_previews(self, api):
        result = asyncio.run(api.generate_previews(PATTERN))
        assert result == {"success": True, "basicPreview": "png-1", "premiumPreview": "png-2"}

    def test_generate_basic_pdf(self, api, parts):
        result = asyncio.run(api.generate_basic_pdf({**PATTERN, "contactInfo": CONTACT}))
        assert result == {"success": True, "fileId": "file-1", "patternId": "pat-1"}
        assert parts[3].sent[0][1].email == "ada@example.com"

    def test_generate_premium_pdf_returns_client_secret(self, api):
        result = asyncio.run(api.generate_premium_pdf(
            {**PATTERN, "paymentPayload": {"email": "ada@example.com"}},
        ))
        assert result["success"] is True
        assert result["paymentId"] == "pi_new"
        assert result["clientSecret"] == "pi_new_secret"

    def test_send_premium_pdf(self, api, parts):
        asyncio.run(api.generate_premium_pdf({**PATTERN, "paymentPayload": {}}))
        result = asyncio.run(api.send_premium_pdf({
            "fileId": "file-1", "patternId": "pat-1", "paymentId": "pi_1",
            "contactInfo": CONTACT,
        }))
        assert result == {"success": True}
        assert len(parts[3].sent) == 1
        kind, contact, pattern, file, intent = parts[3].sent[0]
        assert kind == "premium"
        assert (pattern.id, file.id, intent.id) == ("pat-1", "file-1", "pi_1")

    def test_send_premium_pdf_declines_unpaid(self, api, parts):
        asyncio.run(api.generate_premium_pdf({**PATTERN, "paymentPayload": {}}))
        parts[2].intent.status = "requires_payment_method"
        result = asyncio.run(api.send_premium_pdf({
            "fileId": "file-1", "patternId": "pat-1", "paymentId": "pi_1",
            "contactInfo": CONTACT,
        }))
        assert result == {"success": False, "error": PAYMENT_NOT_SUCCEEDED,
                          "error_type": "validation"}
        assert parts[3].sent == []

    def test_send_coupon_pdf(self, api, parts):
        parts[2].code = promo_code(active=True)
        result = asyncio.run(api.send_coupon_pdf(
            {**PATTERN, "couponId": "FRIEND", "contactInfo": CONTACT},
        ))
        assert result["success"] is True
        assert parts[2].deactivated == ["promo_1"]


class TestErrors:
    def test_validation_error_message_passed_through(self, api):
        result = asyncio.run(api.send_coupon_pdf(
            {**PATTERN, "couponId": "NOPE", "contactInfo": CONTACT},
        ))
        assert result == {"success": False, "error": NO_SUCH_CODE, "error_type": "validation"}

    def test_malformed_payload(self, api):
        result = asyncio.run(api.generate_basic_pdf(PATTERN))
        assert result["success"] is False
        assert result["error"] == INCOMPLETE_REQUEST
        assert result["error_type"] == "validation"

    def test_send_premium_pdf_missing_ids(self, api):
        result = asyncio.run(api.send_premium_pdf({"contactInfo": CONTACT}))
        assert result == {"success": False, "error": INCOMPLETE_REQUEST,
                          "error_type": "validation"}

    def test_internal_error_is_generic_and_logged(self, parts, caplog):
        _, backend, payments, mail = parts
        pool = FakePool(fail_on_pdf=RuntimeError("Browser closed: /tmp/secret-path"))
        api = FulfillmentAPI(PdfService(pool, backend, backend, payments, mail))
        with caplog.at_level(logging.ERROR, logger="pattern_pdf.api"):
            result = asyncio.run(api.generate_basic_pdf({**PATTERN, "contactInfo": CONTACT}))
        assert result == {"success": False, "error": GENERIC_ERROR, "error_type": "internal"}
        assert "secret-path" not in result["error"]
        assert "generate_basic_pdf failed" in caplog.text


class TestFromSettings:
    def test_wires_collaborators(self):
        settings = Settings(stripe_secret_key="sk_test", backend_url="https://api.test")
        api = FulfillmentAPI.from_settings(settings)
        assert api.service.patterns is api.service.files
        assert api.service.payments.api_key == "sk_test"
        assert api.service.pool.content_timeout == 10.0
        asyncio.run(api.cleanup())
