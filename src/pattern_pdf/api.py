"""Request-facing facade over the fulfillment flows.

Every public method takes the camelCase JSON payload sent by the web client
and returns a dict with at least {"success": bool}. Failures carry an
``error`` message safe to show the customer and an ``error_type``.
"""

from __future__ import annotations

import logging
from typing import Optional

from pattern_pdf.config import Settings
from pattern_pdf.exceptions import ValidationError
from pattern_pdf.fulfillment import PdfService
from pattern_pdf.models import (
    BasicPdfRequest,
    CouponPdfRequest,
    PdfData,
    PremiumPdfRequest,
    SendPremiumPdfRequest,
)

logger = logging.getLogger(__name__)

GENERIC_ERROR = "There was a problem generating your pattern. Please try again."
INCOMPLETE_REQUEST = "The request was incomplete."


def _parse(model, payload: dict):
    """Build a request model, reporting malformed payloads as client errors."""
    try:
        return model.from_dict(payload)
    except (KeyError, ValueError, TypeError, AttributeError) as exc:
        logger.warning("Malformed %s payload: %r", model.__name__, exc)
        raise ValidationError(INCOMPLETE_REQUEST) from exc


class FulfillmentAPI:
    """Bridge between the HTTP layer and PdfService."""

    def __init__(self, service: PdfService) -> None:
        self.service = service
        self._closers: list = []

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "FulfillmentAPI":
        """Wire the service to Stripe, the backend and SMTP from settings."""
        from pattern_pdf.mail import SmtpMailService
        from pattern_pdf.payments import StripePaymentService
        from pattern_pdf.renderer.pdf_engine import BrowserPool
        from pattern_pdf.storage import BackendClient

        settings = settings or Settings.from_env()
        if not settings.stripe_secret_key:
            logger.warning("STRIPE_SECRET_KEY is not set; payments will fail")

        pool = BrowserPool(
            max_age=settings.browser_max_age,
            content_timeout=settings.page_content_timeout,
        )
        backend = BackendClient(settings.backend_url, timeout=settings.backend_timeout)
        service = PdfService(
            pool=pool,
            patterns=backend,
            files=backend,
            payments=StripePaymentService(
                settings.stripe_secret_key or "", currency=settings.payment_currency,
            ),
            mail=SmtpMailService(
                settings.smtp_host or "localhost",
                settings.smtp_port,
                username=settings.smtp_username,
                password=settings.smtp_password,
                sender=settings.mail_from,
            ),
            settings=settings,
        )
        api = cls(service)
        api._closers = [backend.close, pool.close]
        return api

    @staticmethod
    def _classify_error(error: Exception) -> str:
        """Classify an exception for the client's error_type field."""
        if isinstance(error, ValidationError):
            return "validation"
        return "internal"

    def _failure(self, operation: str, error: Exception) -> dict:
        error_type = self._classify_error(error)
        if error_type == "validation":
            return {"success": False, "error": str(error), "error_type": error_type}
        logger.exception("%s failed", operation)
        return {"success": False, "error": GENERIC_ERROR, "error_type": error_type}

    # ── Operations ────────────────────────────────────────────────────

    async def generate_previews(self, payload: dict) -> dict:
        try:
            previews = await self.service.generate_previews(_parse(PdfData, payload))
            return {
                "success": True,
                "basicPreview": previews.basic_preview,
                "premiumPreview": previews.premium_preview,
            }
        except Exception as e:
            return self._failure("generate_previews", e)

    async def generate_basic_pdf(self, payload: dict) -> dict:
        try:
            result = await self.service.generate_basic_pdf(_parse(BasicPdfRequest, payload))
            return {"success": True, **result.to_dict()}
        except Exception as e:
            return self._failure("generate_basic_pdf", e)

    async def generate_premium_pdf(self, payload: dict) -> dict:
        try:
            result = await self.service.generate_premium_pdf(
                _parse(PremiumPdfRequest, payload),
            )
            return {"success": True, **result.to_dict()}
        except Exception as e:
            return self._failure("generate_premium_pdf", e)

    async def send_premium_pdf(self, payload: dict) -> dict:
        try:
            await self.service.send_premium_pdf(_parse(SendPremiumPdfRequest, payload))
            return {"success": True}
        except Exception as e:
            return self._failure("send_premium_pdf", e)

    async def send_coupon_pdf(self, payload: dict) -> dict:
        try:
            result = await self.service.send_coupon_pdf(_parse(CouponPdfRequest, payload))
            return {"success": True, **result.to_dict()}
        except Exception as e:
            return self._failure("send_coupon_pdf", e)

    async def cleanup(self) -> None:
        """Close the browser and HTTP sessions on shutdown."""
        for close in self._closers:
            try:
                await close()
            except Exception:
                logger.debug("Error during cleanup", exc_info=True)
