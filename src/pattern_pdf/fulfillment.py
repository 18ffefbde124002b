"""Fulfillment flows: previews, free PDFs, paid PDFs and coupon PDFs.

Every flow runs the same pipeline (assemble the pattern data, render the
templates, persist the pattern and the PDF, authorize, deliver by email)
with different authorization policies:

  - free:    no authorization, free-pattern email
  - premium: coupon check or payment intent up front; the email is sent
             later by ``send_premium_pdf`` once the client has confirmed
             the payment and it is re-verified here
  - coupon:  coupon / promotion code must be valid before anything is
             rendered; single-use promotion codes are deactivated after
             the email goes out

Nothing is retried and nothing is rolled back: a pattern or file created
before a later step fails stays in the store.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from pattern_pdf.assembler import assemble, pattern_piece_records
from pattern_pdf.collaborators import FileStore, MailTransport, PatternStore, PaymentProcessor
from pattern_pdf.config import Settings
from pattern_pdf.exceptions import ValidationError
from pattern_pdf.models import (
    BasicPdfRequest,
    CodeType,
    Coupon,
    CouponOrPromoCode,
    CouponPdfRequest,
    FulfillmentResult,
    Pattern,
    PdfData,
    PdfPreviews,
    PremiumPdfRequest,
    PromotionCode,
    SendPremiumPdfRequest,
    StoredFile,
)
from pattern_pdf.renderer.html_renderer import render_document, render_preview_pair
from pattern_pdf.renderer.pdf_engine import (
    MARGINS_BASIC,
    MARGINS_PREMIUM,
    PREMIUM_PRINT_STYLE,
    BrowserPool,
    count_pages,
)

logger = logging.getLogger(__name__)

COUPON_INVALID = "That coupon code didn’t work or is expired."
PROMOCODE_INACTIVE = "That promotion code didn’t work or is expired."
NO_SUCH_CODE = "No such coupon or promotion code."
PAYMENT_MISSING = "Payment does not exist!"
PAYMENT_NOT_SUCCEEDED = "Premium PDF not paid yet!"
FILE_MISSING = "PDF file does not exist!"
PATTERN_MISSING = "Pattern does not exist!"
PATTERN_DATA_MISSING = "No pattern was supplied."


class FulfillmentStage(str, Enum):
    ASSEMBLING = "assembling"
    RENDERING = "rendering"
    PERSISTING = "persisting"
    AUTHORIZING = "authorizing"
    DELIVERING = "delivering"
    DONE = "done"
    FAILED = "failed"


class _Flow:
    """Logs stage transitions of one fulfillment request."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.stage: Optional[FulfillmentStage] = None

    def advance(self, stage: FulfillmentStage) -> None:
        self.stage = stage
        logger.info("%s: %s", self.name, stage.value)

    def __enter__(self) -> "_Flow":
        logger.info("%s started", self.name)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc is None:
            self.advance(FulfillmentStage.DONE)
            return
        failed_at = self.stage.value if self.stage else "start"
        self.stage = FulfillmentStage.FAILED
        if isinstance(exc, ValidationError):
            logger.info("%s declined at %s: %s", self.name, failed_at, exc)
        else:
            logger.error("%s failed at %s: %s", self.name, failed_at, exc)


def check_coupon_or_code(code: Optional[CouponOrPromoCode]) -> None:
    """Raise ValidationError unless the coupon is valid or the promo code active."""
    value = code.value if code is not None else None

    if code is not None and code.type == CodeType.COUPON and isinstance(value, Coupon):
        if not value.valid:
            raise ValidationError(COUPON_INVALID)
        return

    if code is not None and code.type == CodeType.PROMOCODE and isinstance(value, PromotionCode):
        if not value.active:
            raise ValidationError(PROMOCODE_INACTIVE)
        return

    raise ValidationError(NO_SUCH_CODE)


class PdfService:
    """Runs the fulfillment flows against the external collaborators."""

    def __init__(
        self,
        pool: BrowserPool,
        patterns: PatternStore,
        files: FileStore,
        payments: PaymentProcessor,
        mail: MailTransport,
        settings: Optional[Settings] = None,
    ) -> None:
        self.pool = pool
        self.patterns = patterns
        self.files = files
        self.payments = payments
        self.mail = mail
        self.settings = settings or Settings()

    # ── Shared pipeline ──────────────────────────────────────────────

    async def _print_pdf(self, html: str, footer: str, *, premium: bool) -> bytes:
        page = await self.pool.acquire_page(html)
        try:
            return await self.pool.to_pdf(
                page,
                margins=MARGINS_PREMIUM if premium else MARGINS_BASIC,
                footer_template=footer,
                style=PREMIUM_PRINT_STYLE if premium else None,
            )
        finally:
            await page.close()

    async def _produce_document(
        self, flow: _Flow, pdf_data: PdfData, *, premium: bool,
    ) -> tuple[Pattern, StoredFile]:
        """Assemble, render and persist one pattern document."""
        flow.advance(FulfillmentStage.ASSEMBLING)
        data = await assemble(pdf_data, file_lookup=self.files, premium=premium)

        flow.advance(FulfillmentStage.RENDERING)
        html, footer = render_document(data, premium=premium)

        flow.advance(FulfillmentStage.PERSISTING)
        pattern = await self.patterns.create_pattern(
            data.pattern_name, pattern_piece_records(data.pattern_pieces),
        )
        pdf = await self._print_pdf(html, footer, premium=premium)

        variant = "premium" if premium else "basic"
        file = await self.files.create_file(f"{pattern.name}-{pattern.id}-{variant}.pdf", pdf)
        logger.info("%s: stored %s PDF %s (%s pages, %d bytes) for pattern %s",
                    flow.name, variant, file.id, count_pages(pdf), len(pdf), pattern.id)
        return pattern, file

    async def _authorize_code(self, code_id: str) -> CouponOrPromoCode:
        code = await self.payments.get_coupon_or_promo_code(code_id)
        check_coupon_or_code(code)
        return code

    # ── Flows ────────────────────────────────────────────────────────

    async def generate_previews(self, pdf_data: PdfData) -> PdfPreviews:
        """Render basic and premium preview thumbnails as base64 PNGs."""
        with _Flow("generate_previews") as flow:
            flow.advance(FulfillmentStage.ASSEMBLING)
            data = await assemble(pdf_data, file_lookup=self.files, premium=True)

            flow.advance(FulfillmentStage.RENDERING)
            basic_html, premium_html = render_preview_pair(data)

            page = await self.pool.acquire_page()
            try:
                basic_preview = await self.pool.rasterize(page, basic_html)
                premium_preview = await self.pool.rasterize(page, premium_html)
            finally:
                await page.close()

        return PdfPreviews(basic_preview=basic_preview, premium_preview=premium_preview)

    async def generate_basic_pdf(self, request: BasicPdfRequest) -> FulfillmentResult:
        """Free flow: render, persist and email the basic PDF."""
        with _Flow("generate_basic_pdf") as flow:
            pattern, file = await self._produce_document(
                flow, request.pdf_data, premium=False,
            )
            flow.advance(FulfillmentStage.DELIVERING)
            await self.mail.send_free_pattern(request.contact_info, pattern, file)

        return FulfillmentResult(file_id=file.id, pattern_id=pattern.id)

    async def generate_premium_pdf(self, request: PremiumPdfRequest) -> FulfillmentResult:
        """Premium flow up to client-side payment confirmation.

        With a coupon the code is checked first; otherwise a payment intent
        is created and its client secret returned so the client can confirm
        the card payment. The PDF is stored either way but not emailed.
        """
        with _Flow("generate_premium_pdf") as flow:
            payload = request.payment_payload
            payment = None

            flow.advance(FulfillmentStage.AUTHORIZING)
            if payload.coupon:
                await self._authorize_code(payload.coupon)
            else:
                payment = await self.payments.create_payment_intent(
                    self.settings.payment_amount, payload,
                )

            pattern, file = await self._produce_document(
                flow, request.pdf_data, premium=True,
            )

        result = FulfillmentResult(file_id=file.id, pattern_id=pattern.id)
        if payment is not None:
            result.payment_id = payment.id
            result.client_secret = payment.client_secret
        return result

    async def send_premium_pdf(self, request: SendPremiumPdfRequest) -> None:
        """Email a premium PDF once its payment has succeeded."""
        with _Flow("send_premium_pdf") as flow:
            flow.advance(FulfillmentStage.AUTHORIZING)
            file = await self.files.get_file(request.file_id)
            pattern = await self.patterns.get_pattern(request.pattern_id)
            payment_intent = await self.payments.retrieve_payment_intent(request.payment_id)

            if not payment_intent.payment_method:
                raise ValidationError(PAYMENT_MISSING)
            if payment_intent.status != "succeeded":
                raise ValidationError(PAYMENT_NOT_SUCCEEDED)
            if not file:
                raise ValidationError(FILE_MISSING)
            if not pattern:
                raise ValidationError(PATTERN_MISSING)

            flow.advance(FulfillmentStage.DELIVERING)
            await self.mail.send_premium_pattern(
                request.contact_info,
                pattern,
                file,
                payment_intent,
                request.payment_payload,
            )

    async def send_coupon_pdf(self, request: CouponPdfRequest) -> FulfillmentResult:
        """Coupon flow: validate the code, produce (or reuse) the PDF, email it."""
        with _Flow("send_coupon_pdf") as flow:
            flow.advance(FulfillmentStage.AUTHORIZING)
            code = await self._authorize_code(request.coupon_id)

            if request.file_id and request.pattern_id:
                file = await self.files.get_file(request.file_id)
                pattern = await self.patterns.get_pattern(request.pattern_id)
                if not file:
                    raise ValidationError(FILE_MISSING)
                if not pattern:
                    raise ValidationError(PATTERN_MISSING)
            elif request.pdf_data is not None:
                pattern, file = await self._produce_document(
                    flow, request.pdf_data, premium=True,
                )
            else:
                raise ValidationError(PATTERN_DATA_MISSING)

            flow.advance(FulfillmentStage.DELIVERING)
            await self.mail.send_coupon_pattern(
                request.contact_info, pattern, file, request.coupon_id,
            )

            if code.type == CodeType.PROMOCODE:
                await self.payments.set_promotion_code_inactive(code.value.id)
                logger.info("Promotion code %s deactivated", code.value.id)

        return FulfillmentResult(file_id=file.id, pattern_id=pattern.id)
