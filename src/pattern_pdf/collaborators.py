"""Interfaces of the external systems the fulfillment pipeline depends on.

Concrete implementations live in ``storage`` (patterns, files), ``payments``
(Stripe) and ``mail`` (SMTP).
"""

from __future__ import annotations

from typing import Optional, Protocol

from pattern_pdf.models import (
    ContactInfo,
    CouponOrPromoCode,
    Pattern,
    PaymentIntent,
    PaymentPayload,
    StoredFile,
)


class PatternStore(Protocol):
    async def create_pattern(self, name: str, pieces: list[dict]) -> Pattern: ...

    async def get_pattern(self, pattern_id: str) -> Optional[Pattern]: ...


class FileStore(Protocol):
    async def create_file(self, name: str, data: bytes) -> StoredFile: ...

    async def get_file(self, file_id: str) -> Optional[StoredFile]: ...


class PaymentProcessor(Protocol):
    async def create_payment_intent(
        self, amount: int, payload: PaymentPayload,
    ) -> PaymentIntent: ...

    async def retrieve_payment_intent(self, payment_id: str) -> PaymentIntent: ...

    async def get_coupon_or_promo_code(self, code: str) -> CouponOrPromoCode: ...

    async def set_promotion_code_inactive(self, promotion_code_id: str) -> None: ...


class MailTransport(Protocol):
    async def send_free_pattern(
        self, contact: ContactInfo, pattern: Pattern, file: StoredFile,
    ) -> None: ...

    async def send_premium_pattern(
        self,
        contact: ContactInfo,
        pattern: Pattern,
        file: StoredFile,
        payment_intent: PaymentIntent,
        payment_payload: PaymentPayload,
    ) -> None: ...

    async def send_coupon_pattern(
        self, contact: ContactInfo, pattern: Pattern, file: StoredFile, coupon_id: str,
    ) -> None: ...
