"""Stripe payment processor: payment intents, coupons and promotion codes.

The Stripe SDK is synchronous; every call runs in a worker thread so the
event loop keeps serving other requests while Stripe answers.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import stripe

from pattern_pdf.exceptions import PaymentError
from pattern_pdf.models import (
    CodeType,
    Coupon,
    CouponOrPromoCode,
    PaymentIntent,
    PaymentPayload,
    PromotionCode,
)

logger = logging.getLogger(__name__)


def _payment_intent(obj) -> PaymentIntent:
    payment_method = obj.get("payment_method")
    if isinstance(payment_method, dict):
        payment_method = payment_method.get("id")
    return PaymentIntent(
        id=obj["id"],
        status=obj.get("status", ""),
        payment_method=payment_method or None,
        client_secret=obj.get("client_secret"),
    )


def _promotion_code(obj) -> PromotionCode:
    coupon = obj.get("coupon")
    if isinstance(coupon, dict):
        coupon = coupon.get("id")
    return PromotionCode(
        id=obj["id"],
        active=bool(obj.get("active")),
        code=obj.get("code", ""),
        coupon_id=coupon,
    )


class StripePaymentService:
    """Payment processor backed by the Stripe API."""

    def __init__(self, api_key: str, *, currency: str = "usd") -> None:
        self.api_key = api_key
        self.currency = currency

    async def _call(self, func, *args, **kwargs):
        try:
            return await asyncio.to_thread(func, *args, api_key=self.api_key, **kwargs)
        except stripe.StripeError as exc:
            message = getattr(exc, "user_message", None) or str(exc)
            raise PaymentError(f"Stripe request failed: {message}") from exc

    async def create_payment_intent(
        self, amount: int, payload: PaymentPayload,
    ) -> PaymentIntent:
        params = {
            "amount": amount,
            "currency": self.currency,
            "automatic_payment_methods": {"enabled": True},
            "metadata": payload.to_metadata(),
        }
        if payload.email:
            params["receipt_email"] = payload.email
        intent = await self._call(stripe.PaymentIntent.create, **params)
        logger.info("Created payment intent %s for %d", intent["id"], amount)
        return _payment_intent(intent)

    async def retrieve_payment_intent(self, payment_id: str) -> PaymentIntent:
        return _payment_intent(await self._call(stripe.PaymentIntent.retrieve, payment_id))

    async def _find_coupon(self, code: str) -> Optional[Coupon]:
        try:
            coupon = await asyncio.to_thread(
                stripe.Coupon.retrieve, code, api_key=self.api_key,
            )
        except stripe.InvalidRequestError:
            return None
        except stripe.StripeError as exc:
            raise PaymentError(f"Stripe request failed: {exc}") from exc
        return Coupon(id=coupon["id"], valid=bool(coupon.get("valid")),
                      name=coupon.get("name") or "")

    async def get_coupon_or_promo_code(self, code: str) -> CouponOrPromoCode:
        """Look ``code`` up as a coupon id, then as a customer-facing promotion code."""
        coupon = await self._find_coupon(code)
        if coupon is not None:
            return CouponOrPromoCode(type=CodeType.COUPON, value=coupon)

        result = await self._call(stripe.PromotionCode.list, code=code, limit=1)
        data = result.get("data") or []
        if data:
            return CouponOrPromoCode(type=CodeType.PROMOCODE, value=_promotion_code(data[0]))

        logger.info("No coupon or promotion code matches %r", code)
        return CouponOrPromoCode(type=None, value=None)

    async def set_promotion_code_inactive(self, promotion_code_id: str) -> None:
        await self._call(stripe.PromotionCode.modify, promotion_code_id, active=False)
