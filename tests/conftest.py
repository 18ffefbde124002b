"""Shared fixtures: in-memory collaborators and a fake rendering pool."""

from __future__ import annotations

import io
from datetime import datetime, timedelta, timezone

import pytest
from pypdf import PdfWriter

from pattern_pdf.models import (
    Asset,
    CodeType,
    Coupon,
    CouponOrPromoCode,
    Instruction,
    Pattern,
    PatternPiece,
    PaymentIntent,
    PdfData,
    Piece,
    PromotionCode,
    StoredFile,
)


def make_pdf_bytes(pages: int = 1) -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=595, height=842)
    buf = io.BytesIO()
    writer.write(buf)
    return buf.getvalue()


# ── Fakes ────────────────────────────────────────────────────────────

class FakePage:
    def __init__(self, markup=None):
        self.loaded = [markup] if markup else []
        self.closed = False

    async def close(self):
        self.closed = True


class FakePool:
    """Stands in for BrowserPool; records pages and rendered markup."""

    def __init__(self, pdf_pages: int = 2, fail_on_pdf: Exception | None = None):
        self.pages: list[FakePage] = []
        self.pdf_calls: list[dict] = []
        self.rasterized: list[str] = []
        self._pdf = make_pdf_bytes(pdf_pages)
        self._fail_on_pdf = fail_on_pdf

    async def acquire_page(self, markup=None):
        page = FakePage(markup)
        self.pages.append(page)
        return page

    async def rasterize(self, page, markup=None):
        page.loaded.append(markup)
        self.rasterized.append(markup)
        return f"png-{len(self.rasterized)}"

    async def to_pdf(self, page, markup=None, **options):
        if self._fail_on_pdf is not None:
            raise self._fail_on_pdf
        self.pdf_calls.append({"markup": page.loaded[-1] if page.loaded else markup, **options})
        return self._pdf


class InMemoryBackend:
    """Pattern store and file store in one, like the real backend client."""

    def __init__(self):
        self.patterns: dict[str, Pattern] = {}
        self.pattern_pieces: dict[str, list[dict]] = {}
        self.files: dict[str, StoredFile] = {}
        self.file_data: dict[str, bytes] = {}
        self.file_names: list[str] = []
        self.images: dict[str, StoredFile] = {}

    async def create_pattern(self, name, pieces):
        pattern = Pattern(id=f"pat-{len(self.patterns) + 1}", name=name)
        self.patterns[pattern.id] = pattern
        self.pattern_pieces[pattern.id] = pieces
        return pattern

    async def get_pattern(self, pattern_id):
        return self.patterns.get(pattern_id)

    async def create_file(self, name, data):
        file = StoredFile(id=f"file-{len(self.files) + 1}", url=f"https://files.test/{name}")
        self.files[file.id] = file
        self.file_data[file.id] = data
        self.file_names.append(name)
        return file

    async def get_file(self, file_id):
        return self.files.get(file_id) or self.images.get(file_id)


class FakePayments:
    def __init__(self, code: CouponOrPromoCode | None = None,
                 intent: PaymentIntent | None = None):
        self.code = code or CouponOrPromoCode(type=None, value=None)
        self.intent = intent or PaymentIntent(
            id="pi_1", status="succeeded", payment_method="pm_1", client_secret="pi_1_secret",
        )
        self.created_intents: list[tuple] = []
        self.code_lookups: list[str] = []
        self.deactivated: list[str] = []

    async def create_payment_intent(self, amount, payload):
        self.created_intents.append((amount, payload))
        return PaymentIntent(id="pi_new", status="requires_payment_method",
                             client_secret="pi_new_secret")

    async def retrieve_payment_intent(self, payment_id):
        return self.intent

    async def get_coupon_or_promo_code(self, code):
        self.code_lookups.append(code)
        return self.code

    async def set_promotion_code_inactive(self, promotion_code_id):
        self.deactivated.append(promotion_code_id)


class RecordingMail:
    def __init__(self, fail: Exception | None = None):
        self.sent: list[tuple] = []
        self._fail = fail

    async def _record(self, *entry):
        if self._fail is not None:
            raise self._fail
        self.sent.append(entry)

    async def send_free_pattern(self, contact, pattern, file):
        await self._record("free", contact, pattern, file)

    async def send_premium_pattern(self, contact, pattern, file, payment_intent, payment_payload):
        await self._record("premium", contact, pattern, file, payment_intent)

    async def send_coupon_pattern(self, contact, pattern, file, coupon_id):
        await self._record("coupon", contact, pattern, file, coupon_id)


# ── Sample data ──────────────────────────────────────────────────────

T0 = datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)

PIECE_SVG = '<svg><path fill="{primaryColor}"/><path fill="{secondaryColor}"/></svg>'


def make_piece(piece_id="piece-1", asset_id="asset-1", x=150.0, y=80.0,
               primary="#1F2A4D", secondary=None, rotate=0) -> PatternPiece:
    return PatternPiece(
        piece=Piece(id=piece_id, asset_id=asset_id, image=PIECE_SVG, name=piece_id),
        primary_color=primary,
        secondary_color=secondary,
        position_x=x,
        position_y=y,
        rotate_deg=rotate,
        category_id="cat-1",
    )


def make_asset(asset_id="asset-1", texts=("Cut the {primaryColorName} bodice.",),
               image_ids=None) -> Asset:
    image_ids = image_ids or [None] * len(texts)
    instructions = [
        Instruction(
            id=f"{asset_id}-i{n}",
            instruction_text=text,
            created_at=T0 + timedelta(minutes=n),
            instruction_image_id=image_id,
        )
        for n, (text, image_id) in enumerate(zip(texts, image_ids))
    ]
    return Asset(id=asset_id, name=f"Asset {asset_id}", instructions=instructions)


def make_pdf_data(pieces=None, assets=None, name="Summer Dress") -> PdfData:
    return PdfData(
        pattern_name=name,
        pattern_pieces=pieces if pieces is not None else [make_piece()],
        pattern_assets=assets if assets is not None else [make_asset()],
    )


def coupon_code(valid=True) -> CouponOrPromoCode:
    return CouponOrPromoCode(type=CodeType.COUPON, value=Coupon(id="SPRING", valid=valid))


def promo_code(active=True) -> CouponOrPromoCode:
    return CouponOrPromoCode(
        type=CodeType.PROMOCODE, value=PromotionCode(id="promo_1", active=active, code="FRIEND"),
    )


@pytest.fixture
def pool():
    return FakePool()


@pytest.fixture
def backend():
    return InMemoryBackend()


@pytest.fixture
def mail():
    return RecordingMail()
