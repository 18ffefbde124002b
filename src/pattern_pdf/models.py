"""Data models for pattern rendering and fulfillment.

Request models parse the camelCase JSON sent by the web client via
``from_dict``; everything downstream works with snake_case attributes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union


def _parse_datetime(value) -> datetime:
    """Parse an ISO timestamp ("2024-03-01T10:00:00.000Z") into an aware datetime."""
    if isinstance(value, datetime):
        dt = value
    elif not value:
        return datetime.min.replace(tzinfo=timezone.utc)
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


# ── Catalog content ──────────────────────────────────────────────────

@dataclass
class Piece:
    id: str
    asset_id: str
    image: str = ""          # SVG markup with colour placeholders
    name: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "Piece":
        return cls(
            id=str(data["id"]),
            asset_id=str(data.get("assetId", "")),
            image=data.get("image") or "",
            name=data.get("name") or "",
        )


@dataclass
class PatternPiece:
    """A piece placed on the pattern canvas with its chosen colours."""
    piece: Piece
    primary_color: str
    position_x: float
    position_y: float
    secondary_color: Optional[str] = None
    rotate_deg: float = 0
    category_id: Optional[str] = None
    z_index: Optional[int] = None
    height: Optional[float] = None
    # Derived by the assembler
    primary_color_name: str = ""
    secondary_color_name: Optional[str] = None

    @property
    def piece_id(self) -> str:
        return self.piece.id

    @classmethod
    def from_dict(cls, data: dict) -> "PatternPiece":
        piece = Piece.from_dict(data["piece"])
        return cls(
            piece=piece,
            primary_color=data.get("primaryColor") or "",
            secondary_color=data.get("secondaryColor") or None,
            position_x=float(data.get("positionX") or 0),
            position_y=float(data.get("positionY") or 0),
            rotate_deg=data.get("rotateDeg") or 0,
            category_id=data.get("categoryId"),
            z_index=data.get("zIndex"),
            height=data.get("height"),
        )


@dataclass
class Instruction:
    id: str
    instruction_text: str
    created_at: datetime
    instruction_image_id: Optional[str] = None
    instruction_image: Optional[str] = None   # URL, resolved by the assembler
    side: Optional[str] = None                # None, "left" or "right"

    @classmethod
    def from_dict(cls, data: dict) -> "Instruction":
        return cls(
            id=str(data["id"]),
            instruction_text=data.get("instructionText") or "",
            created_at=_parse_datetime(data.get("createdAt")),
            instruction_image_id=data.get("instructionImageId") or None,
            side=data.get("side") or None,
        )


@dataclass
class Asset:
    id: str
    name: str
    instructions: list[Instruction] = field(default_factory=list)
    height: Optional[float] = None
    pieces: list[Piece] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "Asset":
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            height=data.get("height"),
            instructions=[Instruction.from_dict(i) for i in data.get("instructions") or []],
        )


@dataclass
class PatternSize:
    """Bounding box of all piece positions."""
    min_x: float = 0
    min_y: float = 0
    max_x: float = 0
    max_y: float = 0

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y


@dataclass
class PatternData:
    """Everything a template needs to render one pattern."""
    pattern_name: str
    pattern_pieces: list[PatternPiece]
    pattern_assets: list[Asset]
    pattern_size: PatternSize
    materials: list[str] = field(default_factory=list)


# ── Request models ───────────────────────────────────────────────────

@dataclass
class ContactInfo:
    email: str
    first_name: str = ""
    last_name: str = ""

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)

    @classmethod
    def from_dict(cls, data: dict) -> "ContactInfo":
        return cls(
            email=data["email"],
            first_name=data.get("firstName") or "",
            last_name=data.get("lastName") or "",
        )


@dataclass
class PaymentPayload:
    coupon: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None

    def to_metadata(self) -> dict:
        return {k: v for k, v in (("email", self.email), ("name", self.name)) if v}

    @classmethod
    def from_dict(cls, data: dict | None) -> "PaymentPayload":
        data = data or {}
        return cls(
            coupon=data.get("coupon") or None,
            email=data.get("email") or None,
            name=data.get("name") or None,
        )


@dataclass
class PdfData:
    pattern_name: str
    pattern_pieces: list[PatternPiece]
    pattern_assets: list[Asset]

    @classmethod
    def from_dict(cls, data: dict) -> "PdfData":
        return cls(
            pattern_name=data.get("patternName") or "",
            pattern_pieces=[PatternPiece.from_dict(p) for p in data.get("patternPieces") or []],
            pattern_assets=[Asset.from_dict(a) for a in data.get("patternAssets") or []],
        )


@dataclass
class BasicPdfRequest:
    pdf_data: PdfData
    contact_info: ContactInfo

    @classmethod
    def from_dict(cls, data: dict) -> "BasicPdfRequest":
        return cls(
            pdf_data=PdfData.from_dict(data),
            contact_info=ContactInfo.from_dict(data["contactInfo"]),
        )


@dataclass
class PremiumPdfRequest:
    pdf_data: PdfData
    payment_payload: PaymentPayload

    @classmethod
    def from_dict(cls, data: dict) -> "PremiumPdfRequest":
        return cls(
            pdf_data=PdfData.from_dict(data),
            payment_payload=PaymentPayload.from_dict(data.get("paymentPayload")),
        )


@dataclass
class SendPremiumPdfRequest:
    file_id: str
    pattern_id: str
    payment_id: str
    contact_info: ContactInfo
    payment_payload: PaymentPayload = field(default_factory=PaymentPayload)

    @classmethod
    def from_dict(cls, data: dict) -> "SendPremiumPdfRequest":
        return cls(
            file_id=str(data["fileId"]),
            pattern_id=str(data["patternId"]),
            payment_id=str(data["paymentId"]),
            contact_info=ContactInfo.from_dict(data["contactInfo"]),
            payment_payload=PaymentPayload.from_dict(data.get("paymentPayload")),
        )


@dataclass
class CouponPdfRequest:
    """Coupon fulfillment: either fresh pattern data or an existing file/pattern."""
    coupon_id: str
    contact_info: ContactInfo
    pdf_data: Optional[PdfData] = None
    file_id: Optional[str] = None
    pattern_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "CouponPdfRequest":
        has_pattern = bool(data.get("patternPieces"))
        return cls(
            coupon_id=str(data["couponId"]),
            contact_info=ContactInfo.from_dict(data["contactInfo"]),
            pdf_data=PdfData.from_dict(data) if has_pattern else None,
            file_id=data.get("fileId") or None,
            pattern_id=data.get("patternId") or None,
        )


# ── Results ──────────────────────────────────────────────────────────

@dataclass
class FulfillmentResult:
    file_id: str
    pattern_id: str
    payment_id: Optional[str] = None
    client_secret: Optional[str] = None

    def to_dict(self) -> dict:
        result = {"fileId": self.file_id, "patternId": self.pattern_id}
        if self.payment_id:
            result["paymentId"] = self.payment_id
            result["clientSecret"] = self.client_secret
        return result


@dataclass
class PdfPreviews:
    basic_preview: str      # base64 PNG
    premium_preview: str    # base64 PNG


# ── Collaborator records ─────────────────────────────────────────────

@dataclass
class Pattern:
    id: str
    name: str


@dataclass
class StoredFile:
    id: str
    url: str


@dataclass
class PaymentIntent:
    id: str
    status: str
    payment_method: Optional[str] = None
    client_secret: Optional[str] = None


class CodeType(str, Enum):
    COUPON = "coupon"
    PROMOCODE = "promocode"


@dataclass
class Coupon:
    id: str
    valid: bool
    name: str = ""


@dataclass
class PromotionCode:
    id: str
    active: bool
    code: str = ""
    coupon_id: Optional[str] = None


@dataclass
class CouponOrPromoCode:
    """Result of a coupon lookup: a coupon, a promotion code, or nothing."""
    type: Optional[CodeType]
    value: Union[Coupon, PromotionCode, None] = None
