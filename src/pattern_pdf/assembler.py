"""Builds the render data set for one pattern.

Joins placed pieces to their catalog assets, orders instructions, resolves
colour placeholders, normalizes piece positions against the pattern's
bounding box and collects the materials list.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import replace
from typing import Optional

from pattern_pdf.collaborators import FileStore
from pattern_pdf.colors import (
    replace_color_names,
    replace_svg_placeholders,
    resolve_color_names,
)
from pattern_pdf.models import (
    Asset,
    Instruction,
    PatternData,
    PatternPiece,
    PatternSize,
    PdfData,
)

logger = logging.getLogger(__name__)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def calculate_pattern_size(pieces: list[PatternPiece]) -> PatternSize:
    """Bounding box over all piece positions (all zeros for no pieces)."""
    if not pieces:
        return PatternSize()
    xs = [p.position_x for p in pieces]
    ys = [p.position_y for p in pieces]
    return PatternSize(min_x=min(xs), min_y=min(ys), max_x=max(xs), max_y=max(ys))


def prepare_pattern_pieces(
    pieces: list[PatternPiece], size: PatternSize,
) -> list[PatternPiece]:
    """Normalize positions to the bounding box and resolve piece colours."""
    prepared = []
    for piece in pieces:
        primary_name, secondary_name = resolve_color_names(
            piece.primary_color, piece.secondary_color,
        )
        image = replace_svg_placeholders(
            piece.piece.image, piece.primary_color, piece.secondary_color,
        )
        prepared.append(replace(
            piece,
            piece=replace(piece.piece, image=image),
            position_x=_round_half_up(piece.position_x - size.min_x),
            position_y=_round_half_up(piece.position_y - size.min_y),
            rotate_deg=piece.rotate_deg or 0,
            primary_color_name=primary_name,
            secondary_color_name=secondary_name,
        ))
    return prepared


def pattern_piece_records(pieces: list[PatternPiece]) -> list[dict]:
    """The persistable subset of each placed piece, for the pattern store."""
    return [
        {
            "primaryColor": p.primary_color,
            "secondaryColor": p.secondary_color,
            "positionX": p.position_x,
            "positionY": p.position_y,
            "rotateDeg": p.rotate_deg,
            "pieceId": p.piece_id,
            "categoryId": p.category_id,
        }
        for p in pieces
    ]


async def _prepare_instruction(
    instruction: Instruction,
    owner: Optional[PatternPiece],
    file_lookup: Optional[FileStore],
) -> Instruction:
    text = instruction.instruction_text
    if owner is not None:
        text = replace_color_names(
            text, owner.primary_color_name, owner.secondary_color_name,
        )

    image_url = None
    if instruction.instruction_image_id and file_lookup is not None:
        image = await file_lookup.get_file(instruction.instruction_image_id)
        image_url = image.url if image else None

    return replace(instruction, instruction_text=text, instruction_image=image_url)


async def _prepare_asset(
    asset: Asset,
    pieces: list[PatternPiece],
    file_lookup: Optional[FileStore],
    premium: bool,
) -> Asset:
    own_pieces = [p for p in pieces if p.piece.asset_id == asset.id]
    owner = own_pieces[0] if own_pieces else None
    if owner is None and asset.instructions:
        logger.warning(
            "Asset %s (%s) has %d instructions but no piece on the pattern; "
            "colour names left unresolved",
            asset.id, asset.name, len(asset.instructions),
        )

    instructions = await asyncio.gather(*(
        _prepare_instruction(i, owner, file_lookup) for i in asset.instructions
    ))
    ordered = sorted(instructions, key=lambda i: i.created_at)

    return replace(
        asset,
        instructions=ordered,
        pieces=[p.piece for p in own_pieces] if premium else list(asset.pieces),
    )


def collect_materials(pieces: list[PatternPiece]) -> list[str]:
    """Deduplicated colour names used across all pieces, first-seen order."""
    materials: dict[str, None] = {}
    for piece in pieces:
        materials.setdefault(piece.primary_color_name, None)
        if piece.secondary_color_name:
            materials.setdefault(piece.secondary_color_name, None)
    return list(materials)


async def assemble(
    pdf_data: PdfData,
    *,
    file_lookup: Optional[FileStore] = None,
    premium: bool = True,
) -> PatternData:
    """Build the PatternData for ``pdf_data``.

    Args:
        pdf_data: Pieces and assets as sent by the designer.
        file_lookup: Resolves instruction image ids to URLs. When None,
            instruction images are left out.
        premium: Attach each asset's own pieces (premium documents draw
            them next to the instructions).
    """
    size = calculate_pattern_size(pdf_data.pattern_pieces)
    pieces = prepare_pattern_pieces(pdf_data.pattern_pieces, size)

    assets = await asyncio.gather(*(
        _prepare_asset(asset, pieces, file_lookup, premium)
        for asset in pdf_data.pattern_assets
    ))

    logger.debug("Assembled %r: %d pieces, %d assets, size %sx%s",
                 pdf_data.pattern_name, len(pieces), len(assets),
                 size.width, size.height)

    return PatternData(
        pattern_name=pdf_data.pattern_name,
        pattern_pieces=pieces,
        pattern_assets=list(assets),
        pattern_size=size,
        materials=collect_materials(pieces),
    )
