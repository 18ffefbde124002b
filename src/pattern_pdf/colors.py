"""Fabric colour palette and placeholder substitution.

Piece SVGs carry ``{primaryColor}`` / ``{secondaryColor}`` placeholders that
become hex fills; instruction texts carry ``{primaryColorName}`` /
``{secondaryColorName}`` placeholders that become readable colour names
("Navy Blue").
"""

from __future__ import annotations

import re
from typing import Optional

DEFAULT_COLOR_NAME = "White"

SVG_PRIMARY_PLACEHOLDER = "{primaryColor}"
SVG_SECONDARY_PLACEHOLDER = "{secondaryColor}"
TEXT_PRIMARY_PLACEHOLDER = "{primaryColorName}"
TEXT_SECONDARY_PLACEHOLDER = "{secondaryColorName}"

# Colours offered in the pattern designer's picker, in picker order.
PALETTE = {
    "White": "#FFFFFF",
    "Ivory": "#F4EFE1",
    "Cream": "#EDE3C8",
    "Black": "#1B1B1B",
    "Charcoal": "#4A4A4A",
    "LightGray": "#C9C9C9",
    "Red": "#C62D2D",
    "Burgundy": "#7A1E2C",
    "Coral": "#EE7F6B",
    "BlushPink": "#F2C4C4",
    "Mustard": "#D9A520",
    "Orange": "#E07B28",
    "Olive": "#6B7039",
    "SageGreen": "#A3B18A",
    "ForestGreen": "#2E5233",
    "Teal": "#1F7A7A",
    "SkyBlue": "#8EC3E6",
    "NavyBlue": "#1F2A4D",
    "Lavender": "#B9A7D6",
    "Plum": "#5E2F5A",
    "Tan": "#C8A77E",
    "Brown": "#6B4429",
}

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z])(?=[A-Z])")


def split_color_name(name: Optional[str]) -> Optional[str]:
    """Split a CamelCase palette key into words: "NavyBlue" -> "Navy Blue"."""
    if not name:
        return name
    return _CAMEL_BOUNDARY.sub(" ", name)


def find_color_name(value: Optional[str], default: Optional[str] = None) -> Optional[str]:
    """Reverse lookup: first palette key whose hex matches ``value`` case-insensitively."""
    if value:
        needle = value.lower()
        for name, hex_value in PALETTE.items():
            if hex_value.lower() == needle:
                return name
    return default


def resolve_color_names(
    primary_color: Optional[str], secondary_color: Optional[str],
) -> tuple[str, Optional[str]]:
    """Return display names for a piece's colours.

    The primary name falls back to "White"; the secondary name is None when
    no secondary colour was chosen or it is not in the palette.
    """
    primary = split_color_name(find_color_name(primary_color, DEFAULT_COLOR_NAME))
    secondary = split_color_name(find_color_name(secondary_color))
    return primary, secondary


def _substitute(text: Optional[str], replacements: dict) -> str:
    if not text:
        return ""
    for placeholder, value in replacements.items():
        if value:
            text = text.replace(placeholder, value)
    return text


def replace_svg_placeholders(
    svg: Optional[str], primary_color: Optional[str], secondary_color: Optional[str],
) -> str:
    """Fill colour placeholders in piece SVG markup with hex values."""
    return _substitute(svg, {
        SVG_PRIMARY_PLACEHOLDER: primary_color,
        SVG_SECONDARY_PLACEHOLDER: secondary_color,
    })


def replace_color_names(
    text: Optional[str], primary_name: Optional[str], secondary_name: Optional[str],
) -> str:
    """Fill colour-name placeholders in instruction text."""
    return _substitute(text, {
        TEXT_PRIMARY_PLACEHOLDER: primary_name,
        TEXT_SECONDARY_PLACEHOLDER: secondary_name,
    })
