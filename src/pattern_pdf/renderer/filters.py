"""Jinja2 template helpers and environment setup."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

from jinja2 import ChoiceLoader, DictLoader, Environment, FileSystemLoader, StrictUndefined
from markupsafe import Markup, escape

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates" / "html"

_SIDE_INSTRUCTIONS = ("left", "right")


def is_simple_instruction(instruction) -> bool:
    """True for a single-piece instruction (not one half of a left/right pair)."""
    side = getattr(instruction, "side", None)
    return (side or "").lower() not in _SIDE_INSTRUCTIONS


def is_secondary_color(piece) -> bool:
    """True when the placed piece has a secondary colour."""
    return bool(getattr(piece, "secondary_color", None))


def is_image_instruction(instruction) -> bool:
    """True when the instruction carries a resolved image URL."""
    return bool(getattr(instruction, "instruction_image", None))


TEMPLATE_HELPERS: dict[str, Callable] = {
    "is_simple_instruction": is_simple_instruction,
    "is_secondary_color": is_secondary_color,
    "is_image_instruction": is_image_instruction,
}


def nl2br(text: str) -> Markup:
    """Escape text and convert newlines to <br> tags."""
    if not text:
        return Markup("")
    return Markup(str(escape(text)).replace("\n", "<br>\n"))


def setup_jinja_env(
    helpers: Optional[dict[str, Callable]] = None,
    partials: Optional[dict[str, str]] = None,
) -> Environment:
    """Create a Jinja2 environment with the given helpers and partials.

    Partials are named markup fragments that templates pull in with
    ``{% include "name" %}``; they shadow files of the same name.
    """
    loaders = [FileSystemLoader(str(TEMPLATE_DIR))]
    if partials:
        loaders.insert(0, DictLoader(dict(partials)))

    env = Environment(
        loader=ChoiceLoader(loaders),
        autoescape=True,  # piece SVG is marked | safe in the templates
        undefined=StrictUndefined,
    )
    env.filters["nl2br"] = nl2br
    env.globals.update(helpers or {})
    return env
