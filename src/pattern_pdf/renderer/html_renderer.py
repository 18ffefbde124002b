"""HTML template rendering for pattern previews and print documents.

Two template families, each with a basic and a premium variant:
  - previews: single-screen thumbnails rasterized to PNG
  - documents: multi-page A4 print layouts converted to PDF

plus the footer fragment Chromium repeats on every PDF page.
"""

from __future__ import annotations

import logging
from enum import Enum
from functools import lru_cache
from typing import Callable, Optional

from pattern_pdf.models import PatternData
from pattern_pdf.renderer.filters import TEMPLATE_DIR, TEMPLATE_HELPERS, setup_jinja_env

logger = logging.getLogger(__name__)

PARTIALS_DIR = TEMPLATE_DIR / "partials"


class TemplateId(str, Enum):
    BASIC_PREVIEW = "basic-pdf-preview.html"
    PREMIUM_PREVIEW = "premium-pdf-preview.html"
    BASIC_DOCUMENT = "basic-pdf-template.html"
    PREMIUM_DOCUMENT = "premium-pdf-template.html"
    FOOTER = "footer-template.html"


@lru_cache(maxsize=1)
def load_partials() -> dict[str, str]:
    """Shared fragments keyed by file stem ("styles" -> partials/styles.html)."""
    return {
        path.stem: path.read_text(encoding="utf-8")
        for path in sorted(PARTIALS_DIR.glob("*.html"))
    }


def _template_context(data: PatternData) -> dict:
    return {
        "pattern_name": data.pattern_name,
        "pattern_pieces": data.pattern_pieces,
        "pattern_assets": data.pattern_assets,
        "pattern_size": data.pattern_size,
        "materials": data.materials,
    }


def render_template(
    template_id: TemplateId | str,
    data: PatternData,
    *,
    helpers: Optional[dict[str, Callable]] = None,
    partials: Optional[dict[str, str]] = None,
) -> str:
    """Render a named template against assembled pattern data.

    Args:
        template_id: A TemplateId or a template file name.
        data: Output of ``assembler.assemble``.
        helpers: Extra template globals; the three instruction/piece
            predicates are always available.
        partials: Extra named fragments; the shared ones from
            ``partials/`` are always available.

    Returns:
        The rendered HTML markup.
    """
    name = template_id.value if isinstance(template_id, TemplateId) else template_id
    env = setup_jinja_env(
        helpers={**TEMPLATE_HELPERS, **(helpers or {})},
        partials={**load_partials(), **(partials or {})},
    )
    html = env.get_template(name).render(**_template_context(data))
    logger.debug("Rendered %s (%d chars)", name, len(html))
    return html


def render_preview_pair(data: PatternData) -> tuple[str, str]:
    """Basic and premium preview markup for the same pattern."""
    return (
        render_template(TemplateId.BASIC_PREVIEW, data),
        render_template(TemplateId.PREMIUM_PREVIEW, data),
    )


def render_document(data: PatternData, *, premium: bool) -> tuple[str, str]:
    """Full print document markup and its page footer."""
    template_id = TemplateId.PREMIUM_DOCUMENT if premium else TemplateId.BASIC_DOCUMENT
    return (
        render_template(template_id, data),
        render_template(TemplateId.FOOTER, data),
    )
