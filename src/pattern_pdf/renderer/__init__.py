"""Document rendering package: pattern previews and print-ready PDFs.

Uses Jinja2 templates + Playwright (headless Chromium).
"""

from __future__ import annotations

from pattern_pdf.renderer.html_renderer import (
    TemplateId,
    render_document,
    render_preview_pair,
    render_template,
)
from pattern_pdf.renderer.pdf_engine import BrowserPool, count_pages

__all__ = [
    "BrowserPool",
    "TemplateId",
    "count_pages",
    "render_document",
    "render_preview_pair",
    "render_template",
]
