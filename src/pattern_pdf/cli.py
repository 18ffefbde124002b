"""Command line entry point: render previews and PDFs from a pattern file.

Usage:
    pattern-pdf preview pattern.json --out-dir output/
    pattern-pdf render pattern.json output/pattern.pdf --premium

The JSON file holds the designer payload (patternName, patternPieces,
patternAssets). Nothing is persisted or emailed; instruction images are
left out.
"""

from __future__ import annotations

import argparse
import asyncio
import base64
import json
import logging
import sys
from pathlib import Path

from pattern_pdf.assembler import assemble
from pattern_pdf.config import Settings
from pattern_pdf.exceptions import PatternPdfError
from pattern_pdf.models import PdfData
from pattern_pdf.renderer.html_renderer import render_document, render_preview_pair
from pattern_pdf.renderer.pdf_engine import (
    MARGINS_BASIC,
    MARGINS_PREMIUM,
    PREMIUM_PRINT_STYLE,
    BrowserPool,
    count_pages,
)

logger = logging.getLogger(__name__)


def load_pdf_data(path: Path) -> PdfData:
    return PdfData.from_dict(json.loads(Path(path).read_text(encoding="utf-8")))


async def write_previews(pool: BrowserPool, pdf_data: PdfData, out_dir: Path) -> list[Path]:
    data = await assemble(pdf_data, premium=True)
    out_dir.mkdir(parents=True, exist_ok=True)
    written = []
    page = await pool.acquire_page()
    try:
        for name, html in zip(("basic", "premium"), render_preview_pair(data)):
            png = await pool.rasterize(page, html)
            path = out_dir / f"{name}.png"
            path.write_bytes(base64.b64decode(png))
            written.append(path)
    finally:
        await page.close()
    return written


async def write_pdf(
    pool: BrowserPool, pdf_data: PdfData, output: Path, *, premium: bool,
) -> Path:
    data = await assemble(pdf_data, premium=premium)
    html, footer = render_document(data, premium=premium)
    page = await pool.acquire_page(html)
    try:
        pdf = await pool.to_pdf(
            page,
            margins=MARGINS_PREMIUM if premium else MARGINS_BASIC,
            footer_template=footer,
            style=PREMIUM_PRINT_STYLE if premium else None,
        )
    finally:
        await page.close()

    output = Path(output).with_suffix(".pdf")
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(pdf)
    logger.info("Wrote %s (%s pages)", output, count_pages(pdf))
    return output


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pattern-pdf", description=__doc__.splitlines()[0])
    sub = parser.add_subparsers(dest="command", required=True)

    preview = sub.add_parser("preview", help="Render basic and premium PNG previews")
    preview.add_argument("pattern", type=Path)
    preview.add_argument("--out-dir", type=Path, default=Path("output"))

    render = sub.add_parser("render", help="Render the print PDF")
    render.add_argument("pattern", type=Path)
    render.add_argument("output", type=Path)
    render.add_argument("--premium", action="store_true", help="Premium document variant")
    return parser


async def _run(args: argparse.Namespace, settings: Settings) -> None:
    pool = BrowserPool(
        max_age=settings.browser_max_age,
        content_timeout=settings.page_content_timeout,
    )
    try:
        pdf_data = load_pdf_data(args.pattern)
        if args.command == "preview":
            for path in await write_previews(pool, pdf_data, args.out_dir):
                print(path)
        else:
            print(await write_pdf(pool, pdf_data, args.output, premium=args.premium))
    finally:
        await pool.close()


def main(argv: list[str] | None = None) -> int:
    settings = Settings.from_env()
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    args = build_parser().parse_args(argv)

    try:
        asyncio.run(_run(args, settings))
    except (PatternPdfError, OSError, ValueError) as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
