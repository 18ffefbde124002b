"""Pattern PDF fulfillment: previews, PDFs and email delivery."""

from __future__ import annotations

from pattern_pdf.version import __version__

__all__ = ["__version__"]
