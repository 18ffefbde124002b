"""Custom exception hierarchy for pattern_pdf."""

from __future__ import annotations


class PatternPdfError(Exception):
    """Base exception for all pattern_pdf errors."""


class ValidationError(PatternPdfError):
    """Client-facing errors: bad coupon, unpaid intent, missing records.

    The message is shown to the customer verbatim.
    """


class ConfigError(PatternPdfError):
    """Missing or malformed configuration values."""


class PaymentError(PatternPdfError):
    """Errors reported by the payment processor."""


class StorageError(PatternPdfError):
    """Errors reported by the pattern/file backend."""


class MailError(PatternPdfError):
    """Errors delivering an email."""


class NetworkError(PatternPdfError):
    """Transport errors (timeout, connection refused, DNS failure)."""
