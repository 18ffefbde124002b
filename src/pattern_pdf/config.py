"""Runtime settings read from the environment / .env file."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from pattern_pdf.exceptions import ConfigError


def _get_number(name: str, default: float, cast=float):
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc


def is_debug() -> bool:
    """Check if DEBUG is enabled via environment / .env."""
    return os.environ.get("DEBUG", "").lower() in ("1", "true")


@dataclass
class Settings:
    """Settings for the rendering engine and the external collaborators."""
    page_content_timeout: float = 10.0      # seconds, network-idle wait
    browser_max_age: float = 3600.0         # seconds before relaunch
    payment_amount: int = 1500              # cents
    payment_currency: str = "usd"
    stripe_secret_key: Optional[str] = None
    backend_url: str = "http://localhost:3000/api"
    backend_timeout: float = 30.0
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    mail_from: str = "patterns@localhost"
    debug: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from os.environ after loading a .env file."""
        from dotenv import load_dotenv

        load_dotenv()
        return cls(
            page_content_timeout=_get_number(
                "PAGE_CONTENT_GENERATION_TIMEOUT_SECONDS", 10.0),
            browser_max_age=_get_number("BROWSER_MAX_AGE_SECONDS", 3600.0),
            payment_amount=_get_number("PAYMENT_AMOUNT", 1500, int),
            payment_currency=os.getenv("PAYMENT_CURRENCY", "usd"),
            stripe_secret_key=os.getenv("STRIPE_SECRET_KEY") or None,
            backend_url=os.getenv("BACKEND_URL", "http://localhost:3000/api"),
            backend_timeout=_get_number("BACKEND_TIMEOUT_SECONDS", 30.0),
            smtp_host=os.getenv("SMTP_HOST") or None,
            smtp_port=_get_number("SMTP_PORT", 587, int),
            smtp_username=os.getenv("SMTP_USERNAME") or None,
            smtp_password=os.getenv("SMTP_PASSWORD") or None,
            mail_from=os.getenv("MAIL_FROM", "patterns@localhost"),
            debug=is_debug(),
        )
