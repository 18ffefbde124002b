"""Backend client: persists patterns and PDF files.

All interaction with the catalog backend's pattern and file endpoints goes
through this module. Requests are not retried; a failed call fails the
fulfillment flow that made it.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from pattern_pdf.exceptions import NetworkError, StorageError
from pattern_pdf.models import Pattern, StoredFile

logger = logging.getLogger(__name__)


class BackendClient:
    """Async HTTP client for the pattern and file endpoints."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    # -- HTTP helpers -------------------------------------------------------

    async def _request(
        self, method: str, url: str, *, allow_missing: bool = False, **kwargs,
    ) -> Optional[httpx.Response]:
        """Execute a request; a 404 yields None when ``allow_missing``."""
        try:
            logger.debug("%s %s", method, url)
            resp = await self.client.request(method, url, **kwargs)
            logger.debug("Response: %d (%d bytes)", resp.status_code, len(resp.content))
            if allow_missing and resp.status_code == 404:
                return None
            resp.raise_for_status()
            return resp
        except httpx.HTTPStatusError as exc:
            raise StorageError(
                f"Backend returned HTTP {exc.response.status_code} for {method} {url}"
            ) from exc
        except httpx.TimeoutException as exc:
            raise NetworkError(f"Request timed out: {method} {url}") from exc
        except httpx.RequestError as exc:
            raise NetworkError(f"Network error contacting backend: {exc}") from exc

    # -- Patterns -----------------------------------------------------------

    async def create_pattern(self, name: str, pieces: list[dict]) -> Pattern:
        resp = await self._request(
            "POST", "/patterns", json={"name": name, "patternPieces": pieces},
        )
        data = resp.json()
        logger.info("Created pattern %s (%s)", data["id"], data.get("name"))
        return Pattern(id=str(data["id"]), name=data.get("name", name))

    async def get_pattern(self, pattern_id: str) -> Optional[Pattern]:
        resp = await self._request("GET", f"/patterns/{pattern_id}", allow_missing=True)
        if resp is None:
            return None
        data = resp.json()
        return Pattern(id=str(data["id"]), name=data.get("name", ""))

    # -- Files --------------------------------------------------------------

    async def create_file(self, name: str, data: bytes) -> StoredFile:
        resp = await self._request(
            "POST", "/files", files={"file": (name, data, "application/pdf")},
        )
        body = resp.json()
        return StoredFile(id=str(body["id"]), url=body.get("url", ""))

    async def get_file(self, file_id: str) -> Optional[StoredFile]:
        resp = await self._request("GET", f"/files/{file_id}", allow_missing=True)
        if resp is None:
            return None
        body = resp.json()
        return StoredFile(id=str(body["id"]), url=body.get("url", ""))

    async def close(self) -> None:
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()
