"""REST client for the classified-images backend.

Uses the `requests` library; every blocking call is pushed to a worker thread
with `asyncio.to_thread` so the event loop stays responsive.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Sequence

import requests

from dal.record_adapter import records_from_payloads
from dal.record_source import AuthorizationError, RecordSourceError
from models.image_record import ImageRecord
from utils.media_urls import resolve_image_url

logger = logging.getLogger(__name__)

FULL_PAGE_SIZE = 5000


class BackendClient:
    """Async wrapper around the backend's classified-images endpoints.

    Args:
        api_url: Base API URL, e.g. `http://127.0.0.1:8000/api`.
        token: Optional bearer token.
        media_base: Origin used to resolve relative media paths.
        timeout: Per-request timeout in seconds.
        session: Optional preconfigured `requests.Session`.
    """

    supports_bulk_update = True

    def __init__(
        self,
        api_url: str,
        token: Optional[str] = None,
        media_base: Optional[str] = None,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not api_url:
            raise ValueError("Backend API URL must be provided.")
        self.api_url = api_url.rstrip("/")
        self.token = token
        self.media_base = (media_base or self.api_url).rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _send(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        """Issue one request and translate transport/status failures."""
        try:
            response = self.session.request(method, url, headers=self._get_headers(), timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as exc:
            raise RecordSourceError(f"{method} {url} failed: {exc}") from exc

        if response.status_code in (401, 403):
            raise AuthorizationError(f"{method} {url} was rejected as unauthorized ({response.status_code})")
        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as exc:
            raise RecordSourceError(f"{method} {url} returned {response.status_code}") from exc
        return response

    def _send_json(self, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        response = self._send(method, url, **kwargs)
        try:
            body = response.json()
        except ValueError as exc:
            raise RecordSourceError(f"{method} {url} returned a non-JSON body") from exc
        if not isinstance(body, dict):
            raise RecordSourceError(f"{method} {url} returned an unexpected payload")
        return body

    def _expect_success(self, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        body = self._send_json(method, url, **kwargs)
        if not body.get("success"):
            raise RecordSourceError(body.get("message") or f"{method} {url} did not report success")
        return body

    def _fetch_records_sync(self) -> List[ImageRecord]:
        params = {"page": 1, "page_size": FULL_PAGE_SIZE, "_t": int(time.time() * 1000)}
        body = self._send_json("GET", f"{self.api_url}/classified-images/", params=params)
        data = body.get("data")
        if not body.get("success") or not isinstance(data, dict) or not isinstance(data.get("images"), list):
            raise RecordSourceError("Invalid API response format")
        return records_from_payloads(data["images"])

    async def fetch_records(self) -> List[ImageRecord]:
        """Fetch the whole collection, cache-busted so every rebuild reads fresh data."""
        records = await asyncio.to_thread(self._fetch_records_sync)
        logger.info("Fetched %d image records from %s", len(records), self.api_url)
        return records

    async def bulk_update(self, image_ids: Sequence[int], updates: Dict[str, Any]) -> None:
        payload = {"image_ids": list(image_ids), "updates": dict(updates)}
        await asyncio.to_thread(
            self._expect_success, "POST", f"{self.api_url}/classified-images/bulk-update/", json=payload
        )

    async def update_record(self, image_id: int, updates: Dict[str, Any]) -> None:
        payload = {"notes": "", **updates}
        await asyncio.to_thread(
            self._expect_success, "PUT", f"{self.api_url}/classified-images/{image_id}/", json=payload
        )

    async def delete_record(self, image_id: int) -> None:
        await asyncio.to_thread(self._expect_success, "DELETE", f"{self.api_url}/classified-images/{image_id}/")

    async def fetch_image(self, record: ImageRecord) -> bytes:
        url = resolve_image_url(record, self.media_base)
        response = await asyncio.to_thread(self._send, "GET", url)
        return response.content

    async def download_image(self, image_id: int) -> bytes:
        response = await asyncio.to_thread(self._send, "GET", f"{self.api_url}/download-image/{image_id}/")
        return response.content

    def close(self) -> None:
        self.session.close()
