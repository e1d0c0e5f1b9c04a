"""
HTTP client for a remote item sync API.

Implements ItemStoreProtocol over a JSON API. Decryption happens on the
service side of this boundary; items arrive here already decrypted.

Endpoints:
    GET  /v1/items?content_type=Note[&cursor=...]  -> {items: [...], cursor}
    POST /v1/items/batch  {items: [...]}           -> {saved: [ids], errors: [{id, error}]}
    POST /v1/items        {content_type, fields}   -> item
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from .errors import StoreError
from .types import Item, ItemDraft, SubmitResult

logger = logging.getLogger(__name__)

# Retry config for transient failures
MAX_RETRIES = 3
RETRY_BACKOFF_BASE = 1.0  # seconds

DEFAULT_TIMEOUT = 30.0
DEFAULT_BATCH_SIZE = 150


class RemoteItemStore:
    """HTTP client for the item sync API."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self._api_url = api_url.rstrip("/")
        self._batch_size = batch_size

        # Refuse non-HTTPS for remote APIs (bearer token would be sent in cleartext)
        if not self._api_url.startswith("https://"):
            from urllib.parse import urlparse
            host = urlparse(self._api_url).hostname or ""
            if host not in ("localhost", "127.0.0.1", "::1"):
                raise ValueError(
                    f"Item API URL must use HTTPS (got {self._api_url}). "
                    "Use HTTPS to protect API credentials, or use localhost for local development."
                )

        self._client = httpx.Client(
            base_url=self._api_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
        )

    @property
    def batch_size(self) -> int:
        return self._batch_size

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        """Send a request and return the decoded JSON object.

        Retries up to MAX_RETRIES times with exponential backoff on 429, 5xx
        and transport errors (timeouts, dropped connections). Every other
        failure, including a body that is not a JSON object, raises StoreError.
        """
        last_error: Exception | None = None
        for attempt in range(MAX_RETRIES):
            try:
                resp = self._client.request(method, path, **kwargs)
                if resp.status_code == 429:
                    retry_after = min(float(resp.headers.get("Retry-After", "5")), 60.0)
                    logger.info("Rate limited, retrying after %.1fs", retry_after)
                    time.sleep(retry_after)
                    last_error = StoreError(f"{method} {path} rate limited")
                    continue
                resp.raise_for_status()
                return self._decode(resp, method, path)
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if status < 500:
                    if status in (401, 403):
                        raise StoreError(f"Not authorized ({status}): check the API key") from e
                    raise StoreError(
                        f"{method} {path} rejected: {status} {e.response.text}"
                    ) from e
                last_error = e
            except httpx.TransportError as e:
                last_error = e
            except httpx.HTTPError as e:
                raise StoreError(f"{method} {path} failed: {e}") from e

            if attempt < MAX_RETRIES - 1:
                delay = RETRY_BACKOFF_BASE * (2 ** attempt)
                logger.info(
                    "%s %s attempt %d failed, retrying in %.1fs: %s",
                    method, path, attempt + 1, delay, last_error,
                )
                time.sleep(delay)

        raise StoreError(
            f"{method} {path} failed after {MAX_RETRIES} attempts: {last_error}"
        ) from last_error

    @staticmethod
    def _decode(resp: httpx.Response, method: str, path: str) -> dict[str, Any]:
        try:
            data = resp.json()
        except ValueError as e:
            snippet = (resp.text or "")[:80]
            raise StoreError(f"{method} {path} returned a non-JSON body: {snippet!r}") from e
        if not isinstance(data, dict):
            raise StoreError(
                f"{method} {path} returned {type(data).__name__}, expected a JSON object"
            )
        return data

    def fetch(self, content_type: str, hints=None) -> list[Item]:
        """GET /v1/items, following cursors until the last page.

        Pages may overlap, so the result can repeat items.
        """
        items: list[Item] = []
        params: dict[str, str] = {"content_type": content_type}
        seen_cursors: set[str] = set()
        while True:
            data = self._request("GET", "/v1/items", params=params)
            try:
                items.extend(Item.from_dict(d) for d in data.get("items", []))
            except (KeyError, TypeError, AttributeError) as e:
                raise StoreError(f"Malformed item in fetch response: {e}") from e
            cursor = data.get("cursor")
            if not cursor or cursor in seen_cursors:
                break
            seen_cursors.add(cursor)
            params = {"content_type": content_type, "cursor": cursor}
        logger.debug("Fetched %d %s item(s) in %d page(s)", len(items), content_type, len(seen_cursors) + 1)
        return items

    def submit(self, items: list[Item]) -> SubmitResult:
        """POST /v1/items/batch. Items the server rejects are reported per item.

        An item the server neither saved nor rejected counts as failed with
        "not acknowledged", so it is never reported as deleted.
        """
        data = self._request("POST", "/v1/items/batch", json={"items": [i.to_dict() for i in items]})
        saved = data.get("saved") or []
        reported = data.get("errors") or []
        if not isinstance(saved, list) or not isinstance(reported, list):
            raise StoreError("Malformed batch response: saved and errors must be lists")

        saved_ids = {s for s in saved if isinstance(s, str)}
        errors = {
            e["id"]: e.get("error", "rejected")
            for e in reported
            if isinstance(e, dict) and isinstance(e.get("id"), str)
        }
        succeeded = 0
        for item in items:
            if item.id in errors:
                continue
            if item.id in saved_ids:
                succeeded += 1
            else:
                errors[item.id] = "not acknowledged"
        if errors:
            logger.debug("Batch of %d: %d saved, %d not saved", len(items), succeeded, len(errors))
        return SubmitResult(succeeded=succeeded, errors=errors)

    def create(self, draft: ItemDraft) -> Item:
        """POST /v1/items -> created item."""
        data = self._request(
            "POST",
            "/v1/items",
            json={"content_type": draft.content_type, "fields": dict(draft.fields)},
        )
        try:
            return Item.from_dict(data)
        except (KeyError, TypeError) as e:
            raise StoreError(f"Malformed create response: {e}") from e

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()
