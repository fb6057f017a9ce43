"""Indexer REST source for the history reconstructor."""
from __future__ import annotations

import logging

import requests

from .constants import INDEXER_PAGE_LIMIT
from .errors import HistorySourceUnavailable

logger = logging.getLogger(__name__)


class IndexerSource:
    """Reads ``GET /v2/transactions`` filtered by application id.

    A ``requests.Session`` can be passed in so callers share connection pools
    (and tests can substitute a fake).
    """

    name = "indexer"

    def __init__(self, base_url: str, token: str = "", timeout: float = 10.0,
                 session: requests.Session | None = None):
        self.base_url = (base_url or "").rstrip("/")
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

    def search_transactions(self, application_id: int, next_token: str | None = None,
                            limit: int = INDEXER_PAGE_LIMIT) -> dict:
        if not self.base_url:
            raise HistorySourceUnavailable("Indexer URL is not configured", operation="history")
        params: dict = {"application-id": application_id, "limit": limit}
        if next_token:
            params["next"] = next_token
        headers = {"X-Indexer-API-Token": self.token} if self.token else {}

        try:
            resp = self.session.get(
                f"{self.base_url}/v2/transactions",
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
            resp.raise_for_status()
            page = resp.json()
        except requests.RequestException as e:
            logger.warning(f"[INDEXER] Request for app {application_id} failed: {e}")
            raise HistorySourceUnavailable(f"Indexer unreachable: {e}", operation="history") from e
        except ValueError as e:
            raise HistorySourceUnavailable(f"Indexer returned invalid JSON: {e}", operation="history") from e
        if not isinstance(page, dict):
            raise HistorySourceUnavailable("Indexer returned a non-object page", operation="history")

        logger.debug(f"[INDEXER] app {application_id}: {len(page.get('transactions') or [])} txn(s)")
        return page
