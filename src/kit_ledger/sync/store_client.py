"""HTTP client for the remote record store.

The store is a single endpoint. ``GET`` returns every sheet as a JSON
object keyed by sheet name; ``POST`` takes one record operation::

    {"sheet": "Tools_Usage_Logs", "action": "update", "id": "...", "row": [...]}

Requests are retried with a doubling delay. Writes that still fail are
reported as unacknowledged rather than raised, and fetches that still fail
return ``None`` so callers can carry on with local state.
"""

import json
import logging
import time
from typing import Callable, Optional

import requests

from kit_ledger.config import Config

logger = logging.getLogger(__name__)


class SyncError(Exception):
    """Base exception for store synchronization."""


class StoreNotConfiguredError(SyncError):
    """No store URL has been configured."""


class StoreUnavailableError(SyncError):
    """The store did not answer after every retry."""


class StoreClient:
    """Talks to the record store over a shared ``requests.Session``."""

    def __init__(self, url: Optional[str] = None,
                 timeout: Optional[int] = None,
                 max_retries: Optional[int] = None,
                 backoff_seconds: Optional[float] = None,
                 session: Optional[requests.Session] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.url = url if url is not None else Config.STORE_URL
        self.timeout = timeout if timeout is not None else Config.STORE_TIMEOUT
        self.max_retries = (
            max_retries if max_retries is not None else Config.STORE_MAX_RETRIES
        )
        self.backoff_seconds = (
            backoff_seconds if backoff_seconds is not None
            else Config.STORE_BACKOFF_SECONDS
        )
        self.session = session or requests.Session()
        self._sleep = sleep

    @property
    def is_configured(self) -> bool:
        return bool(self.url)

    def _request(self, method: str, **kwargs) -> requests.Response:
        """Send one request, retrying up to ``max_retries`` more times."""
        if not self.is_configured:
            raise StoreNotConfiguredError("No store URL configured")

        delay = self.backoff_seconds
        attempts_left = self.max_retries
        while True:
            try:
                response = self.session.request(
                    method, self.url, timeout=self.timeout, **kwargs
                )
                response.raise_for_status()
                return response
            except requests.RequestException as e:
                if attempts_left <= 0:
                    raise StoreUnavailableError(
                        f"{method} {self.url} failed: {e}"
                    ) from e
                logger.warning(
                    f"Store {method} failed ({e}). Retrying in {delay:.1f}s "
                    f"({attempts_left} attempts left)"
                )
                self._sleep(delay)
                delay *= 2
                attempts_left -= 1

    def fetch_all(self) -> Optional[dict]:
        """Every sheet keyed by name, or None when the store is unreachable."""
        try:
            response = self._request("GET")
        except SyncError as e:
            logger.error(f"Store fetch exhausted, working from local data: {e}")
            return None
        try:
            data = response.json()
        except ValueError:
            logger.error(
                f"Store response was not valid JSON: {response.text[:100]!r}"
            )
            return None
        if not isinstance(data, dict):
            logger.error("Store response was not a sheet mapping")
            return None
        return data

    def send(self, sheet: str, action: str, record_id: str,
             row: Optional[list] = None) -> bool:
        """Post one record operation. Returns True when acknowledged."""
        payload = {"sheet": sheet, "action": action, "id": record_id}
        if row is not None:
            payload["row"] = row
        try:
            self._request(
                "POST",
                data=json.dumps(payload),
                headers={"Content-Type": "text/plain;charset=utf-8"},
            )
        except SyncError as e:
            logger.error(f"Store {action} of {sheet}/{record_id} not saved: {e}")
            return False
        return True

    def upsert(self, sheet: str, record_id: str, row: list) -> bool:
        return self.send(sheet, "update", record_id, row)

    def create(self, sheet: str, record_id: str, row: list) -> bool:
        return self.send(sheet, "create", record_id, row)

    def delete(self, sheet: str, record_id: str) -> bool:
        return self.send(sheet, "delete", record_id)
