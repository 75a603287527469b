import logging

import requests

from backend.config import settings

logger = logging.getLogger(__name__)


class LoadError(RuntimeError):
    """A record set could not be fetched or decoded."""

    def __init__(self, record_set: str, message: str | None = None):
        self.record_set = record_set
        super().__init__(message or f"Failed to load record set '{record_set}'")


class SheetClient:
    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = (base_url or settings.sheet_api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.sheet_request_timeout_seconds

    def fetch_all(self, sheet: str) -> list[dict]:
        return self._get(self.base_url, sheet, {"sheet": sheet})

    def search(self, sheet: str, filters: dict[str, str]) -> list[dict]:
        params = {"sheet": sheet}
        params.update(filters or {})
        return self._get(f"{self.base_url}/search", sheet, params)

    def _get(self, url: str, sheet: str, params: dict[str, str]) -> list[dict]:
        logger.debug("Fetching sheet %s from %s params=%s", sheet, url, params)
        try:
            res = requests.get(url, params=params, timeout=self.timeout)
        except requests.Timeout as exc:
            logger.warning("Timed out fetching sheet %s: %s", sheet, exc)
            raise LoadError(sheet, f"Timed out loading record set '{sheet}'") from exc
        except requests.RequestException as exc:
            logger.warning("Transport error fetching sheet %s: %s", sheet, exc)
            raise LoadError(sheet, f"Failed to load record set '{sheet}'") from exc

        if not res.ok:
            logger.warning("Sheet %s returned HTTP %s", sheet, res.status_code)
            raise LoadError(sheet, f"Failed to load record set '{sheet}' (HTTP {res.status_code})")
        try:
            payload = res.json()
        except ValueError as exc:
            raise LoadError(sheet, f"Record set '{sheet}' returned invalid JSON") from exc
        if not isinstance(payload, list):
            raise LoadError(sheet, f"Record set '{sheet}' did not return a list of rows")
        return payload
