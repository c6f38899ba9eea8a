import json
import logging
import os
from typing import Any, Dict, Optional, Protocol

import requests

OPT_OUT_KEY = "analytics-opt-out"

logger = logging.getLogger("analytics_client")


class OptOutStorage(Protocol):
    def get(self, key: str) -> Optional[str]: ...
    def set(self, key: str, value: str) -> None: ...


class MemoryStorage:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStorage:
    """Keeps string preferences in a small JSON file."""

    def __init__(self, path: str):
        self.path = path

    def _load(self) -> Dict[str, str]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable preferences file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        dirname = os.path.dirname(self.path)
        if dirname:
            os.makedirs(dirname, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f)


class AnalyticsClient:
    """
    Sends events to POST /api/analytics unless the user opted out.

    Failures are logged and swallowed; tracking must never break the caller.
    """

    def __init__(
        self,
        base_url: str,
        storage: Optional[OptOutStorage] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 5.0,
    ):
        self.url = base_url.rstrip("/") + "/api/analytics"
        self.storage = storage if storage is not None else MemoryStorage()
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    @property
    def opted_out(self) -> bool:
        return self.storage.get(OPT_OUT_KEY) == "true"

    def set_opt_out(self, value: bool) -> None:
        self.storage.set(OPT_OUT_KEY, "true" if value else "false")

    def track_event(self, type: str, metadata: Optional[Dict[str, Any]] = None) -> Optional[dict]:
        if self.opted_out:
            return None
        body: Dict[str, Any] = {"type": type}
        if metadata is not None:
            body["metadata"] = metadata
        try:
            response = self.session.post(self.url, json=body, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Analytics error: {e}")
            return None

    def fetch_stats(self) -> Optional[dict]:
        try:
            response = self.session.get(self.url, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Could not fetch analytics stats: {e}")
            return None
