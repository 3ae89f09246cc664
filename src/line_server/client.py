import logging
import os
import time
from typing import Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = os.getenv("LINE_SERVER_URL", "http://127.0.0.1:8000")


class LineServerClient:
    """
    Minimal wrapper around the line server HTTP API.
    Retries connection errors and 5xx responses a fixed number of times.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        retries: int = 3,
        retry_delay: float = 1.0,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        if retries <= 0:
            raise ValueError("retries must be positive")
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.retries = retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_line(self, index: int) -> Optional[str]:
        """Return the line text, or None when the server reports it out of range."""
        last_error: Optional[str] = None
        for attempt in range(1, self.retries + 1):
            try:
                resp = self.session.get(f"{self.base_url}/lines/{index}", timeout=self.timeout)
            except requests.RequestException as exc:
                last_error = str(exc)
            else:
                if resp.status_code == 200:
                    return resp.text
                if resp.status_code == 413:
                    return None
                if resp.status_code < 500:
                    resp.raise_for_status()
                last_error = f"{resp.status_code} - {resp.text}"
            logger.warning("Line server request %d/%d failed: %s", attempt, self.retries, last_error)
            if attempt < self.retries:
                time.sleep(self.retry_delay)
        raise ConnectionError(f"Line server at {self.base_url} failed after {self.retries} attempts: {last_error}")

    def status(self) -> dict:
        resp = self.session.get(f"{self.base_url}/status", timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()
