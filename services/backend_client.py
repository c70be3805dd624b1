"""
Minimal JSON-over-HTTP client shared by the backend services.

Joins the configured base URL with an endpoint path and POSTs JSON. Timeouts
and connection failures are re-raised as requests.RequestException with the
endpoint in the message; any HTTP response (2xx or not) is returned to the
caller, which decides what counts as failure. There are no retries.
"""

import json
import logging
from typing import Any, Optional

import requests

import config

logger = logging.getLogger(__name__)


class BackendClient:
    """Base URL + timeout + JSON headers for one backend."""

    def __init__(self, base_url: str, timeout: Optional[float] = None):
        base_url = (base_url or "").strip()
        if not base_url:
            raise ValueError("Backend base URL is empty")
        if not base_url.startswith(("http://", "https://")):
            raise ValueError(f"Invalid backend URL: {base_url}. Must start with http:// or https://")
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = float(timeout if timeout is not None else config.HTTP_TIMEOUT_SEC)
        self.headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def url_for(self, path: str) -> str:
        return self.base_url + path.lstrip("/")

    def post_json(self, path: str, payload: Any) -> requests.Response:
        """
        POST a JSON payload.

        Args:
            path: Endpoint path relative to the base URL (e.g. "facial-analysis/stream")
            payload: JSON-serializable body

        Returns:
            The HTTP response, whatever its status

        Raises:
            requests.RequestException: On timeout, connection error or other transport failure
        """
        url = self.url_for(path)
        if config.HTTP_BODY_LOGGING:
            logger.debug("--> POST %s %s", url, json.dumps(payload)[:2000])
        try:
            response = requests.post(url, json=payload, headers=self.headers, timeout=self.timeout)
        except requests.Timeout:
            raise requests.RequestException(
                f"Request to {url} timed out after {self.timeout:g} seconds"
            )
        except requests.ConnectionError as e:
            raise requests.RequestException(f"Connection error for {url}: {e}")
        except requests.RequestException as e:
            raise requests.RequestException(f"Request to {url} failed: {e}")

        if config.HTTP_BODY_LOGGING:
            logger.debug("<-- %s %s %s", response.status_code, url, (response.text or "")[:2000])
        else:
            logger.debug("POST %s -> %s", url, response.status_code)
        return response


def is_successful(response: requests.Response) -> bool:
    return 200 <= response.status_code < 300
