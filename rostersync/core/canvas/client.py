"""Low-level HTTP client for the Canvas REST API.

Handles bearer authentication, pagination, and error translation.
"""
from __future__ import annotations
import os
from typing import Optional, Dict, Any, List

import requests

from .exceptions import CanvasAPIError, CanvasConnectionError

REQUEST_TIMEOUT = 10
DEFAULT_PAGE_SIZE = 100


class CanvasClient:
    """HTTP client for the Canvas REST API.

    Features:
    - Bearer token authentication
    - Link-header pagination for list endpoints
    - Centralized error handling (every failure raises a CanvasError)

    Usage:
        client = CanvasClient("https://canvas.example.edu", token="...")
        logins = client.get_paginated("/api/v1/users/sis_login_id:1084726/logins")
    """

    def __init__(self, base_url: Optional[str] = None, token: Optional[str] = None,
                 session: Optional[requests.Session] = None):
        """Initialize Canvas client.

        Args:
            base_url: Canvas base URL (defaults to CANVAS_URL env var)
            token: API access token (defaults to CANVAS_API_TOKEN env var)
            session: Optional requests session (shared connection pool)
        """
        self.base_url = (base_url or os.environ.get("CANVAS_URL", "http://localhost:3000")).rstrip("/")
        self._token = token or os.environ.get("CANVAS_API_TOKEN", "")
        self.session = session or requests.Session()

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        if not self._token:
            raise CanvasAPIError(401, "No Canvas API token configured", self.base_url)
        headers = dict(extra or {})
        headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def request(self, method: str, path_or_url: str, **kwargs) -> requests.Response:
        """Execute an authenticated request.

        Args:
            method: HTTP method
            path_or_url: API path (e.g., "/api/v1/users/1/logins") or absolute URL
            **kwargs: Additional arguments for requests

        Returns:
            Response object

        Raises:
            CanvasAPIError: On HTTP error
            CanvasConnectionError: When Canvas cannot be reached
        """
        if path_or_url.startswith(("http://", "https://")):
            url = path_or_url
        else:
            url = f"{self.base_url}{path_or_url}"
        headers = self._headers(kwargs.pop("headers", None))
        try:
            resp = self.session.request(method, url, headers=headers, timeout=REQUEST_TIMEOUT, **kwargs)
        except requests.RequestException as e:
            raise CanvasConnectionError(f"{method} {url}: {e}") from e
        self._handle_error(resp)
        return resp

    def get(self, path: str, params: Optional[Dict] = None, **kwargs) -> requests.Response:
        return self.request("GET", path, params=params, **kwargs)

    def put(self, path: str, json: Optional[Dict] = None, **kwargs) -> requests.Response:
        return self.request("PUT", path, json=json, **kwargs)

    def delete(self, path: str, **kwargs) -> requests.Response:
        return self.request("DELETE", path, **kwargs)

    def get_paginated(self, path: str, params: Optional[Dict] = None) -> List[Dict[str, Any]]:
        """Fetch every page of a list endpoint by following Link rel="next".

        Args:
            path: API endpoint path
            params: Query parameters for the first page

        Returns:
            Concatenated list of items from all pages
        """
        query = {"per_page": DEFAULT_PAGE_SIZE}
        query.update(params or {})

        items: List[Dict[str, Any]] = []
        resp = self.get(path, params=query)
        while True:
            page = resp.json() or []
            if not isinstance(page, list):
                raise CanvasAPIError(resp.status_code, "Expected a JSON list", resp.url)
            items.extend(page)
            next_link = resp.links.get("next", {}).get("url")
            if not next_link:
                return items
            # The next link already carries the query string
            resp = self.get(next_link)

    def _handle_error(self, resp: requests.Response) -> None:
        """Centralized error handling for HTTP responses.

        Raises:
            CanvasAPIError: If response status indicates error
        """
        if resp.status_code >= 400:
            raise CanvasAPIError(resp.status_code, resp.text, resp.url)
