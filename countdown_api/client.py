"""Countdown API client.

A thin wrapper around the counters REST surface built on ``requests``.
Every method returns a tuple ``(data, error)``: on success ``error`` is
``None``; on failure ``data`` is empty and ``error`` is a dictionary
with ``status_code`` (``None`` for transport errors) and ``message``.

Targets are sent and received as RFC 3339 strings with an explicit
offset.  Converting to and from local wall‑clock time is up to the
caller.

The client supports optional authentication via an API key which is
sent as a bearer token, for deployments that put the service behind an
authenticating proxy.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import requests


logger = logging.getLogger(__name__)

Error = Dict[str, Any]


class CountdownAPI:
    """Client for the counters API."""

    COUNTERS_PATH = "/api/counters"
    HEALTH_PATH = "/health"

    def __init__(
        self,
        *,
        base_url: str,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 15,
    ) -> None:
        """Initialise the API client.

        Args:
            base_url: Base URL for the API, e.g. ``http://localhost:3000``.
            api_key: Optional API key sent as ``Authorization: Bearer``.
            session: Optional requests session.  If not supplied a
                session will be created automatically.
            timeout: Per‑request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.session = session or requests.Session()
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Low level HTTP helpers
    # ------------------------------------------------------------------
    def _request(
        self, method: str, path: str, *, json_body: Any | None = None
    ) -> Tuple[Optional[Any], Optional[Error]]:
        """Perform an HTTP request to the API.

        Returns:
            A tuple ``(data, error)``.  ``data`` holds the parsed JSON
            response (``None`` for empty bodies).
        """
        url = f"{self.base_url}{path}"
        headers: Dict[str, str] = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        try:
            logger.debug("Sending %s request to %s", method, url)
            response = self.session.request(
                method=method,
                url=url,
                json=json_body,
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            if response.content:
                return response.json(), None
            return None, None
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            message = ""
            if exc.response is not None:
                try:
                    body = exc.response.json()
                    detail = body.get("detail") if isinstance(body, dict) else body
                    message = detail if isinstance(detail, str) else str(detail)
                except ValueError:
                    message = exc.response.text
            if not message:
                message = str(exc)
            logger.error("API request failed (%s): %s", status, message)
            return None, {"status_code": status, "message": message}
        except requests.RequestException as exc:
            logger.error("API request failed: %s", exc)
            return None, {"status_code": None, "message": str(exc)}

    def _counter_path(self, counter_id: str) -> str:
        return f"{self.COUNTERS_PATH}/{requests.utils.quote(str(counter_id), safe='')}"

    # ------------------------------------------------------------------
    # Counter operations
    # ------------------------------------------------------------------
    def list_counters(self) -> Tuple[List[Dict[str, Any]], Optional[Error]]:
        data, error = self._request("GET", self.COUNTERS_PATH)
        if error:
            return [], error
        return data if isinstance(data, list) else [], None

    def get_counter(self, counter_id: str) -> Tuple[Optional[Dict[str, Any]], Optional[Error]]:
        return self._request("GET", self._counter_path(counter_id))

    def create_counter(self, title: str, target: str) -> Tuple[Optional[Dict[str, Any]], Optional[Error]]:
        """Create a counter.

        Args:
            title: Non‑empty label.
            target: RFC 3339 instant with offset, e.g. ``2030-01-01T00:00:00Z``.
        """
        return self._request("POST", self.COUNTERS_PATH, json_body={"title": title, "target": target})

    def update_counter(
        self, counter_id: str, title: str, target: str
    ) -> Tuple[Optional[Dict[str, Any]], Optional[Error]]:
        return self._request(
            "PUT", self._counter_path(counter_id), json_body={"title": title, "target": target}
        )

    def delete_counter(self, counter_id: str) -> Tuple[bool, Optional[Error]]:
        _, error = self._request("DELETE", self._counter_path(counter_id))
        return error is None, error

    def health(self) -> bool:
        data, error = self._request("GET", self.HEALTH_PATH)
        return error is None and isinstance(data, dict) and data.get("status") == "ok"
