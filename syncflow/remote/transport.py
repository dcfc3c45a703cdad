# syncflow/remote/transport.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from syncflow.errors import ApiError, TransportError
from syncflow.utils.logger import get_logger

log = get_logger("http")

API_KEY_HEADER = "X-N8N-API-KEY"


@dataclass
class HttpTransport:
    """JSON over HTTP with the API key attached to every call."""

    base_url: str
    api_key: str
    timeout: float = 30.0
    session: requests.Session = field(default_factory=requests.Session)

    def _headers(self, has_body: bool) -> Dict[str, str]:
        h = {API_KEY_HEADER: self.api_key, "Accept": "application/json"}
        if has_body:
            h["Content-Type"] = "application/json"
        return h

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        body: Any = None,
    ) -> Any:
        """
        Perform one call and return the decoded body (JSON, text, or None when empty).

        Raises ApiError on a non-2xx status, TransportError when no response arrived.
        """
        url = f"{self.base_url.rstrip('/')}{path}"
        log.debug(f"{method} {path} params={params or {}}")
        try:
            resp = self.session.request(
                method,
                url,
                headers=self._headers(body is not None),
                params=params,
                json=body,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TransportError(f"{method} {path} failed: {e}", method=method, path=path) from e

        if not 200 <= resp.status_code < 300:
            raise ApiError(method, path, resp.status_code, body=resp.text or "", reason=resp.reason)

        if not resp.content:
            return None
        content_type = resp.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                return resp.json()
            except ValueError as e:
                raise TransportError(f"{method} {path} returned invalid JSON: {e}", method=method, path=path) from e
        return resp.text
