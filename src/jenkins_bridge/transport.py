"""HTTP transport to a Jenkins server, built on a ``requests`` session."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Mapping
from urllib.parse import quote

import requests
from requests.auth import HTTPBasicAuth

from jenkins_bridge.parameters import ConnectionParameters

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
XML_HEADERS = {"Content-Type": "application/xml; charset=utf-8"}


def _default_timeout() -> float:
    return float(os.environ.get("JENKINS_TIMEOUT", DEFAULT_TIMEOUT))


def quote_name(name: str) -> str:
    """Encode a job name as a single URL path segment."""
    return quote(name, safe="")


@dataclass
class HttpResult:
    """Status, headers and body of one completed request."""

    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def server_error(self) -> bool:
        return self.status >= 500


class JenkinsTransport:
    """Authenticated requests against one Jenkins base URL.

    Paths are relative to the configured URL. A request that cannot reach
    the server at all yields ``None`` instead of a result; HTTP error
    statuses are returned as-is so that callers can classify them.
    """

    def __init__(
        self,
        params: ConnectionParameters,
        session: requests.Session | None = None,
        timeout: float | None = None,
    ) -> None:
        self.base_url = params.url
        self._session = session or requests.Session()
        if params.user:
            self._session.auth = HTTPBasicAuth(params.user, params.token)
        self._timeout = timeout if timeout is not None else _default_timeout()

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> JenkinsTransport:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return self.base_url + path.lstrip("/")

    def request(
        self,
        method: str,
        path: str,
        *,
        data: Any = None,
        headers: Mapping[str, str] | None = None,
        allow_redirects: bool = True,
    ) -> HttpResult | None:
        url = self.url(path)
        logger.debug("%s %s", method, url)
        try:
            response = self._session.request(
                method,
                url,
                data=data,
                headers=headers,
                allow_redirects=allow_redirects,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, url, e)
            return None
        logger.debug("%s %s -> %s", method, url, response.status_code)
        return HttpResult(
            status=response.status_code,
            headers=response.headers,
            body=response.text or "",
        )

    def get(self, path: str, *, allow_redirects: bool = True) -> HttpResult | None:
        return self.request("GET", path, allow_redirects=allow_redirects)

    def post(
        self,
        path: str,
        data: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> HttpResult | None:
        # Jenkins answers state changes with redirects, keep them visible
        return self.request(
            "POST", path, data=data, headers=headers, allow_redirects=False
        )

    def get_body(self, path: str) -> str | None:
        """Return the body of a successful GET, ``None`` otherwise."""
        result = self.get(path)
        if result is None or not result.ok:
            return None
        return result.body
