"""
HTTP Client

One requests session shared by the remote adapters (ledger gateway,
pinning service, IPFS gateways, proving service).

Retry policy: only connection failures and 5xx responses are retried,
with exponential backoff. Reads retry ``max_retries`` times by default;
writes are sent once unless the caller passes ``retries``, because a
repeated publish or proof submission is not always idempotent remotely.
"""

from __future__ import annotations

import json as jsonlib
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Optional

import requests


logger = logging.getLogger(__name__)


@dataclass
class HttpResponse:
    status_code: int
    content: bytes
    headers: dict[str, str] = field(default_factory=dict)
    url: str = ""
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def is_server_error(self) -> bool:
        return self.status_code >= 500

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    def json(self) -> Any:
        return jsonlib.loads(self.content)


class HttpError(Exception):
    """No response was received (connection refused, DNS, timeout)."""


class HttpClient:
    """
    Thin wrapper over ``requests.Session`` returning HttpResponse values.

    Non-2xx responses are returned, not raised; adapters decide what a
    status means for their protocol. HttpError is raised only when the
    last attempt got no response at all.
    """

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        default_headers: Optional[dict[str, str]] = None,
    ) -> None:
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.default_headers = default_headers or {}
        self._session: Optional[requests.Session] = None

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update(self.default_headers)
        return self._session

    def _send_once(self, method: str, url: str, timeout: float, **kwargs: Any) -> HttpResponse:
        try:
            response = self.session.request(method, url, timeout=timeout, **kwargs)
        except requests.RequestException as e:
            raise HttpError(f"{method} {url}: {e}") from e

        return HttpResponse(
            status_code=response.status_code,
            content=response.content,
            headers=dict(response.headers),
            url=str(response.url),
            elapsed_ms=response.elapsed.total_seconds() * 1000,
        )

    def request(
        self,
        method: str,
        url: str,
        *,
        timeout: Optional[float] = None,
        retries: int = 0,
        **kwargs: Any,
    ) -> HttpResponse:
        """
        Send a request, retrying up to ``retries`` extra times.

        ``kwargs`` go to ``requests.Session.request`` (headers, json,
        data, files). Once retries are exhausted a 5xx response is
        returned as-is.

        Raises:
            HttpError: If the final attempt received no response
        """
        effective_timeout = timeout or self.timeout

        attempt = 0
        while True:
            try:
                result = self._send_once(method, url, effective_timeout, **kwargs)
            except HttpError as e:
                if attempt >= retries:
                    raise
                logger.warning(f"{e} (attempt {attempt + 1}/{retries + 1})")
            else:
                if attempt >= retries or not result.is_server_error:
                    return result
                logger.warning(
                    f"{method} {url} returned {result.status_code} "
                    f"(attempt {attempt + 1}/{retries + 1})"
                )
            time.sleep(self.retry_delay * (2 ** attempt))
            attempt += 1

    def get(
        self,
        url: str,
        *,
        headers: Optional[dict[str, str]] = None,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
    ) -> HttpResponse:
        return self.request(
            "GET", url,
            headers=headers,
            timeout=timeout,
            retries=self.max_retries if retries is None else retries,
        )

    def post(
        self,
        url: str,
        *,
        headers: Optional[dict[str, str]] = None,
        json: Optional[Any] = None,
        data: Optional[Any] = None,
        files: Optional[Any] = None,
        timeout: Optional[float] = None,
        retries: int = 0,
    ) -> HttpResponse:
        return self.request(
            "POST", url,
            headers=headers,
            json=json,
            data=data,
            files=files,
            timeout=timeout,
            retries=retries,
        )

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None
