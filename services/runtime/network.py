"""Minimal HTTP client with manual redirect handling and bounded retries."""

from __future__ import annotations

import http.client
import json
import logging
import socket
import time
from typing import Any, Callable, Protocol
from urllib.error import HTTPError, URLError
from urllib.parse import urljoin
from urllib.request import HTTPRedirectHandler, Request, build_opener

from services.runtime import constants
from services.runtime.models import NetworkError

_LOGGER = logging.getLogger(__name__)

__all__ = ["HttpClient", "HttpResponse", "REDIRECT_STATUSES"]

REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})

RedirectRewriter = Callable[[str], str]


class HttpResponse(Protocol):
    """Subset of :class:`http.client.HTTPResponse` used by the pipeline."""

    status: int
    headers: Any

    def read(self, amt: int | None = None) -> bytes: ...

    def close(self) -> None: ...


Opener = Callable[..., HttpResponse]


class _NoRedirectHandler(HTTPRedirectHandler):
    """Hand 3xx responses back to the caller instead of following them."""

    def http_error_302(self, req, fp, code, msg, headers):  # type: ignore[override]
        return fp

    http_error_301 = http_error_303 = http_error_307 = http_error_308 = http_error_302


def _default_opener() -> Opener:
    return build_opener(_NoRedirectHandler()).open


class HttpClient:
    """Issue GET requests one hop at a time so redirects can be rewritten."""

    def __init__(
        self,
        *,
        opener: Opener | None = None,
        timeout: float = constants.NETWORK_TIMEOUT,
        retries: int = constants.NETWORK_RETRIES,
        backoff_seconds: float = constants.RETRY_BACKOFF_SECONDS,
        max_redirects: int = constants.MAX_REDIRECTS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._opener = opener or _default_opener()
        self._timeout = timeout
        self._retries = max(1, int(retries))
        self._backoff_seconds = max(0.0, float(backoff_seconds))
        self._max_redirects = max(0, int(max_redirects))
        self._sleep = sleep

    def request(self, url: str) -> HttpResponse:
        """Return the response for a single GET on ``url`` without following redirects."""

        last_error: Exception | None = None
        for attempt in range(self._retries):
            try:
                return self._opener(Request(url, method="GET"), timeout=self._timeout)
            except HTTPError as exc:
                if exc.code in REDIRECT_STATUSES:
                    return exc  # type: ignore[return-value]
                exc.close()
                if exc.code not in constants.RETRYABLE_HTTP_STATUSES:
                    raise NetworkError(f"GET {url} failed with HTTP {exc.code}") from exc
                last_error = exc
            except (
                URLError,
                http.client.HTTPException,
                socket.timeout,
                TimeoutError,
                ConnectionError,
            ) as exc:
                last_error = exc
            if attempt < self._retries - 1:
                delay = self._backoff_seconds * (2**attempt)
                _LOGGER.warning(
                    "GET %s failed (attempt %s/%s): %s. Retrying in %.1fs",
                    url,
                    attempt + 1,
                    self._retries,
                    last_error,
                    delay,
                )
                self._sleep(delay)
        raise NetworkError(f"GET {url} failed: {last_error}") from last_error

    def open_following_redirects(
        self, url: str, *, rewrite: RedirectRewriter | None = None
    ) -> tuple[str, HttpResponse]:
        """Follow redirects from ``url`` and return the final URL and open response.

        ``rewrite`` is applied to every redirect target before it is requested.
        The caller owns the returned response and must close it.
        """

        current = url
        for hop in range(self._max_redirects + 1):
            response = self.request(current)
            status = _status_of(response)
            if status not in REDIRECT_STATUSES:
                if status is not None and status >= 400:
                    response.close()
                    raise NetworkError(f"GET {current} failed with HTTP {status}")
                return current, response

            location = response.headers.get("Location")
            response.close()
            if not location:
                raise NetworkError(f"GET {current} redirected without a Location header")
            target = urljoin(current, location)
            if rewrite is not None:
                rewritten = rewrite(target)
                if rewritten != target:
                    _LOGGER.info("Rewrote redirect %s to %s", target, rewritten)
                target = rewritten
            _LOGGER.debug("Following redirect %s (hop %s) to %s", status, hop + 1, target)
            current = target

        raise NetworkError(
            f"GET {url} exceeded the limit of {self._max_redirects} redirects"
        )

    def get_json(self, url: str) -> Any:
        _, response = self.open_following_redirects(url)
        try:
            body = response.read()
        except (OSError, http.client.HTTPException) as exc:
            raise NetworkError(f"Failed to read response from {url}: {exc}") from exc
        finally:
            response.close()
        try:
            return json.loads(body.decode("utf-8-sig"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise NetworkError(f"Response from {url} was not valid JSON: {exc}") from exc


def _status_of(response: HttpResponse) -> int | None:
    status = getattr(response, "status", None)
    if status is None:
        getcode = getattr(response, "getcode", None)
        if callable(getcode):
            status = getcode()
    return int(status) if status is not None else None
