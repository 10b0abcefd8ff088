"""Thin HTTP abstraction for talking to Microsoft Graph.

Key behaviors:
- Bearer token authentication (token acquired once by ``auth.get_access_token``)
- Relative paths are joined to the Graph base URL; absolute URLs such as
  ``@odata.nextLink`` continuation links are requested verbatim
- ``get_all()`` follows continuation links and accumulates every page
- TLS options: skip verification, custom CA bundle
- Proxy support via requests (``transport_options()`` is shared with the
  token request)
- ``redact_auth()`` helper for safe logging of headers

No retry is attempted on any status, including 429.
"""

import json
import logging
import urllib.parse
from typing import Any, Callable, Dict, List, Optional, TypeVar

import requests

from .config import DEFAULT_GRAPH_ENDPOINT
from .errors import NotFoundError, RequestError
from .models import Page

logger = logging.getLogger(__name__)

T = TypeVar("T")

_UNPARSED = object()


class GraphResponse:
    """Normalized HTTP response wrapper."""

    def __init__(self, status_code: int, headers: Dict[str, str], body: str):
        self.status_code = status_code
        self.headers = headers
        self.body = body
        self._json: Any = _UNPARSED

    def json(self) -> Any:
        """Parse and cache the response body as JSON."""
        if self._json is _UNPARSED:
            self._json = json.loads(self.body) if self.body else None
        return self._json


class GraphClient:
    """HTTP client for Microsoft Graph interactions.

    Args:
        token:          Bearer token for authentication
        base_url:       Graph root including the version (e.g. ``https://graph.microsoft.com/v1.0``)
        tls_no_verify:  Skip TLS certificate verification
        timeout:        Per-request timeout in seconds (``None`` = wait indefinitely)
        proxy:          HTTP/HTTPS proxy URL
        ca_bundle:      Path to custom CA certificate bundle file
    """

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_GRAPH_ENDPOINT,
        tls_no_verify: bool = False,
        timeout: Optional[float] = None,
        proxy: Optional[str] = None,
        ca_bundle: Optional[str] = None,
    ):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.tls_no_verify = tls_no_verify
        self.timeout = timeout
        self.proxy = proxy
        self.ca_bundle = ca_bundle
        self.session = requests.Session()

    # -- Public API ----------------------------------------------------------

    def get(self, path: str, params: Optional[Dict[str, str]] = None) -> GraphResponse:
        """Send a GET request."""
        return self._request("GET", path, params=params)

    def post(self, path: str, payload: Dict[str, Any]) -> GraphResponse:
        """Send a POST request with a JSON payload."""
        return self._request("POST", path, payload)

    def patch(self, path: str, payload: Dict[str, Any]) -> GraphResponse:
        """Send a PATCH request with a JSON payload."""
        return self._request("PATCH", path, payload)

    def delete(self, path: str) -> GraphResponse:
        """Send a DELETE request."""
        return self._request("DELETE", path)

    def get_all(
        self,
        path: str,
        parse_item: Callable[[Dict[str, Any]], T],
        action: str,
        params: Optional[Dict[str, str]] = None,
    ) -> List[T]:
        """Fetch every page of a collection and return the items in arrival order.

        The first request goes to ``path`` (with ``params``); each following
        request goes to the previous page's ``@odata.nextLink`` exactly as the
        server sent it.  Pages are fetched one at a time.  A non-200 page
        raises ``RequestError`` and nothing accumulated so far is returned.
        """
        items: List[T] = []
        url: Optional[str] = path
        page_params = params
        pages = 0
        while url:
            resp = self._request("GET", url, params=page_params)
            expect_status(resp, 200, action)
            page = Page.from_dict(decode_json(resp, action), parse_item)
            items.extend(page.items)
            pages += 1
            url = page.next_link
            page_params = None  # continuation links already carry the query
        logger.debug("%s: %d item(s) across %d page(s)", action, len(items), pages)
        return items

    def url_for(self, path: str) -> str:
        """Resolve a relative Graph path against the base URL."""
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    # -- Internals -----------------------------------------------------------

    def _build_headers(self) -> Dict[str, str]:
        """Build the default Graph request headers with the bearer token."""
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    def _request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> GraphResponse:
        """Execute one HTTP request and normalize the response.

        Transport failures (DNS, connection refused, TLS) are raised as
        ``RequestError`` with no status code.
        """
        url = self.url_for(path)
        headers = self._build_headers()
        kwargs: Dict[str, Any] = {
            "headers": headers,
            "timeout": self.timeout,
        }
        kwargs.update(transport_options(self.tls_no_verify, self.proxy, self.ca_bundle))

        if payload is not None:
            kwargs["json"] = payload
        if params:
            kwargs["params"] = params

        logger.debug("%s %s headers=%s", method, url, redact_auth(headers))
        try:
            resp = self.session.request(method, url, **kwargs)
        except requests.RequestException as e:
            raise RequestError(f"{method} {url}", None, str(e)) from e

        logger.debug("%s %s -> %d", method, url, resp.status_code)
        return GraphResponse(resp.status_code, dict(resp.headers), resp.text)


def expect_status(resp: GraphResponse, expected: int, action: str) -> GraphResponse:
    """Raise ``RequestError`` unless ``resp`` has the ``expected`` status."""
    if resp.status_code != expected:
        raise RequestError(action, resp.status_code, resp.body)
    return resp


def expect_found(resp: GraphResponse, action: str) -> GraphResponse:
    """Like ``expect_status(resp, 200, ...)`` but 404 raises ``NotFoundError``."""
    if resp.status_code == 404:
        raise NotFoundError(action, resp.status_code, resp.body)
    return expect_status(resp, 200, action)


def decode_json(resp: GraphResponse, action: str) -> Dict[str, Any]:
    """Parse a success body as a JSON object or raise ``RequestError``."""
    try:
        data = resp.json()
    except ValueError as e:
        raise RequestError(action, resp.status_code, resp.body,
                           message=f"failed to parse response for {action}: {e}") from e
    if not isinstance(data, dict):
        raise RequestError(action, resp.status_code, resp.body,
                           message=f"failed to parse response for {action}: expected a JSON object")
    return data


def path_segment(value: str) -> str:
    """Percent-encode an identifier for use as one URL path segment.

    Keeps ``@`` so principal names stay readable; encodes ``#`` and ``/``
    (guest UPNs look like ``jane_contoso.com#EXT#@tenant.onmicrosoft.com``).
    """
    return urllib.parse.quote(value, safe="@")


def redact_auth(headers: Dict[str, str]) -> Dict[str, str]:
    """Return a copy of headers with Authorization values replaced by ``***REDACTED***``.

    Use this when including headers in logs or error messages
    to avoid leaking bearer tokens.
    """
    redacted = dict(headers)
    for key in list(redacted.keys()):
        if key.lower() == "authorization":
            redacted[key] = "***REDACTED***"
    return redacted


def transport_options(
    tls_no_verify: bool = False,
    proxy: Optional[str] = None,
    ca_bundle: Optional[str] = None,
) -> Dict[str, Any]:
    """``verify``/``proxies`` keyword arguments for a requests call.

    A CA bundle takes precedence over ``tls_no_verify``.
    """
    options: Dict[str, Any] = {}
    if ca_bundle:
        options["verify"] = ca_bundle
    elif tls_no_verify:
        options["verify"] = False
    else:
        options["verify"] = True
    if proxy:
        options["proxies"] = {"http": proxy, "https": proxy}
    return options
