"""
HTTP Client Module

Fetch capability shared by the crawler, the source map resolver and the
scan pipeline. Applies user agent, cookie, extra headers, proxy and timeout
configuration to a single requests session. Also reads the raw HTTP request
and URL list input files.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

import requests


DEFAULT_USER_AGENT = "jsmap/1.0"


class RequestParseError(ValueError):
    """Raised when a raw HTTP request file cannot be parsed."""


@dataclass
class FetchResult:
    """Outcome of a single GET request."""

    url: str
    body: str = ""
    status_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RawRequest:
    """A parsed raw HTTP request."""

    method: str
    url: str
    headers: Dict[str, str]
    body: str = ""


class HTTPClient:
    """Thin wrapper around requests.Session used for every fetch."""

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        cookie: Optional[str] = None,
        timeout: int = 30,
        proxy: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        verbose: bool = False,
    ):
        """
        Initialize the HTTP client.

        Args:
            user_agent: User-Agent header sent with every request
            cookie: Raw Cookie header value
            timeout: Request timeout in seconds
            proxy: Proxy URL applied to both http and https traffic
            headers: Extra headers sent with every request
            verbose: Enable verbose logging
        """
        self.timeout = timeout
        self.verbose = verbose
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

        if cookie:
            self.session.headers["Cookie"] = cookie

        if headers:
            self.session.headers.update(headers)

        if proxy:
            self.session.proxies.update({"http": proxy, "https": proxy})
            if self.verbose:
                print(f"🔀 Proxy configured: {proxy}")

    def fetch(self, url: str, headers: Optional[Dict[str, str]] = None) -> FetchResult:
        """
        Fetch a URL with GET.

        Non-2xx responses are returned with their body and status code; only
        transport failures set ``error``.

        Args:
            url: URL to fetch
            headers: Per-request headers overriding the session defaults

        Returns:
            FetchResult (always returned, even for failures)
        """
        if self.verbose:
            print(f"  📥 Fetching: {url}")

        try:
            response = self.session.get(url, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            if self.verbose:
                print(f"    ❌ Failed to fetch {url}: {e}")
            return FetchResult(url=url, error=str(e))

        if self.verbose:
            print(
                f"    ✅ Status: {response.status_code}, Size: {len(response.content)} bytes"
            )

        return FetchResult(url=url, body=response.text, status_code=response.status_code)


def parse_raw_request(content: str) -> RawRequest:
    """
    Parse a raw HTTP request (as exported by an intercepting proxy).

    Args:
        content: Raw request text

    Returns:
        RawRequest with an absolute URL built from the Host header

    Raises:
        RequestParseError: If the request line is missing or malformed
    """
    lines = content.replace("\r\n", "\n").split("\n")
    request_line = lines[0].split() if lines else []
    if len(request_line) < 3:
        raise RequestParseError("invalid request line")

    method, path = request_line[0], request_line[1]

    headers = {}
    host = ""
    headers_end = len(lines)
    for index, line in enumerate(lines[1:], start=1):
        line = line.strip()

        # Empty line marks end of headers
        if not line:
            headers_end = index
            break

        if ":" in line:
            name, value = line.split(":", 1)
            name, value = name.strip(), value.strip()
            headers[name] = value
            if name.lower() == "host":
                host = value

    if not host:
        raise RequestParseError("missing Host header")

    scheme = "http" if "localhost" in host or "127.0.0.1" in host else "https"

    body = ""
    if headers_end < len(lines) - 1:
        body = "\n".join(lines[headers_end + 1 :])

    return RawRequest(method=method, url=f"{scheme}://{host}{path}", headers=headers, body=body)


def read_url_list(file_path: str) -> List[str]:
    """
    Read target URLs from a file, one per line.

    Blank lines and lines starting with ``#`` are skipped.
    """
    urls = []
    with open(file_path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            urls.append(line)
    return urls
