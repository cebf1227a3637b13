"""
Script Crawler Module

Discovers the JavaScript assets reachable from a seed page. References are
extracted from the page markup and then, breadth-first, from the text of
every fetched script. Each fetched asset is also offered to the source map
resolver so the original pre-bundle source can be analysed alongside it.
"""

import re
import threading
from collections import deque
from typing import Dict, List, Optional, Tuple
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from .client import HTTPClient
from .findings import Asset, AssetOrigin
from .sourcemap import SourceMapResolver


class CrawlError(Exception):
    """Raised when the seed page of a crawl cannot be fetched."""


# Script references in page markup (tags are handled with BeautifulSoup)
HTML_REFERENCE_PATTERNS = [
    re.compile(r"(?:import|from)\s+[\"']([^\"']+\.js)[\"']"),  # import statements
    re.compile(r"[\"']((?:/?_next/static/|/?static/js/)[^\"']+\.js)[\"']"),  # build dirs
    re.compile(
        r"[\"'](/[^\"']*(?:bundle|chunk|vendor|main|app|runtime)[^\"']*\.js)[\"']"
    ),
]

# Script references inside script text
CHUNK_REFERENCE_PATTERN = re.compile(
    r"[\"']([^\"']*(?:chunk|vendor|main|app|runtime)[^\"']*\.js)[\"']"
)
JS_REFERENCE_PATTERNS = [
    re.compile(r"import\s*\(\s*[\"']([^\"']+\.js)[\"']\s*\)"),  # dynamic import()
    re.compile(r"\.src\s*=\s*[\"']([^\"']+\.js)[\"']"),  # script injection
    re.compile(r"\.register\s*\(\s*[\"']([^\"']+\.js)[\"']"),  # service workers
]
# Generic path literals; same-host results only
PATH_REFERENCE_PATTERN = re.compile(r"[\"'](/[^\"'\s]*\.js(?:\?[^\"']*)?)[\"']")


def resolve_url(raw_url: str, base_url: str) -> Optional[str]:
    """
    Resolve a script reference against the URL of the referencing document.

    Args:
        raw_url: Reference as written (absolute, protocol-relative or relative)
        base_url: URL of the document containing the reference

    Returns:
        Absolute URL, or None for empty and ``data:`` references
    """
    raw_url = raw_url.strip()

    if not raw_url or raw_url.startswith("data:"):
        return None

    if raw_url.startswith(("http://", "https://")):
        return raw_url

    # Protocol-relative
    if raw_url.startswith("//"):
        scheme = urlparse(base_url).scheme or "https"
        return f"{scheme}:{raw_url}"

    try:
        return urljoin(base_url, raw_url)
    except ValueError:
        return None


def extract_file_name(url: str) -> str:
    """Derive an asset filename from the last path segment of its URL."""
    parsed = urlparse(url)
    path = parsed.path or parsed.query

    file_name = path.split("/")[-1]
    return file_name or "index.js"


def is_same_domain(url1: str, url2: str) -> bool:
    try:
        return urlparse(url1).netloc == urlparse(url2).netloc
    except ValueError:
        return False


class Frontier:
    """
    Pending-URL queue plus visited set for one crawl.

    Membership checks are exact string comparisons. Enqueue and dequeue are
    atomic so a URL is handed out at most once even with concurrent workers.
    """

    def __init__(self):
        self._queue: deque = deque()
        self._queued = set()
        self.visited = set()
        self._lock = threading.Lock()

    def push(self, url: str, origin: AssetOrigin) -> bool:
        """
        Enqueue a URL unless it was already visited or queued.

        Returns:
            True if the URL was enqueued
        """
        with self._lock:
            if url in self.visited or url in self._queued:
                return False
            self._queued.add(url)
            self._queue.append((url, origin))
            return True

    def pop(self) -> Optional[Tuple[str, AssetOrigin]]:
        """Dequeue the next URL and mark it visited; None when empty."""
        with self._lock:
            if not self._queue:
                return None
            url, origin = self._queue.popleft()
            self._queued.discard(url)
            self.visited.add(url)
            return url, origin

    def __len__(self) -> int:
        with self._lock:
            return len(self._queue)


class JSCrawler:
    """Breadth-first crawler for JavaScript assets."""

    def __init__(
        self,
        client: HTTPClient,
        resolver: Optional[SourceMapResolver] = None,
        verbose: bool = False,
        cancel_event: Optional[threading.Event] = None,
    ):
        """
        Initialize the crawler.

        Args:
            client: HTTP client used for every fetch
            resolver: Source map resolver; None disables source map recovery
            verbose: Enable verbose logging
            cancel_event: Event that aborts the traversal when set
        """
        self.client = client
        self.resolver = resolver
        self.verbose = verbose
        self.cancel_event = cancel_event or threading.Event()
        self.failures: Dict[str, str] = {}
        self.seed_status_code: Optional[int] = None

    def extract_html_references(self, html_content: str, page_url: str) -> List[str]:
        """
        Extract script URLs referenced by a page.

        Args:
            html_content: HTML of the page
            page_url: URL of the page, used to resolve relative references

        Returns:
            Ordered, de-duplicated list of absolute script URLs
        """
        candidates = []

        soup = BeautifulSoup(html_content, "html.parser")

        for script in soup.find_all("script", src=True):
            candidates.append(script["src"])

        for link in soup.find_all("link", href=True):
            rel = [value.lower() for value in link.get("rel") or []]
            href = link["href"]
            if "modulepreload" in rel or urlparse(href.strip()).path.endswith(".js"):
                candidates.append(href)

        for pattern in HTML_REFERENCE_PATTERNS:
            for match in pattern.finditer(html_content):
                candidates.append(match.group(1))

        return self._resolve_unique(candidates, page_url)

    def extract_js_references(self, js_content: str, source_url: str) -> List[str]:
        """
        Extract further script URLs referenced from within script text.

        Args:
            js_content: Text of a fetched script
            source_url: URL of that script, used to resolve relative references

        Returns:
            Ordered, de-duplicated list of absolute script URLs
        """
        urls = []
        seen = set()

        def add(url: Optional[str]) -> None:
            if url and url not in seen:
                seen.add(url)
                urls.append(url)

        for match in CHUNK_REFERENCE_PATTERN.finditer(js_content):
            url = resolve_url(match.group(1), source_url)
            if url and urlparse(url).path.endswith(".js"):
                add(url)

        for pattern in JS_REFERENCE_PATTERNS:
            for match in pattern.finditer(js_content):
                add(resolve_url(match.group(1), source_url))

        for match in PATH_REFERENCE_PATTERN.finditer(js_content):
            url = resolve_url(match.group(1), source_url)
            if url and is_same_domain(url, source_url):
                add(url)

        return urls

    def _resolve_unique(self, candidates: List[str], base_url: str) -> List[str]:
        urls = []
        seen = set()
        for candidate in candidates:
            url = resolve_url(candidate, base_url)
            if url and url not in seen:
                seen.add(url)
                urls.append(url)
        return urls

    def crawl(self, seed_url: str) -> List[Asset]:
        """
        Discover and download every script reachable from a seed page.

        Args:
            seed_url: URL of the page to start from

        Returns:
            Assets in discovery order; a source-map-recovered asset directly
            follows the asset it was recovered from

        Raises:
            CrawlError: If the seed page cannot be fetched or returns an
                HTTP error status
        """
        self.failures = {}
        frontier = Frontier()
        assets: List[Asset] = []

        if self.verbose:
            print(f"🚀 Crawling: {seed_url}")

        page = self.client.fetch(seed_url)
        if not page.ok or (page.status_code or 0) >= 400:
            reason = page.error or f"HTTP {page.status_code}"
            raise CrawlError(f"failed to fetch {seed_url}: {reason}")
        self.seed_status_code = page.status_code

        html_urls = self.extract_html_references(page.body, seed_url)
        for url in html_urls:
            frontier.push(url, AssetOrigin.HTML)

        if self.verbose:
            print(
                f"    📄 Page status: {page.status_code}, found {len(html_urls)} JavaScript files in HTML"
            )

        while not self.cancel_event.is_set():
            item = frontier.pop()
            if item is None:
                break
            js_url, origin = item

            result = self.client.fetch(js_url)
            if not result.ok or (result.status_code or 0) >= 400:
                reason = result.error or f"HTTP {result.status_code}"
                self.failures[js_url] = reason
                if self.verbose:
                    print(f"    ⚠️  Skipping {js_url}: {reason}")
                continue

            file_name = extract_file_name(js_url)
            assets.append(
                Asset(
                    url=js_url,
                    filename=file_name,
                    content=result.body,
                    origin=origin,
                    status_code=result.status_code,
                )
            )

            if self.verbose:
                print(f"    ✅ Downloaded: {file_name} ({len(result.body)} bytes)")

            if self.resolver is not None:
                original = self.resolver.resolve(js_url)
                if original:
                    assets.append(
                        Asset(
                            url=js_url + ".map.original",
                            filename=file_name + ".original",
                            content=original,
                            origin=AssetOrigin.SOURCE_MAP,
                            status_code=result.status_code,
                        )
                    )
                    if self.verbose:
                        print(
                            f"    🗺️  Extracted original source from source map ({len(original)} bytes)"
                        )

            new_urls = [
                url
                for url in self.extract_js_references(result.body, js_url)
                if frontier.push(url, AssetOrigin.RECURSIVE)
            ]
            if self.verbose and new_urls:
                print(
                    f"    🔗 Found {len(new_urls)} additional JS files referenced in {file_name}"
                )

        if self.verbose:
            if self.cancel_event.is_set():
                print("    ❌ Crawl cancelled")
            print(f"✅ Total JavaScript files discovered: {len(assets)}")

        return assets
