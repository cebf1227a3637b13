"""
Scanner Module

Drives the discovery-and-extraction pipeline for each kind of input (single
URL, crawl, URL list, raw HTTP request file, local file) and merges every
source's findings into one aggregated report.
"""

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional

from .analyzer import PatternAnalyzer
from .client import HTTPClient, parse_raw_request, read_url_list
from .crawler import CrawlError, JSCrawler
from .findings import AggregatedFindings, AttributionPolicy
from .sourcemap import SourceMapResolver


class ScanError(Exception):
    """Raised when a single input cannot be scanned."""


# Headers that must not be replayed from a raw request
_SKIPPED_REPLAY_HEADERS = {"host", "content-length"}


class Scanner:
    """Runs the pipeline and owns the aggregated findings."""

    def __init__(
        self,
        client: HTTPClient,
        analyzer: Optional[PatternAnalyzer] = None,
        aggregated: Optional[AggregatedFindings] = None,
        attribution: AttributionPolicy = AttributionPolicy.ALL_SOURCES,
        threads: int = 1,
        verbose: bool = False,
        cancel_event: Optional[threading.Event] = None,
    ):
        """
        Initialize the scanner.

        Args:
            client: HTTP client used for every fetch
            analyzer: Pattern analyzer (a default one is created if omitted)
            aggregated: Aggregate to merge into (a new one is created if omitted)
            attribution: Attribution policy for a newly created aggregate
            threads: Number of URLs fetched concurrently in list mode
            verbose: Enable verbose logging
            cancel_event: Event that aborts crawls and batches when set
        """
        self.client = client
        self.analyzer = analyzer or PatternAnalyzer(verbose=verbose)
        self.aggregated = aggregated or AggregatedFindings(attribution=attribution)
        self.threads = max(1, threads)
        self.verbose = verbose
        self.cancel_event = cancel_event or threading.Event()

    def _new_crawler(self) -> JSCrawler:
        return JSCrawler(
            client=self.client,
            resolver=SourceMapResolver(self.client, verbose=self.verbose),
            verbose=self.verbose,
            cancel_event=self.cancel_event,
        )

    def analyze_text(
        self, content: str, source: str, url: str, status_code: Optional[int]
    ) -> None:
        findings = self.analyzer.analyze(content, source)
        self.aggregated.add_findings(findings, source, url, status_code)

    def scan_url(self, target_url: str) -> None:
        """
        Fetch a single URL and analyze its body.

        Raises:
            ScanError: If the URL cannot be fetched
        """
        result = self.client.fetch(target_url)
        if not result.ok:
            raise ScanError(f"failed to fetch {target_url}: {result.error}")

        self.analyze_text(result.body, target_url, target_url, result.status_code)

    def scan_crawl(self, target_url: str) -> int:
        """
        Crawl a page for JavaScript assets and analyze each of them.

        Returns:
            Number of assets analysed

        Raises:
            ScanError: If the seed page cannot be fetched
        """
        crawler = self._new_crawler()
        try:
            assets = crawler.crawl(target_url)
        except CrawlError as e:
            raise ScanError(str(e)) from e

        if self.verbose:
            print(f"🔍 Analyzing {len(assets)} JavaScript files...")

        for asset in assets:
            self.analyze_text(asset.content, asset.url, asset.url, asset.status_code)

        return len(assets)

    def scan_url_list(self, file_path: str) -> Dict[str, str]:
        """
        Scan every URL listed in a file.

        Failures are per URL and never abort the batch.

        Returns:
            Mapping of failed URL to error message
        """
        urls = read_url_list(file_path)
        return self.scan_urls(urls)

    def scan_urls(self, urls: List[str]) -> Dict[str, str]:
        errors: Dict[str, str] = {}

        def _scan(url: str) -> None:
            if self.cancel_event.is_set():
                return
            self.scan_url(url)

        with ThreadPoolExecutor(max_workers=self.threads) as executor:
            futures = {executor.submit(_scan, url): url for url in urls}
            for future in as_completed(futures):
                url = futures[future]
                try:
                    future.result()
                except ScanError as e:
                    errors[url] = str(e)
                    if self.verbose:
                        print(f"    ❌ Error processing {url}: {e}")

        return errors

    def scan_request_file(self, file_path: str, crawl: bool = False) -> None:
        """
        Replay a raw HTTP request as GET and analyze the response.

        When ``crawl`` is set and the response looks like HTML, the scripts it
        references are crawled and analysed as well.

        Raises:
            RequestParseError: If the request file is malformed
            ScanError: If the replayed request fails
        """
        with open(file_path, "r", encoding="utf-8") as f:
            raw_request = parse_raw_request(f.read())

        if raw_request.method.upper() != "GET":
            print(f"⚠️  Request uses {raw_request.method} method, fetching as GET")

        headers = {
            name: value
            for name, value in raw_request.headers.items()
            if name.lower() not in _SKIPPED_REPLAY_HEADERS
        }

        result = self.client.fetch(raw_request.url, headers=headers)
        if not result.ok:
            raise ScanError(f"failed to fetch {raw_request.url}: {result.error}")

        html_content = result.body
        if crawl and ("<script" in html_content or ".js" in html_content):
            if self.verbose:
                print("🕷️  HTML response detected, crawling for JavaScript files...")
            try:
                self.scan_crawl(raw_request.url)
            except ScanError as e:
                if self.verbose:
                    print(f"    ❌ Crawl error: {e}")

        self.analyze_text(html_content, raw_request.url, raw_request.url, result.status_code)

    def scan_file(self, file_path: str) -> None:
        """Analyze a local JavaScript file."""
        with open(file_path, "r", encoding="utf-8", errors="replace") as f:
            content = f.read()

        self.analyze_text(content, file_path, "", 200)
