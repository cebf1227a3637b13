"""
Source Map Module

Best-effort recovery of original, pre-bundle source text for a script asset
by probing for its source map and concatenating the embedded sources.
"""

import json
from dataclasses import dataclass, field
from typing import List, Optional

from .client import HTTPClient


@dataclass
class SourceMap:
    """The parts of a source map document that recovery relies on."""

    version: int
    sources: List[str]
    sources_content: List[Optional[str]] = field(default_factory=list)
    names: List[str] = field(default_factory=list)
    mappings: str = ""
    file: str = ""


class SourceMapResolver:
    """Probes candidate ``.map`` URLs and extracts the original sources."""

    BANNER = "\n\n// ========== SOURCE: {path} ==========\n\n"

    def __init__(self, client: HTTPClient, verbose: bool = False):
        """
        Initialize the resolver.

        Args:
            client: HTTP client used to probe map files
            verbose: Enable verbose logging
        """
        self.client = client
        self.verbose = verbose

    def candidate_urls(self, asset_url: str) -> List[str]:
        """
        Build the map URLs to probe for an asset, in probe order.

        Args:
            asset_url: URL of the script asset

        Returns:
            List of candidate source map URLs
        """
        candidates = []

        if asset_url.endswith(".js"):
            candidates.append(asset_url + ".map")

        if "?" in asset_url:
            stripped = asset_url.split("?", 1)[0] + ".map"
            if stripped not in candidates:
                candidates.append(stripped)

        return candidates

    def _parse_source_map(self, body: str) -> Optional[SourceMap]:
        try:
            data = json.loads(body)
        except ValueError:
            return None

        if not isinstance(data, dict):
            return None

        version = data.get("version")
        sources = data.get("sources")
        # bool is an int subclass; "version": true is not a valid map
        if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
            return None
        if not isinstance(sources, list) or not sources:
            return None

        sources_content = data.get("sourcesContent") or []
        if not isinstance(sources_content, list):
            sources_content = []

        return SourceMap(
            version=version,
            sources=[str(s) for s in sources],
            sources_content=sources_content,
            names=data.get("names") or [],
            mappings=data.get("mappings") or "",
            file=data.get("file") or "",
        )

    def fetch_source_map(self, asset_url: str) -> Optional[SourceMap]:
        """
        Return the first valid source map found for an asset, if any.

        Every probe failure is skipped silently.
        """
        for map_url in self.candidate_urls(asset_url):
            if self.verbose:
                print(f"    🗺️  Trying source map: {map_url}")

            result = self.client.fetch(map_url)
            if not result.ok or result.status_code != 200:
                continue

            source_map = self._parse_source_map(result.body)
            if source_map is None:
                continue

            if self.verbose:
                print(f"    ✅ Found source map with {len(source_map.sources)} source files")
            return source_map

        return None

    def extract_original_source(self, source_map: SourceMap) -> str:
        """
        Concatenate every non-empty embedded source, each behind a banner
        naming its original path.
        """
        parts = []
        for index, content in enumerate(source_map.sources_content):
            if not content or not isinstance(content, str):
                continue

            if index < len(source_map.sources):
                parts.append(self.BANNER.format(path=source_map.sources[index]))
            parts.append(content)

        return "".join(parts)

    def resolve(self, asset_url: str) -> Optional[str]:
        """
        Recover the original source text of an asset.

        Args:
            asset_url: URL of the script asset

        Returns:
            Recovered source text, or None when no usable map exists
        """
        source_map = self.fetch_source_map(asset_url)
        if source_map is None:
            return None

        original = self.extract_original_source(source_map)
        return original or None
