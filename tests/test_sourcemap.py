"""
Tests for the Source Map module.
"""

import json
from unittest.mock import Mock

from jsmap.client import FetchResult
from jsmap.sourcemap import SourceMapResolver


ASSET = "https://example.com/static/app.js"


def map_response(url, document, status_code=200):
    body = document if isinstance(document, str) else json.dumps(document)
    return FetchResult(url=url, body=body, status_code=status_code)


class TestSourceMapResolver:
    """Test cases for SourceMapResolver class."""

    def setup_method(self):
        """Set up test fixtures."""
        self.client = Mock()
        self.resolver = SourceMapResolver(self.client)

    def test_candidate_urls(self):
        """Test candidate map URL construction."""
        assert self.resolver.candidate_urls(ASSET) == [ASSET + ".map"]
        assert self.resolver.candidate_urls(ASSET + "?v=1") == [ASSET + ".map"]
        assert self.resolver.candidate_urls("https://example.com/bundle?v=1") == [
            "https://example.com/bundle.map"
        ]
        assert self.resolver.candidate_urls("https://example.com/bundle") == []

    def test_resolve_extracts_sources_with_banner(self):
        """Test that embedded sources are returned behind their path banner."""
        self.client.fetch.return_value = map_response(
            ASSET + ".map",
            {
                "version": 3,
                "sources": ["src/index.js"],
                "sourcesContent": ["console.log(1)"],
                "mappings": "AAAA",
            },
        )

        original = self.resolver.resolve(ASSET)

        banner = "// ========== SOURCE: src/index.js =========="
        assert banner in original
        assert original.index(banner) < original.index("console.log(1)")
        self.client.fetch.assert_called_once_with(ASSET + ".map")

    def test_resolve_concatenates_multiple_sources(self):
        """Test ordering and empty-entry skipping across several sources."""
        self.client.fetch.return_value = map_response(
            ASSET + ".map",
            {
                "version": 3,
                "sources": ["src/a.js", "src/empty.js", "src/b.js"],
                "sourcesContent": ["a()", "", "b()"],
            },
        )

        original = self.resolver.resolve(ASSET)

        assert "SOURCE: src/empty.js" not in original
        assert original.index("src/a.js") < original.index("a()") < original.index("src/b.js")
        assert original.endswith("b()")

    def test_resolve_without_sources_content(self):
        """Test that a map with no embedded sources yields nothing."""
        self.client.fetch.return_value = map_response(
            ASSET + ".map", {"version": 3, "sources": ["src/a.js"]}
        )

        assert self.resolver.resolve(ASSET) is None

    def test_invalid_maps_are_skipped(self):
        """Test that malformed map documents are ignored."""
        invalid_documents = [
            "not json at all",
            {"version": 0, "sources": ["a.js"], "sourcesContent": ["a()"]},
            {"version": True, "sources": ["a.js"], "sourcesContent": ["a()"]},
            {"version": 3, "sources": [], "sourcesContent": ["a()"]},
            ["not", "an", "object"],
        ]

        for document in invalid_documents:
            self.client.fetch.return_value = map_response(ASSET + ".map", document)
            assert self.resolver.resolve(ASSET) is None

    def test_unavailable_maps_are_skipped(self):
        """Test that missing maps and transport errors are not fatal."""
        self.client.fetch.return_value = FetchResult(url=ASSET + ".map", body="", status_code=404)
        assert self.resolver.resolve(ASSET) is None

        self.client.fetch.return_value = FetchResult(url=ASSET + ".map", error="timed out")
        assert self.resolver.resolve(ASSET) is None

    def test_falls_back_to_query_stripped_candidate(self):
        """Test that the second candidate is tried when the first fails."""
        asset = "https://example.com/bundle.js?v=2"
        responses = {
            "https://example.com/bundle.js.map": map_response(
                "https://example.com/bundle.js.map",
                {"version": 3, "sources": ["src/main.ts"], "sourcesContent": ["main()"]},
            ),
        }
        self.client.fetch.side_effect = lambda url: responses.get(
            url, FetchResult(url=url, body="", status_code=404)
        )

        original = self.resolver.resolve(asset)

        assert "SOURCE: src/main.ts" in original
        assert "main()" in original
