"""
Tests for the CLI module.
"""

import json
import threading
from unittest.mock import patch

import pytest

from jsmap.cli import main, parse_arguments, run
from jsmap.client import FetchResult


class TestParseArguments:
    """Test cases for argument parsing."""

    def test_defaults(self):
        """Test default option values."""
        args = parse_arguments(["-u", "https://target.com/app.js"])

        assert args.url == "https://target.com/app.js"
        assert args.format == "table"
        assert args.attribution == "all-sources"
        assert args.threads == 1
        assert args.timeout == 30
        assert args.headers == {}
        assert not args.crawl

    def test_headers(self):
        """Test repeated header options."""
        args = parse_arguments(
            ["-u", "https://t.com", "-H", "Authorization: Bearer abc", "-H", "X-Test:1"]
        )

        assert args.headers == {"Authorization": "Bearer abc", "X-Test": "1"}

    def test_requires_one_input(self):
        """Test that exactly one input mode must be given."""
        with pytest.raises(SystemExit):
            parse_arguments([])

        with pytest.raises(SystemExit):
            parse_arguments(["-u", "https://t.com", "-f", "app.js"])

    def test_rejects_bad_values(self):
        """Test validation of threads, formats and headers."""
        with pytest.raises(SystemExit):
            parse_arguments(["-u", "https://t.com", "-t", "0"])

        with pytest.raises(SystemExit):
            parse_arguments(["-u", "https://t.com", "--format", "xml"])

        with pytest.raises(SystemExit):
            parse_arguments(["-u", "https://t.com", "-H", "no-colon"])

    def test_attribution_choice(self):
        """Test the attribution policy option."""
        args = parse_arguments(["-f", "app.js", "--attribution", "first-source"])
        assert args.attribution == "first-source"


class TestRun:
    """Test cases for the CLI pipeline."""

    def test_run_file(self, tmp_path):
        """Test a local file scan through the CLI."""
        js_file = tmp_path / "app.js"
        js_file.write_text('fetch("/api/v1/users");')

        args = parse_arguments(["-f", str(js_file)])
        scanner = run(args, threading.Event())

        assert "/api/v1/users" in scanner.aggregated.endpoints

    @patch("jsmap.client.HTTPClient.fetch")
    def test_run_url(self, mock_fetch):
        """Test a single URL scan through the CLI."""
        mock_fetch.return_value = FetchResult(
            url="https://t.com/app.js", body='fetch("/api/v1/orders");', status_code=200
        )

        args = parse_arguments(["-u", "https://t.com/app.js"])
        scanner = run(args, threading.Event())

        assert "/api/v1/orders" in scanner.aggregated.endpoints

    def test_main_writes_output_file(self, tmp_path):
        """Test that results are written to the requested output file."""
        js_file = tmp_path / "app.js"
        js_file.write_text('fetch("/api/v1/users");')
        output_file = tmp_path / "reports" / "out.json"

        main(["-f", str(js_file), "--format", "json", "-o", str(output_file), "-q"])

        data = json.loads(output_file.read_text(encoding="utf-8"))
        assert "/api/v1/users" in data["endpoints"]

    def test_main_missing_file_exits(self, tmp_path):
        """Test that an unreadable input exits with status 1."""
        with pytest.raises(SystemExit) as exc_info:
            main(["-f", str(tmp_path / "missing.js"), "-q"])

        assert exc_info.value.code == 1
