"""
Tests for the HTTP Client module.
"""

from unittest.mock import Mock, patch

import pytest
import requests

from jsmap.client import (
    DEFAULT_USER_AGENT,
    HTTPClient,
    RequestParseError,
    parse_raw_request,
    read_url_list,
)


class TestHTTPClient:
    """Test cases for HTTPClient class."""

    def test_session_configuration(self):
        """Test that user agent, cookie, headers and proxy reach the session."""
        client = HTTPClient(
            cookie="session=abc123",
            proxy="http://127.0.0.1:8080",
            headers={"Authorization": "Bearer t0ken"},
        )

        assert client.session.headers["User-Agent"] == DEFAULT_USER_AGENT
        assert client.session.headers["Cookie"] == "session=abc123"
        assert client.session.headers["Authorization"] == "Bearer t0ken"
        assert client.session.proxies == {
            "http": "http://127.0.0.1:8080",
            "https": "http://127.0.0.1:8080",
        }

    @patch("jsmap.client.requests.Session.get")
    def test_fetch_success(self, mock_get):
        """Test a successful fetch."""
        mock_response = Mock()
        mock_response.status_code = 200
        mock_response.text = "var a = 1;"
        mock_response.content = b"var a = 1;"
        mock_get.return_value = mock_response

        client = HTTPClient(timeout=5)
        result = client.fetch("https://example.com/app.js")

        assert result.ok
        assert result.body == "var a = 1;"
        assert result.status_code == 200
        mock_get.assert_called_once_with("https://example.com/app.js", headers=None, timeout=5)

    @patch("jsmap.client.requests.Session.get")
    def test_fetch_non_2xx_is_not_an_error(self, mock_get):
        """Test that HTTP error statuses are returned as results."""
        mock_response = Mock()
        mock_response.status_code = 404
        mock_response.text = "Not found"
        mock_get.return_value = mock_response

        result = HTTPClient().fetch("https://example.com/missing.js")

        assert result.ok
        assert result.status_code == 404

    @patch("jsmap.client.requests.Session.get")
    def test_fetch_network_error(self, mock_get):
        """Test that transport failures are reported on the result."""
        mock_get.side_effect = requests.ConnectionError("connection refused")

        result = HTTPClient().fetch("https://example.com/app.js")

        assert not result.ok
        assert "connection refused" in result.error
        assert result.status_code is None


class TestRawRequestParsing:
    """Test cases for raw HTTP request parsing."""

    def test_parse_raw_request(self):
        """Test parsing of a proxy-exported request."""
        raw = (
            "GET /static/app.js?v=3 HTTP/1.1\r\n"
            "Host: target.com\r\n"
            "Cookie: session=abc\r\n"
            "Accept: */*\r\n"
            "\r\n"
        )

        request = parse_raw_request(raw)

        assert request.method == "GET"
        assert request.url == "https://target.com/static/app.js?v=3"
        assert request.headers["Cookie"] == "session=abc"
        assert request.headers["Host"] == "target.com"

    def test_localhost_uses_http(self):
        """Test the plain-http scheme for local targets."""
        request = parse_raw_request("GET / HTTP/1.1\nHost: localhost:3000\n\n")
        assert request.url == "http://localhost:3000/"

        request = parse_raw_request("GET / HTTP/1.1\nHost: 127.0.0.1:8000\n\n")
        assert request.url == "http://127.0.0.1:8000/"

    def test_body_is_kept(self):
        """Test that the request body follows the blank line."""
        request = parse_raw_request(
            'POST /api/login HTTP/1.1\nHost: target.com\n\n{"user": "a"}'
        )

        assert request.method == "POST"
        assert request.body == '{"user": "a"}'

    def test_invalid_request_line(self):
        """Test that a malformed request line is rejected."""
        with pytest.raises(RequestParseError):
            parse_raw_request("GET /\nHost: target.com\n\n")

        with pytest.raises(RequestParseError):
            parse_raw_request("")

    def test_missing_host(self):
        """Test that a request without Host is rejected."""
        with pytest.raises(RequestParseError):
            parse_raw_request("GET / HTTP/1.1\nAccept: */*\n\n")


class TestUrlList:
    """Test cases for URL list files."""

    def test_read_url_list(self, tmp_path):
        """Test that blank lines and comments are skipped."""
        url_file = tmp_path / "targets.txt"
        url_file.write_text(
            "# staging\nhttps://a.example.com/app.js\n\n  https://b.example.com/  \n#https://skip.me\n"
        )

        assert read_url_list(str(url_file)) == [
            "https://a.example.com/app.js",
            "https://b.example.com/",
        ]
