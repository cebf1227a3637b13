"""
Pattern Analyzer Module

Extracts security-relevant artifacts (API endpoints, URLs, secrets, email
addresses and file references) from JavaScript text using heuristic regular
expressions. The text is never parsed; minified code gets a whitespace-spaced
secondary rendering so single-line patterns can find token boundaries.
"""

import re
from typing import List, Optional

from .findings import Category, Findings, SecretMatch


# Quote characters that delimit string and template literals
_QUOTE = r"[\"'`]"


def _quoted(body: str) -> "re.Pattern":
    # Whitespace inside the quotes is tolerated for the spaced rendering
    return re.compile(_QUOTE + r"\s*(" + body + r")\s*" + _QUOTE)


ENDPOINT_PATTERNS = [
    # API endpoints
    _quoted(r"(?:https?:)?//[^\"'`\s]+/api/[a-zA-Z0-9/_-]+"),
    _quoted(r"/api/(?:v\d+/)?[a-zA-Z0-9/_-]{2,}"),
    _quoted(r"/v\d+/[a-zA-Z0-9/_-]{2,}"),
    _quoted(r"/rest/[a-zA-Z0-9/_-]{2,}"),
    _quoted(r"/graphql[a-zA-Z0-9/_-]*"),
    # OAuth / auth endpoints
    _quoted(r"/oauth[0-9]*/[a-zA-Z0-9/_-]+"),
    _quoted(r"/auth[a-zA-Z0-9/_-]*"),
    _quoted(r"/login[a-zA-Z0-9/_-]*"),
    _quoted(r"/logout[a-zA-Z0-9/_-]*"),
    _quoted(r"/token[a-zA-Z0-9/_-]*"),
    # Sensitive paths
    _quoted(r"/admin[a-zA-Z0-9/_-]*"),
    _quoted(r"/dashboard[a-zA-Z0-9/_-]*"),
    _quoted(r"/internal[a-zA-Z0-9/_-]*"),
    _quoted(r"/debug[a-zA-Z0-9/_-]*"),
    _quoted(r"/config[a-zA-Z0-9/_-]*"),
    _quoted(r"/backup[a-zA-Z0-9/_-]*"),
    _quoted(r"/private[a-zA-Z0-9/_-]*"),
    _quoted(r"/upload[a-zA-Z0-9/_-]*"),
    _quoted(r"/download[a-zA-Z0-9/_-]*"),
    # Well-known / identity provider paths
    _quoted(r"/\.well-known/[a-zA-Z0-9/_-]+"),
    _quoted(r"/idp/[a-zA-Z0-9/_-]+"),
]

ENDPOINT_NOISE_STRINGS = frozenset(
    {"http://", "https://", "/a", "/P", "/R", "/V", "/W"}
)

ENDPOINT_NOISE_PATTERNS = [
    re.compile(pattern)
    for pattern in (
        r"^\.\.?/",  # ./ or ../
        r"^/?[a-z]{2}(-[a-z]{2})?\.js$",  # locale files
        r"^/?[a-z]{2}(-[a-z]{2})?$",  # bare locale
        r"-xform$",  # spreadsheet xform modules
        r"^/?sha\d*$",  # crypto modules
        r"^/?(aes|des|md5)$",
        r"^/[A-Z][a-z]+\s",  # PDF structures
        r"^/[A-Z][a-z]+$",  # PDF objects
        r"^\d+ \d+ R$",  # PDF references
        r"^/?xl/",  # office document internals
        r"^/?docProps/",
        r"^/?_rels/",
        r"^/?META-INF/",
        r"\.xml$",
        r"^/?worksheets/",
        r"^/?theme/",
        r"^/?webpack",  # bundler artifacts
        r"^/?zone\.js$",
        r"^/?readable-stream/",
        r"^/?process/",
        r"^/?stream/",
        r"^/?(buffer|events|util|path)$",
        r"^\+",
        r"^\$\{",  # template literal start
        r"^#",  # fragment
        r"^\?",  # query string
        r"^/[a-zA-Z]$",  # single letter
        r"_ngcontent",  # Angular internals
    )
]

URL_PATTERNS = [
    re.compile(r"[\"'`](https?://[^\s\"'`<>]{10,})[\"'`]"),
    re.compile(r"[\"'`](wss?://[^\s\"'`<>]{10,})[\"'`]"),
    re.compile(r"[\"'`](sftp://[^\s\"'`<>]{10,})[\"'`]"),
    # Cloud storage
    re.compile(r"(https?://[a-zA-Z0-9.-]+\.s3[a-zA-Z0-9.-]*\.amazonaws\.com[^\s\"'`<>]*)"),
    re.compile(r"(https?://[a-zA-Z0-9.-]+\.blob\.core\.windows\.net[^\s\"'`<>]*)"),
    re.compile(r"(https?://storage\.googleapis\.com/[^\s\"'`<>]*)"),
]

URL_NOISE_DOMAINS = (
    "www.w3.org",
    "schemas.openxmlformats.org",
    "schemas.microsoft.com",
    "purl.org",
    "purl.oclc.org",
    "openoffice.org",
    "docs.oasis-open.org",
    "sheetjs.openxmlformats.org",
    "ns.adobe.com",
    "www.xml.org",
    "example.com",
    "test.com",
    "localhost",
    "127.0.0.1",
    "fusioncharts.com",
    "jspdf.default.namespaceuri",
    "npmjs.org",
    "registry.npmjs.org",
    "github.com/indutny",
    "github.com/crypto-browserify",
    "jqwidgets.com",
    "ag-grid.com",
)

URL_STATIC_EXTENSIONS = (
    ".css", ".png", ".jpg", ".jpeg", ".gif", ".svg", ".ico", ".woff", ".woff2", ".ttf",
)

SECRET_PATTERNS = [
    ("AWS Key", re.compile(r"AKIA[0-9A-Z]{16}")),
    ("Google API", re.compile(r"AIza[0-9A-Za-z\-_]{35}")),
    ("Stripe Live", re.compile(r"sk_live_[0-9a-zA-Z]{24,}")),
    ("GitHub PAT", re.compile(r"ghp_[0-9a-zA-Z]{36}")),
    ("Slack Token", re.compile(r"xox[baprs]-[0-9a-zA-Z\-]{10,48}")),
    ("JWT", re.compile(r"eyJ[A-Za-z0-9_-]{10,}\.eyJ[A-Za-z0-9_-]{10,}\.[A-Za-z0-9_-]+")),
    ("Private Key", re.compile(r"-----BEGIN (?:RSA |EC )?PRIVATE KEY-----")),
    ("MongoDB", re.compile(r"mongodb(?:\+srv)?://[^\s\"'`<>]+")),
    ("PostgreSQL", re.compile(r"postgres(?:ql)?://[^\s\"'`<>]+")),
]

SECRET_NOISE_WORDS = ("example", "placeholder", "your", "xxxx", "test")

_EMAIL = r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,6}"

EMAIL_PATTERNS = [
    re.compile(_EMAIL),  # bare
    re.compile(r"[\"'](" + _EMAIL + r")[\"']"),  # quoted
    re.compile(r"=[\"'](" + _EMAIL + r")[\"']"),  # assigned
]

EMAIL_EXCLUDED_DOMAINS = frozenset(
    {"example.com", "test.com", "domain.com", "placeholder.com"}
)

EMAIL_NOISE_WORDS = ("example", "test", "placeholder", "noreply")

FILE_PATTERN = re.compile(
    r"[\"'`]([a-zA-Z0-9_/.-]+\.(?:sql|csv|xlsx|xls|json|xml|yaml|yml|txt|log|conf"
    r"|config|cfg|ini|env|bak|backup|old|orig|copy|key|pem|crt|cer|p12|pfx|doc|docx"
    r"|pdf|zip|tar|gz|rar|7z|sh|bat|ps1|py|rb|pl))[\"'`]"
)

FILE_NOISE_MARKERS = (
    "package.json",
    "tsconfig.json",
    "webpack",
    "babel",
    "eslint",
    "prettier",
    "node_modules",
    ".min.",
    "polyfill",
    "vendor",
    "chunk",
    "bundle",
)

# Spaced rendering
_QUOTED_DQ_PATH = re.compile(r'"(/[^"]*?)"')
_QUOTED_SQ_PATH = re.compile(r"'(/[^']*?)'")
SPACED_PATH_PREFIXES = (
    "/api/",
    "/auth",
    "/admin",
    "/v1/",
    "/v2/",
    "/v3/",
    "/oauth",
    "/login",
    "/upload",
    "/download",
    "/config",
    "/dashboard",
    "/graphql",
    "/rest/",
)
# Only split a prefix off punctuation; never inside a path, word or URL
_GLUED_PATH_PREFIX = re.compile(
    r"(?<=[^\s\w/.\-\"'])(?=" + "|".join(re.escape(p) for p in SPACED_PATH_PREFIXES) + ")"
)


def is_minified(content: str) -> bool:
    """
    Heuristically decide whether JavaScript text is minified.

    Any one of the following is enough:
      - fewer than 3 lines and more than 5000 bytes
      - more than two thirds of the non-empty lines exceed 200 characters
      - more than 10 non-empty lines, under 10% of them comments, and more
        than 10000 bytes
    """
    lines = content.split("\n")
    size = len(content.encode("utf-8"))

    if len(lines) < 3 and size > 5000:
        return True

    non_empty = 0
    long_lines = 0
    comment_lines = 0
    for line in lines:
        line = line.strip()
        if not line:
            continue
        non_empty += 1
        if len(line) > 200:
            long_lines += 1
        if line.startswith("//") or line.startswith("/*"):
            comment_lines += 1

    if non_empty and long_lines * 3 > non_empty * 2:
        return True

    if non_empty > 10 and comment_lines * 10 < non_empty and size > 10000:
        return True

    return False


def space_minified(content: str) -> str:
    """
    Render minified code with whitespace injected at token boundaries.

    Only used as extra search text for pattern matching.
    """
    spaced = _QUOTED_DQ_PATH.sub(r'" \1 "', content)
    spaced = _QUOTED_SQ_PATH.sub(r"' \1 '", spaced)

    # Colons after quoted keys
    spaced = spaced.replace('":', '" : ').replace("':", "' : ")

    spaced = _GLUED_PATH_PREFIX.sub(" ", spaced)
    spaced = spaced.replace("@", " @ ")

    spaced = spaced.replace(";", ";\n").replace(",", ",\n")
    return spaced


def mask_secret(value: str) -> str:
    """Keep the first 10 and last 4 characters of values longer than 20."""
    if len(value) > 20:
        return value[:10] + "..." + value[-4:]
    return value


class PatternAnalyzer:
    """Extracts categorised findings from script text."""

    def __init__(self, verbose: bool = False):
        """
        Initialize the analyzer.

        Args:
            verbose: Enable verbose logging
        """
        self.verbose = verbose

    def analyze(self, content: str, source: str) -> Findings:
        """
        Analyze one source's text.

        Args:
            content: Raw text to analyze
            source: Label of the source the text came from

        Returns:
            Findings for this source (empty containers when nothing matches)
        """
        findings = Findings(source=source)

        minified = is_minified(content)
        spaced = space_minified(content) if minified else None
        if self.verbose and minified:
            print(f"    🗜️  Detected minified JavaScript: {source}")

        self._extract_endpoints(spaced if minified else content, findings)
        self._extract_urls(content, findings)
        self._extract_secrets(self._search_texts(content, spaced), source, findings)
        self._extract_emails(self._search_texts(content, spaced), findings)
        self._extract_files(content, findings)

        return findings

    def _search_texts(self, content: str, spaced: Optional[str]) -> List[str]:
        if spaced is None:
            return [content]
        return [content, spaced]

    def _record(self, findings: Findings, category: Category, value: str) -> None:
        if findings.add(category, value) and self.verbose:
            print(f"      [+] {category.value}: {value}")

    def _extract_endpoints(self, search_content: str, findings: Findings) -> None:
        for pattern in ENDPOINT_PATTERNS:
            for match in pattern.finditer(search_content):
                value = match.group(1).strip()
                if self._is_valid_endpoint(value):
                    self._record(findings, Category.ENDPOINT, value)

    def _extract_urls(self, search_content: str, findings: Findings) -> None:
        for pattern in URL_PATTERNS:
            for match in pattern.finditer(search_content):
                value = match.group(1).strip()
                if self._is_valid_url(value):
                    self._record(findings, Category.URL, value)

    def _extract_secrets(
        self, search_contents: List[str], source: str, findings: Findings
    ) -> None:
        seen_matches = set()
        raw_matches: List[str] = []

        for index, search_content in enumerate(search_contents):
            for secret_type, pattern in SECRET_PATTERNS:
                for match in pattern.finditer(search_content):
                    value = match.group(0)
                    if value in seen_matches:
                        continue
                    # Spacing can cut a token short, e.g. "scheme://user:pw @ host"
                    if index > 0 and any(value in raw for raw in raw_matches):
                        continue
                    seen_matches.add(value)
                    if index == 0:
                        raw_matches.append(value)

                    if not self._is_valid_secret(value):
                        continue

                    secret = SecretMatch(
                        value=mask_secret(value), secret_type=secret_type, source=source
                    )
                    if findings.add_secret(secret) and self.verbose:
                        print(f"      [!] Secret: {secret.display}")

    def _extract_emails(self, search_contents: List[str], findings: Findings) -> None:
        seen_matches = set()

        for search_content in search_contents:
            for pattern in EMAIL_PATTERNS:
                for match in pattern.finditer(search_content):
                    value = match.group(1) if match.lastindex else match.group(0)
                    if value in seen_matches:
                        continue
                    seen_matches.add(value)

                    if self._is_valid_email(value):
                        self._record(findings, Category.EMAIL, value)

    def _extract_files(self, search_content: str, findings: Findings) -> None:
        for match in FILE_PATTERN.finditer(search_content):
            value = match.group(1).strip()
            if self._is_valid_file(value):
                self._record(findings, Category.FILE, value)

    def _is_valid_endpoint(self, value: str) -> bool:
        """
        Check whether an endpoint candidate is a real-looking path.

        Args:
            value: Candidate path

        Returns:
            True if the candidate passes every noise filter
        """
        if len(value) < 3:
            return False

        if value in ENDPOINT_NOISE_STRINGS:
            return False

        if any(pattern.search(value) for pattern in ENDPOINT_NOISE_PATTERNS):
            return False

        if not value.startswith("/"):
            return False

        # Needs at least two non-empty path segments
        segments = [segment for segment in value.split("/") if segment]
        return len(segments) >= 2

    def _is_valid_url(self, value: str) -> bool:
        if len(value) < 15:
            return False

        value_lower = value.lower()

        if any(domain in value_lower for domain in URL_NOISE_DOMAINS):
            return False

        # Unfilled placeholders
        if "{" in value or "undefined" in value_lower or "null" in value_lower:
            return False

        if value_lower.startswith("data:"):
            return False

        if value_lower.endswith(URL_STATIC_EXTENSIONS):
            return False

        return True

    def _is_valid_secret(self, value: str) -> bool:
        if len(value) < 10:
            return False

        value_lower = value.lower()
        return not any(word in value_lower for word in SECRET_NOISE_WORDS)

    def _is_valid_email(self, value: str) -> bool:
        if "@" not in value:
            return False

        value_lower = value.lower()
        domain = value_lower.rsplit("@", 1)[-1]
        if domain in EMAIL_EXCLUDED_DOMAINS:
            return False

        return not any(word in value_lower for word in EMAIL_NOISE_WORDS)

    def _is_valid_file(self, value: str) -> bool:
        """
        Check whether a quoted file reference is worth reporting.

        Build-tool artifacts, source maps and short ``.json`` names (locale
        files such as ``en-us.json``) are rejected.
        """
        if len(value) < 3:
            return False

        value_lower = value.lower()

        if any(marker in value_lower for marker in FILE_NOISE_MARKERS):
            return False

        if value_lower.endswith(".map"):
            return False

        if value_lower.endswith(".json"):
            last_part = value.rsplit("/", 1)[-1]
            if len(last_part) <= 7:
                return False

        return True
