"""
Findings Module

Data model shared by the crawler, the pattern analyzer and the report
renderers, plus the cross-source aggregator that merges per-source findings
into one de-duplicated, source-attributed report.
"""

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple


class Category(str, Enum):
    """Finding categories. Also the namespace for every dedup set."""

    ENDPOINT = "endpoint"
    URL = "url"
    SECRET = "secret"
    EMAIL = "email"
    FILE = "file"


class AssetOrigin(str, Enum):
    """How a script asset was discovered."""

    HTML = "html"
    RECURSIVE = "recursive-reference"
    SOURCE_MAP = "source-map-recovered"


class AttributionPolicy(str, Enum):
    """How repeated values from different sources are attributed."""

    ALL_SOURCES = "all-sources"
    FIRST_SOURCE = "first-source"


@dataclass
class Asset:
    """A discovered script resource."""

    url: str
    filename: str
    content: str
    origin: AssetOrigin = AssetOrigin.HTML
    status_code: Optional[int] = None


@dataclass
class SecretMatch:
    """A secret accepted during one analysis pass, already masked."""

    value: str
    secret_type: str
    source: str

    @property
    def display(self) -> str:
        return f"{self.value} ({self.secret_type})"


@dataclass
class Findings:
    """
    Findings produced by a single analysis pass over one source.

    The four value categories keep discovery order; uniqueness is enforced by
    ``add`` through a seen set that lives only as long as this object.
    """

    source: str = ""
    endpoints: List[str] = field(default_factory=list)
    urls: List[str] = field(default_factory=list)
    secrets: List[SecretMatch] = field(default_factory=list)
    emails: List[str] = field(default_factory=list)
    files: List[str] = field(default_factory=list)
    _seen: Dict[Category, Set[str]] = field(
        default_factory=lambda: {category: set() for category in Category},
        repr=False,
        compare=False,
    )

    def add(self, category: Category, value: str) -> bool:
        """
        Record a value unless this pass already emitted it.

        Args:
            category: Category the value belongs to
            value: Extracted value (the masked display form for secrets)

        Returns:
            True if the value was new for this pass
        """
        seen = self._seen[category]
        if value in seen:
            return False
        seen.add(value)

        if category is Category.ENDPOINT:
            self.endpoints.append(value)
        elif category is Category.URL:
            self.urls.append(value)
        elif category is Category.EMAIL:
            self.emails.append(value)
        elif category is Category.FILE:
            self.files.append(value)
        return True

    def add_secret(self, secret: SecretMatch) -> bool:
        if secret.display in self._seen[Category.SECRET]:
            return False
        self._seen[Category.SECRET].add(secret.display)
        self.secrets.append(secret)
        return True

    def values(self, category: Category) -> List[str]:
        """Return the values of a category (secret display strings for secrets)."""
        if category is Category.SECRET:
            return [secret.display for secret in self.secrets]
        return {
            Category.ENDPOINT: self.endpoints,
            Category.URL: self.urls,
            Category.EMAIL: self.emails,
            Category.FILE: self.files,
        }[category]

    def is_empty(self) -> bool:
        return not any(self.values(category) for category in Category)


@dataclass
class SourceFinding:
    """Attribution record: which source produced a value."""

    source: str
    url: str
    status_code: Optional[int]

    def to_dict(self) -> Dict:
        return {"source": self.source, "url": self.url, "status_code": self.status_code}


@dataclass
class SecretFinding:
    """A secret in the aggregated report, carrying its own source."""

    value: str
    secret_type: str
    source: str
    url: str
    status_code: Optional[int]

    @property
    def display(self) -> str:
        return f"{self.value} ({self.secret_type})"

    def to_dict(self) -> Dict:
        return {
            "value": self.value,
            "type": self.secret_type,
            "source": self.source,
            "url": self.url,
            "status_code": self.status_code,
        }


# Attribution maps by category, in report order
_VALUE_CATEGORIES = (Category.ENDPOINT, Category.URL, Category.EMAIL, Category.FILE)
_REPORT_KEYS = {
    Category.ENDPOINT: "endpoints",
    Category.URL: "urls",
    Category.EMAIL: "emails",
    Category.FILE: "files",
}


class AggregatedFindings:
    """
    Findings merged across every analysed source.

    Writes are serialised through a lock so analysis can run in parallel
    while merges stay linearised.
    """

    def __init__(
        self, attribution: AttributionPolicy = AttributionPolicy.ALL_SOURCES
    ):
        """
        Initialize an empty aggregate.

        Args:
            attribution: ALL_SOURCES attributes a repeated value to every
                source that produced it; FIRST_SOURCE keeps only the first
        """
        self.attribution = AttributionPolicy(attribution)
        self.endpoints: Dict[str, List[SourceFinding]] = {}
        self.urls: Dict[str, List[SourceFinding]] = {}
        self.emails: Dict[str, List[SourceFinding]] = {}
        self.files: Dict[str, List[SourceFinding]] = {}
        self.secrets: List[SecretFinding] = []
        self.sources: Dict[str, SourceFinding] = {}
        self._seen: Set[Tuple] = set()
        self._lock = threading.Lock()

    def _attribution_map(self, category: Category) -> Dict[str, List[SourceFinding]]:
        return getattr(self, _REPORT_KEYS[category])

    def _seen_key(self, category: Category, value: str, source: str) -> Tuple:
        if self.attribution is AttributionPolicy.FIRST_SOURCE:
            return (category, value)
        return (category, value, source)

    def add_findings(
        self,
        findings: Findings,
        source: str,
        url: str,
        status_code: Optional[int],
    ) -> None:
        """
        Merge one source's findings.

        Args:
            findings: Findings from a single analysis pass
            source: Source label used for attribution
            url: URL the source was fetched from (may be empty)
            status_code: HTTP status code of the source
        """
        with self._lock:
            if source not in self.sources:
                self.sources[source] = SourceFinding(source, url, status_code)

            for category in _VALUE_CATEGORIES:
                attribution = self._attribution_map(category)
                for value in findings.values(category):
                    key = self._seen_key(category, value, source)
                    if key in self._seen:
                        continue
                    self._seen.add(key)
                    attribution.setdefault(value, []).append(
                        SourceFinding(source, url, status_code)
                    )

            for secret in findings.secrets:
                key = self._seen_key(Category.SECRET, secret.display, source)
                if key in self._seen:
                    continue
                self._seen.add(key)
                self.secrets.append(
                    SecretFinding(
                        value=secret.value,
                        secret_type=secret.secret_type,
                        source=source,
                        url=url,
                        status_code=status_code,
                    )
                )

    def summary(self) -> Dict[str, int]:
        counts = {
            "endpoints": len(self.endpoints),
            "urls": len(self.urls),
            "secrets": len(self.secrets),
            "emails": len(self.emails),
            "files": len(self.files),
        }
        counts["total"] = sum(counts.values())
        counts["sources"] = len(self.sources)
        return counts

    def total_count(self) -> int:
        return self.summary()["total"]

    def to_dict(self) -> Dict:
        """Serialise the aggregate into JSON-compatible structures."""
        data = {
            "attribution": self.attribution.value,
            "sources": [
                {"name": name, "url": sf.url, "status_code": sf.status_code}
                for name, sf in self.sources.items()
            ],
        }
        for category in _VALUE_CATEGORIES:
            data[_REPORT_KEYS[category]] = {
                value: {
                    "count": len(attribution),
                    "sources": [sf.to_dict() for sf in attribution],
                }
                for value, attribution in self._attribution_map(category).items()
            }
        data["secrets"] = [secret.to_dict() for secret in self.secrets]
        data["summary"] = self.summary()
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "AggregatedFindings":
        """Rebuild an aggregate (including its seen set) from ``to_dict`` output."""
        aggregated = cls(
            attribution=data.get("attribution", AttributionPolicy.ALL_SOURCES.value)
        )

        for entry in data.get("sources", []):
            aggregated.sources[entry["name"]] = SourceFinding(
                entry["name"], entry.get("url", ""), entry.get("status_code")
            )

        for category in _VALUE_CATEGORIES:
            attribution = aggregated._attribution_map(category)
            for value, entry in data.get(_REPORT_KEYS[category], {}).items():
                for sf in entry.get("sources", []):
                    attribution.setdefault(value, []).append(
                        SourceFinding(sf["source"], sf.get("url", ""), sf.get("status_code"))
                    )
                    aggregated._seen.add(
                        aggregated._seen_key(category, value, sf["source"])
                    )

        for entry in data.get("secrets", []):
            secret = SecretFinding(
                value=entry["value"],
                secret_type=entry["type"],
                source=entry["source"],
                url=entry.get("url", ""),
                status_code=entry.get("status_code"),
            )
            aggregated.secrets.append(secret)
            aggregated._seen.add(
                aggregated._seen_key(Category.SECRET, secret.display, secret.source)
            )

        return aggregated
