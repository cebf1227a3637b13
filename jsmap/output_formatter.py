"""
Output Formatter Module

Renders aggregated findings as a console table, JSON, CSV or a standalone
HTML report.
"""

import csv
import io
import json
from datetime import datetime, timezone
from html import escape
from typing import Dict, List

from .findings import AggregatedFindings, SourceFinding


FORMATS = ("table", "json", "csv", "html")

_RULE = "─" * 64
_DOUBLE_RULE = "═" * 67

# (report key, table heading, CSV category)
_VALUE_SECTIONS = (
    ("endpoints", "📍 API ENDPOINTS", "endpoint"),
    ("urls", "🌐 URLS", "url"),
    ("emails", "📧 EMAILS", "email"),
    ("files", "📄 FILES", "file"),
)


class OutputFormatter:
    """Formats aggregated findings into the supported output formats."""

    def __init__(self, url_display_width: int = 60):
        """
        Initialize the output formatter.

        Args:
            url_display_width: URLs longer than this are truncated in tables
        """
        self.url_display_width = url_display_width

    def _source_names(self, attribution: List[SourceFinding]) -> List[str]:
        return [sf.source for sf in attribution]

    def format_output(self, aggregated: AggregatedFindings, output_format: str = "table") -> str:
        """
        Render findings in the requested format.

        Args:
            aggregated: Aggregated findings to render
            output_format: One of ``table``, ``json``, ``csv``, ``html``

        Returns:
            Rendered report text
        """
        renderers = {
            "table": self.format_table,
            "json": self.format_json,
            "csv": self.format_csv,
            "html": self.format_html,
        }
        if output_format not in renderers:
            raise ValueError(f"Unsupported output format: {output_format}")
        return renderers[output_format](aggregated)

    def format_table(self, aggregated: AggregatedFindings) -> str:
        lines = [
            "",
            "╔" + _DOUBLE_RULE + "╗",
            "║" + "JSMAP - JAVASCRIPT RECON SCANNER".center(67) + "║",
            "╚" + _DOUBLE_RULE + "╝",
            "",
        ]

        if aggregated.sources:
            lines.append(f"📊 SOURCES ({len(aggregated.sources)})")
            lines.append(_RULE)
            for name in sorted(aggregated.sources):
                sf = aggregated.sources[name]
                lines.append(f"  • {name} (Status: {sf.status_code})")
            lines.append("")

        if aggregated.endpoints:
            lines.extend(self._format_value_section(aggregated.endpoints, "📍 API ENDPOINTS"))
        if aggregated.urls:
            lines.extend(self._format_url_section(aggregated.urls, "🌐 URLS"))
        if aggregated.secrets:
            lines.extend(self._format_secret_section(aggregated))
        if aggregated.emails:
            lines.extend(self._format_value_section(aggregated.emails, "📧 EMAILS"))
        if aggregated.files:
            lines.extend(self._format_value_section(aggregated.files, "📄 FILES"))

        if aggregated.total_count() == 0:
            lines.append("No findings detected.")
            lines.append("")

        lines.append(_DOUBLE_RULE)
        return "\n".join(lines) + "\n"

    def _format_value_section(
        self, values: Dict[str, List[SourceFinding]], heading: str
    ) -> List[str]:
        lines = [f"{heading} ({len(values)})", _RULE]
        for value in sorted(values):
            attribution = values[value]
            if len(attribution) > 1:
                lines.append(f"  • {value} [{len(attribution)} sources]")
            else:
                lines.append(f"  • {value}")
        lines.append("")
        return lines

    def _format_url_section(self, urls: Dict[str, List[SourceFinding]], heading: str) -> List[str]:
        lines = [f"{heading} ({len(urls)})", _RULE]
        for url in sorted(urls):
            if len(url) > self.url_display_width:
                lines.append(f"  • {url[: self.url_display_width]}...")
            else:
                lines.append(f"  • {url}")
        lines.append("")
        return lines

    def _format_secret_section(self, aggregated: AggregatedFindings) -> List[str]:
        lines = [f"🔐 SECRETS ({len(aggregated.secrets)}) ⚠️  HIGH PRIORITY", _RULE]
        for secret in aggregated.secrets:
            lines.append(f"  ⚠️  {secret.display}")
            lines.append(f"      └─ Source: {secret.source}")
        lines.append("")
        return lines

    def format_json(self, aggregated: AggregatedFindings) -> str:
        """
        Render findings as JSON.

        The document is the aggregate's ``to_dict`` form plus a metadata block,
        so it can be loaded back with ``AggregatedFindings.from_dict``.
        """
        data = aggregated.to_dict()
        data["metadata"] = {
            "tool": "jsmap",
            "generated_at": datetime.now(timezone.utc).isoformat(),
        }
        return json.dumps(data, indent=2, ensure_ascii=False)

    def format_csv(self, aggregated: AggregatedFindings) -> str:
        output = io.StringIO()
        writer = csv.writer(output, lineterminator="\n")
        writer.writerow(["Category", "Value", "Sources", "Count"])

        for key, _, category in _VALUE_SECTIONS:
            values = getattr(aggregated, key)
            for value in sorted(values):
                names = self._source_names(values[value])
                writer.writerow([category, value, ";".join(names), len(names)])

        for secret in aggregated.secrets:
            writer.writerow(["secret", secret.display, secret.source, 1])

        return output.getvalue()

    def format_html(self, aggregated: AggregatedFindings) -> str:
        summary = aggregated.summary()
        parts = [
            "<!DOCTYPE html>",
            "<html>",
            "<head>",
            '    <meta charset="utf-8">',
            "    <title>jsmap - JavaScript Recon Report</title>",
            "    <style>",
            "        body { font-family: sans-serif; margin: 2em; }",
            "        table { border-collapse: collapse; width: 100%; margin-bottom: 2em; }",
            "        th, td { border: 1px solid #ccc; padding: 4px 8px; text-align: left; }",
            "        .secret { color: #b00020; }",
            "    </style>",
            "</head>",
            "<body>",
            "<h1>jsmap - JavaScript Recon Report</h1>",
            "<ul>",
        ]
        for name in ("endpoints", "urls", "secrets", "emails", "files", "total", "sources"):
            parts.append(f"    <li>{name}: {summary[name]}</li>")
        parts.append("</ul>")

        parts.append("<h2>Sources</h2>")
        parts.append("<table><tr><th>Source</th><th>URL</th><th>Status</th></tr>")
        for name in sorted(aggregated.sources):
            sf = aggregated.sources[name]
            parts.append(
                f"<tr><td>{escape(name)}</td><td>{escape(sf.url or '')}</td>"
                f"<td>{sf.status_code}</td></tr>"
            )
        parts.append("</table>")

        for key, heading, _ in _VALUE_SECTIONS:
            values = getattr(aggregated, key)
            if not values:
                continue
            parts.append(f"<h2>{escape(heading)} ({len(values)})</h2>")
            parts.append("<table><tr><th>Value</th><th>Sources</th></tr>")
            for value in sorted(values):
                names = ", ".join(escape(n) for n in self._source_names(values[value]))
                parts.append(f"<tr><td>{escape(value)}</td><td>{names}</td></tr>")
            parts.append("</table>")

        if aggregated.secrets:
            parts.append(f"<h2>Secrets ({len(aggregated.secrets)})</h2>")
            parts.append("<table><tr><th>Value</th><th>Type</th><th>Source</th></tr>")
            for secret in aggregated.secrets:
                parts.append(
                    f'<tr class="secret"><td>{escape(secret.value)}</td>'
                    f"<td>{escape(secret.secret_type)}</td><td>{escape(secret.source)}</td></tr>"
                )
            parts.append("</table>")

        parts.extend(["</body>", "</html>"])
        return "\n".join(parts) + "\n"
