"""
CLI Module - Command Line Interface for jsmap

Handles command-line argument parsing and orchestrates fetching, crawling,
pattern analysis and report output.
"""

import argparse
import signal
import sys
import threading
import time
from pathlib import Path
from typing import Dict, List, Optional

from .analyzer import PatternAnalyzer
from .client import DEFAULT_USER_AGENT, HTTPClient, RequestParseError
from .findings import AttributionPolicy
from .output_formatter import FORMATS, OutputFormatter
from .scanner import ScanError, Scanner


def parse_headers(raw_headers: Optional[List[str]]) -> Dict[str, str]:
    """Turn repeated ``Name: value`` arguments into a header dict."""
    headers = {}
    for raw in raw_headers or []:
        if ":" not in raw:
            raise argparse.ArgumentTypeError(f"Invalid header (expected 'Name: value'): {raw}")
        name, value = raw.split(":", 1)
        headers[name.strip()] = value.strip()
    return headers


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="jsmap",
        description="Extract API endpoints, URLs, secrets, emails and file references from JavaScript",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py -u https://target.com/app.js
  python main.py -u https://target.com --crawl
  python main.py -u https://target.com --crawl --format json -o results.json
  python main.py -r request.txt --cookie "session=abc123"
  python main.py -ul targets.txt -t 5 -o results.csv --format csv
  python main.py -f app.js --format json -q
  python main.py -u https://api.target.com --proxy http://127.0.0.1:8080 -v
        """,
    )

    inputs = parser.add_argument_group("input (exactly one)")
    inputs.add_argument("-u", "--url", help="Target URL to fetch and analyze")
    inputs.add_argument("-r", "--request", help="Raw HTTP request file")
    inputs.add_argument("-f", "--file", help="Local JavaScript file")
    inputs.add_argument("-ul", "--url-list", help="File with URLs (one per line)")
    inputs.add_argument(
        "--crawl",
        action="store_true",
        help="Crawl the page for JavaScript files and analyze all of them",
    )

    auth = parser.add_argument_group("request")
    auth.add_argument("--cookie", help="HTTP Cookie header value")
    auth.add_argument(
        "--ua", default=DEFAULT_USER_AGENT, help=f"User-Agent (default: {DEFAULT_USER_AGENT})"
    )
    auth.add_argument(
        "-H",
        "--header",
        action="append",
        metavar="'Name: value'",
        help="Extra request header (repeatable)",
    )
    auth.add_argument(
        "--timeout", type=int, default=30, help="Request timeout in seconds (default: 30)"
    )
    auth.add_argument("--proxy", help="HTTP proxy URL (e.g. http://127.0.0.1:8080)")
    auth.add_argument(
        "-t", "--threads", type=int, default=1, help="Concurrent requests for URL lists (default: 1)"
    )

    output = parser.add_argument_group("output")
    output.add_argument("-o", "--output", help="Output file")
    output.add_argument(
        "--format", choices=FORMATS, default="table", help="Output format (default: table)"
    )
    output.add_argument(
        "--attribution",
        choices=[policy.value for policy in AttributionPolicy],
        default=AttributionPolicy.ALL_SOURCES.value,
        help="Attribute repeated findings to every source or only the first (default: all-sources)",
    )
    output.add_argument("-q", "--quiet", action="store_true", help="Quiet mode")
    output.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")

    args = parser.parse_args(argv)

    provided = [name for name in ("url", "request", "file", "url_list") if getattr(args, name)]
    if not provided:
        parser.error("provide one input: -u, -r, -f or -ul")
    if len(provided) > 1:
        parser.error("provide only one input type: -u, -r, -f or -ul")
    if args.threads < 1:
        parser.error("--threads must be at least 1")

    try:
        args.headers = parse_headers(args.header)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))

    return args


def run(args: argparse.Namespace, cancel_event: threading.Event) -> Scanner:
    """Build the pipeline for the parsed arguments and scan the selected input."""
    client = HTTPClient(
        user_agent=args.ua,
        cookie=args.cookie,
        timeout=args.timeout,
        proxy=args.proxy,
        headers=args.headers,
        verbose=args.verbose,
    )
    scanner = Scanner(
        client=client,
        analyzer=PatternAnalyzer(verbose=args.verbose),
        attribution=AttributionPolicy(args.attribution),
        threads=args.threads,
        verbose=args.verbose,
        cancel_event=cancel_event,
    )

    verbose = args.verbose and not args.quiet

    if args.url and args.crawl:
        if verbose:
            print(f"🕷️  Crawling URL: {args.url}")
        scanner.scan_crawl(args.url)
    elif args.url:
        if verbose:
            print(f"🚀 Fetching URL: {args.url}")
        scanner.scan_url(args.url)
    elif args.url_list:
        if verbose:
            print(f"📋 Reading URL list: {args.url_list}")
        errors = scanner.scan_url_list(args.url_list)
        for url, error in errors.items():
            print(f"❌ Error processing {url}: {error}", file=sys.stderr)
    elif args.request:
        if verbose:
            print(f"📨 Processing request file: {args.request}")
        scanner.scan_request_file(args.request, crawl=args.crawl)
    elif args.file:
        if verbose:
            print(f"📄 Analyzing JS file: {args.file}")
        scanner.scan_file(args.file)

    return scanner


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the CLI application."""
    args = parse_arguments(argv)

    cancel_event = threading.Event()

    def _on_sigint(*_) -> None:
        if cancel_event.is_set():
            # Second Ctrl-C: give up immediately
            raise KeyboardInterrupt
        print("\n⚠️  Interrupted, finishing with partial results...", file=sys.stderr)
        cancel_event.set()

    previous_handler = signal.signal(signal.SIGINT, _on_sigint)

    start_time = time.time()

    try:
        scanner = run(args, cancel_event)
    except KeyboardInterrupt:
        print("\n❌ Analysis interrupted by user", file=sys.stderr)
        sys.exit(1)
    except (ScanError, RequestParseError, OSError) as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    aggregated = scanner.aggregated
    if args.verbose and not args.quiet:
        print(
            f"✅ Total findings: {aggregated.total_count()} "
            f"({time.time() - start_time:.2f} seconds)"
        )

    output_str = OutputFormatter().format_output(aggregated, args.format)

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with open(output_path, "w", encoding="utf-8") as f:
                f.write(output_str)
        except OSError as e:
            print(f"❌ Error writing output: {e}", file=sys.stderr)
            sys.exit(1)
        if not args.quiet:
            print(f"💾 Results saved to: {args.output}")
    elif not args.quiet:
        print(output_str)


if __name__ == "__main__":
    main()
