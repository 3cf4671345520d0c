"""
Command-line interface for the page analyzer.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Union

from pageanalyzer.cancellation import CancelToken
from pageanalyzer.config import LOGIN_POLICIES, AnalyzerConfig, load_config
from pageanalyzer.core import PageAnalyzer
from pageanalyzer.errors import AnalysisError
from pageanalyzer.metrics import InMemoryMetrics
from pageanalyzer.models import AnalysisResult

LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s:%(lineno)d] - %(message)s"


def configure_logging(level: Union[str, int] = "WARNING") -> None:
    """Send all log records to stderr with a single formatter."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root_logger = logging.getLogger()
    log_level = getattr(logging, level.upper(), logging.WARNING) if isinstance(level, str) else level
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    # urllib3 logs every connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def print_summary(result: AnalysisResult, metrics: InMemoryMetrics) -> None:
    """Print analysis summary to stderr."""
    sys.stderr.write("=" * 50 + "\n")
    sys.stderr.write("ANALYSIS SUMMARY\n")
    sys.stderr.write("=" * 50 + "\n\n")

    sys.stderr.write(f"URL:                {result.url}\n")
    sys.stderr.write(f"HTML version:       {result.html_version.value}\n")
    sys.stderr.write(f"Title:              {result.title or '(none)'}\n")
    sys.stderr.write(f"Login form:         {'yes' if result.has_login_form else 'no'}\n\n")

    if result.headings:
        sys.stderr.write("Headings:\n")
        for level, count in sorted(result.headings.items()):
            sys.stderr.write(f"  {level}: {count}\n")
    else:
        sys.stderr.write("No headings found.\n")

    sys.stderr.write(f"\nInternal links:     {result.internal_links}\n")
    sys.stderr.write(f"External links:     {result.external_links}\n")
    sys.stderr.write(f"Inaccessible links: {result.inaccessible_links}\n")
    if metrics.durations:
        sys.stderr.write(f"Duration:           {metrics.durations[-1]:.2f}s\n")

    sys.stderr.write("\n")


def build_config(args: argparse.Namespace) -> AnalyzerConfig:
    """Settings file values, overridden by any flags given."""
    config = load_config(args.config)
    overrides = {
        "timeout": args.timeout,
        "max_concurrent_links": args.max_concurrent,
        "retry_attempts": args.retries,
        "user_agent": args.user_agent,
        "login_policy": args.login_policy,
    }
    return replace(config, **{k: v for k, v in overrides.items() if v is not None})


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Analyze a single web page and output JSON results."
    )
    parser.add_argument("url", help="Page URL (e.g. https://example.com)")
    parser.add_argument("--config", help="JSON settings file with an 'analyzer' section")
    parser.add_argument("--timeout", type=float, help="Per-request timeout in seconds (default: 10)")
    parser.add_argument("--max-concurrent", type=int, help="Maximum concurrent link checks (default: 10)")
    parser.add_argument("--retries", type=int, help="Attempts for the page fetch and each link check (default: 3)")
    parser.add_argument("--user-agent", help="User-Agent header")
    parser.add_argument("--login-policy", choices=LOGIN_POLICIES, help="Login form heuristic (default: permissive)")
    parser.add_argument("--deadline", type=float, help="Abort the whole analysis after this many seconds")
    parser.add_argument("--out", help="Output file path, or '-' for stdout (default: stdout)")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON")
    parser.add_argument("--verbose", action="store_true", help="Show progress and summary")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the analyzer CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging("INFO" if args.verbose else "WARNING")

    try:
        config = build_config(args)
    except ValueError as e:
        parser.error(str(e))

    metrics = InMemoryMetrics()
    token = CancelToken(timeout=args.deadline)

    try:
        with PageAnalyzer(config, metrics=metrics) as analyzer:
            result = analyzer.analyze(args.url, token)
    except AnalysisError as e:
        sys.stderr.write(f"Error: {e}\n")
        return 1

    if args.verbose:
        print_summary(result, metrics)

    json_text = json.dumps(result.to_dict(), ensure_ascii=False, indent=2 if args.pretty else None)

    if not args.out or args.out == "-":
        print(json_text)
    else:
        output_path = Path(args.out)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json_text, encoding="utf-8")
        if args.verbose:
            sys.stderr.write(f"Results written to: {output_path}\n")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
