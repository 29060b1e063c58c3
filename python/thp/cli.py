"""
Command line entry point of the test helper prototype.

Notable URLs to try:

- http://яндекс.рф/
"""

from __future__ import annotations
import argparse
import logging
import sys
from typing import List, Optional

from .errors import InitialChecksError, THPError
from .explore import explore
from .generate import generate
from .initialchecks import initial_checks
from .options import Options
from .report import render
from . import tabulatex


def _new_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="thp",
        description="Discovers the URLs implied by a URL and measures their endpoints.",
    )
    parser.add_argument("-u", "--url", default="", help="URL to measure")
    parser.add_argument(
        "-f",
        "--format",
        default="text",
        choices=["text", "json"] + tabulatex.formats(),
        help="output format (default: text)",
    )
    parser.add_argument("--options", help="JSON file containing options")
    parser.add_argument("--timeout", type=float, help="per-operation timeout in seconds")
    parser.add_argument("--max-redirects", type=int, help="maximum number of redirects")
    parser.add_argument(
        "--parallelism", type=int, help="endpoints of a URL measured in parallel"
    )
    parser.add_argument("--ca-file", help="PEM file with additional CAs to trust")
    parser.add_argument(
        "--no-proxy", action="store_true", help="ignore proxy environment variables"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="verbose logging")
    return parser


def _options_from_args(args: argparse.Namespace) -> Options:
    """Loads the options file, if any, and applies the command line flags."""
    options = Options.load(args.options) if args.options else Options()
    if args.timeout is not None:
        options.timeout = args.timeout
    if args.max_redirects is not None:
        options.max_redirects = args.max_redirects
    if args.parallelism is not None:
        options.parallelism = args.parallelism
    if args.ca_file:
        options.ca_file = args.ca_file
    if args.no_proxy:
        options.use_env_proxies = False
    options.validate()
    return options


def main(argv: Optional[List[str]] = None) -> int:
    parser = _new_parser()
    args = parser.parse_args(argv)
    if not args.url:
        parser.error("missing or empty --url")
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(message)s",
        level=logging.INFO if args.verbose else logging.WARNING,
    )
    try:
        options = _options_from_args(args)
    except (OSError, ValueError) as exc:
        logging.error(f"invalid options: {exc}")
        return 1
    try:
        initial_checks(args.url)
    except InitialChecksError as exc:
        logging.error(f"initial checks failed: {exc}")
        return 1
    try:
        rts = explore(args.url, options)
    except THPError as exc:
        logging.error(f"explore failed: {exc}")
        return 1
    try:
        meas = generate(rts, options)
    except THPError as exc:
        logging.error(f"generate failed: {exc}")
        return 1
    sys.stdout.write(render(meas, args.format) + "\n")
    return 0
