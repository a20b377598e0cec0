from __future__ import annotations

import argparse
import logging
import re
import sys
from typing import NoReturn

from httx import __version__
from httx.cli import request
from httx.cli._output import OUTPUT_FORMATS
from httx.errors import EXIT_INVALID_ARGUMENTS
from httx.models import ContentMode

_TIMEOUT_RE = re.compile(r"^(\d+(?:\.\d+)?)(ms|s)?$")


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(EXIT_INVALID_ARGUMENTS, f"{self.prog}: error: {message}\n")


def parse_timeout(value: str) -> int:
    """``500`` and ``500ms`` are milliseconds, ``2s`` and ``1.5s`` are seconds."""
    match = _TIMEOUT_RE.match(value.strip())
    if not match:
        raise argparse.ArgumentTypeError(f"invalid timeout '{value}', expected e.g. 500, 500ms or 2s")
    amount, unit = float(match.group(1)), match.group(2)
    return int(amount * 1000) if unit == "s" else int(amount)


def create_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="httx",
        description="Make HTTP requests with key=value items: "
        "Header:value, param==value, field=value, field:=json, field@file",
    )
    parser.add_argument(
        "items",
        nargs="*",
        metavar="ARG",
        help="[METHOD] URL [ITEM ...]: HTTP method (default: GET), URL, then request items",
    )

    mode = parser.add_argument_group("content mode (the last one given wins)")
    mode.add_argument(
        "-j",
        "--json",
        dest="content_mode",
        action="store_const",
        const=ContentMode.JSON,
        help="Send data items as JSON (default when data items are given)",
    )
    mode.add_argument(
        "-f",
        "--form",
        dest="content_mode",
        action="store_const",
        const=ContentMode.FORM,
        help="Send data items form-encoded",
    )
    mode.add_argument(
        "-m",
        "--multipart",
        dest="content_mode",
        action="store_const",
        const=ContentMode.MULTIPART,
        help="Send data items as multipart form data (implied by file items)",
    )

    parser.add_argument(
        "-H",
        "--header",
        action="append",
        dest="headers",
        metavar="HEADER",
        help="Header in 'Key: Value' format (repeatable). 'Key:' removes a default header.",
    )
    parser.add_argument("-a", "--auth", metavar="USER[:PASS]", help="Basic authentication")
    parser.add_argument("-b", "--bearer", metavar="TOKEN", help="Bearer token authentication")
    parser.add_argument(
        "-t", "--timeout", type=parse_timeout, metavar="TIMEOUT", help="Request timeout: 500, 500ms or 2s"
    )
    parser.add_argument("-o", "--output", metavar="PATH", help="Write the response body to a file")
    parser.add_argument(
        "--print",
        dest="print_flags",
        metavar="WHAT",
        help="What to print: H request headers, h response headers, b response body (default: b)",
    )
    parser.add_argument(
        "--pretty", choices=["all", "none"], default="all", help="Indent JSON output (default: all)"
    )
    parser.add_argument(
        "--format",
        dest="output_format",
        choices=OUTPUT_FORMATS,
        default="json",
        help="Output format: json (default), jsonl (one JSON object per line), csv, tsv, table (markdown)",
    )
    parser.add_argument(
        "-L", "--follow", dest="follow", action="store_const", const=True, default=None, help="Follow redirects"
    )
    parser.add_argument(
        "--no-follow", dest="follow", action="store_const", const=False, help="Do not follow redirects"
    )
    parser.add_argument("--proxy", metavar="URL", help="Proxy URL for the request")
    parser.add_argument("--insecure", action="store_true", default=False, help="Skip TLS certificate verification")
    parser.add_argument("--cert", metavar="PATH", help="Client certificate file")
    parser.add_argument("--cert-key", metavar="PATH", help="Private key for --cert")
    parser.add_argument(
        "-S", "--stream", action="store_true", default=False, help="Stream the response body instead of buffering it"
    )
    parser.add_argument(
        "-d",
        "--download",
        action="store_true",
        default=False,
        help="Download the response body (to --output, or stdout) with progress on stderr",
    )
    parser.add_argument("--config", metavar="PATH", help="Config file path (default: first of the conventional paths)")
    parser.add_argument("-v", "--verbose", action="store_true", default=False, help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _configure_logging(verbose: bool = False) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logging.getLogger("httx").addHandler(handler)
    logging.getLogger("httx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def main(args: list[str] | None = None) -> int:
    parser = create_parser()
    parsed = parser.parse_intermixed_args(args)
    _configure_logging(verbose=parsed.verbose)

    if not parsed.items:
        parser.print_help()
        return EXIT_INVALID_ARGUMENTS

    return request.run(parsed)


if __name__ == "__main__":
    sys.exit(main())
