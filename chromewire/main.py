"""
Command-line entry point: launch a browser, open a URL, print page metadata.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys

from .config import BrowserConfig, WaitConfig
from .driver import ChromeDriver
from .errors import ChromeWireError

logger = logging.getLogger("chromewire")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chromewire", description="Drive Chrome over the DevTools protocol")
    parser.add_argument("url", nargs="?", default="about:blank", help="Page to open (default: about:blank)")
    parser.add_argument("--headful", action="store_true", help="Show the browser window")
    parser.add_argument("--binary", help="Browser executable (default: CHROME_PATH or auto-detect)")
    parser.add_argument("--port", type=int, default=None, help="Remote debugging port (default: any free port)")
    parser.add_argument("--timeout", type=float, default=None, help="Auto-wait timeout in seconds")
    parser.add_argument(
        "--flag", action="append", default=[], dest="flags", help="Extra browser flag (repeatable)"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )

    config = BrowserConfig.from_env()
    config.headless = not args.headful
    if args.binary:
        config.binary_path = args.binary
    if args.port is not None:
        config.debugging_port = args.port
    config.arguments.extend(args.flags)
    wait_config = WaitConfig.from_env()
    if args.timeout is not None:
        wait_config = dataclasses.replace(wait_config, timeout=args.timeout)

    try:
        with ChromeDriver(config, wait_config) as driver:
            driver.get(args.url)
            print(json.dumps({"url": driver.current_url, "title": driver.title}, ensure_ascii=False))
    except ChromeWireError as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
