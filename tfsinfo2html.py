"""
Command line entry point for tfsinfo2html.

Loads settings, asks the reporting service for the changesets in the
configured date range and writes the referenced work items to an HTML list.
Any failure ends the run with a logged fatal error and exit status 1.
"""

import logging
import sys
from pathlib import Path
from typing import Mapping, Optional, Sequence

import httpx
from dotenv import load_dotenv

from client import TfsServiceClient, build_request, serialize_request
from config import build_arg_parser, load_settings
from models import TfsInfoError
from report import collect_work_items, render_report, write_report


def run(
    argv: Optional[Sequence[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
    search_paths: Optional[Sequence[Path]] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> int:
    args = build_arg_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    settings = load_settings(args, environ=environ, search_paths=search_paths)
    logging.info(f"Using serviceUrl: {settings.service_url}")

    payload = serialize_request(build_request(settings))
    changesets = TfsServiceClient(settings.service_url, transport=transport).fetch_changesets(payload)
    logging.info(f"Got {len(changesets)} items back. Formatting using template...")

    work_items = collect_work_items(changesets)
    logging.info(f"{len(work_items)} distinct work items")

    write_report(render_report(work_items, settings.template_file), settings.save_to_file)
    return len(work_items)


def main(argv: Optional[Sequence[str]] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
    load_dotenv("./.env")

    try:
        run(argv)
    except TfsInfoError as e:
        logging.critical(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
