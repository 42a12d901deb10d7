from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
import webbrowser
from pathlib import Path
from typing import Optional, Sequence

from schoolmap import logging_config
from schoolmap.config import Settings
from schoolmap.data_loader import DataLoadError, load_schools
from schoolmap.map_page import save_map
from schoolmap.realtime_runner import start_server

log = logging.getLogger("schoolmap.cli")


def add_common_options(parser: argparse.ArgumentParser, default=None) -> None:
    parser.add_argument("--data", default=default, help="URL or path of schools.json")
    parser.add_argument("--log-level", default=default, help="DEBUG, INFO, WARNING, ...")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="schoolmap", description="Interactive school map with a tour route")
    add_common_options(parser)

    # accepted after the subcommand too; SUPPRESS keeps a value given before it
    common = argparse.ArgumentParser(add_help=False)
    add_common_options(common, default=argparse.SUPPRESS)

    sub = parser.add_subparsers(dest="command")
    serve = sub.add_parser("serve", parents=[common], help="Run the interactive map server (default)")
    serve.add_argument("--host")
    serve.add_argument("--port", type=int)
    serve.add_argument("--open", action="store_true", help="Open the map in a browser")

    render = sub.add_parser("render", parents=[common], help="Write a static HTML map with the full route")
    render.add_argument("--out", default="map.html", help="Output HTML file")
    render.add_argument("--open", action="store_true", help="Open the file in a browser")
    return parser


def settings_from_args(args: argparse.Namespace, base: Settings) -> Settings:
    overrides = {
        "data_source": args.data,
        "log_level": args.log_level.upper() if args.log_level else None,
        "host": getattr(args, "host", None),
        "port": getattr(args, "port", None),
    }
    return dataclasses.replace(base, **{k: v for k, v in overrides.items() if v is not None})


def run_render(settings: Settings, out: Path, open_browser: bool) -> int:
    try:
        schools = load_schools(settings.data_source, timeout=settings.fetch_timeout_s)
    except DataLoadError:
        log.exception("Cannot render map")
        return 1

    save_map(schools, out, settings)
    if open_browser:
        webbrowser.open(out.resolve().as_uri())
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = settings_from_args(args, Settings.from_env())
    logging_config.configure(settings.log_level)

    if args.command == "render":
        return run_render(settings, Path(args.out), args.open)

    start_server(settings, open_browser=getattr(args, "open", False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
