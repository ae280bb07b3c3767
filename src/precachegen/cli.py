"""Command line interface for precachegen."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .api import InjectOptions, inject_directory, locate_in_file
from .config import (
    DEFAULT_INJECTION_POINT,
    InjectManifestOptions,
    load_options,
    merge_options,
)
from .errors import InjectError
from .logging import configure_logging, get_logger
from .reporting import (
    JsonLinesReporter,
    PlainReporter,
    RichReporter,
    SilentReporter,
    get_reporter,
    set_reporter,
    set_verbosity,
)


def _inject_cmd(args: argparse.Namespace) -> int:
    base = load_options(args.config) if args.config else InjectManifestOptions()
    manifest_options = merge_options(
        base,
        [
            ("sw_src", str(args.sw_src)),
            ("sw_dest", args.sw_dest),
            ("injection_point", args.injection_point),
            ("compile_src", False if args.no_compile else None),
            ("mode", args.mode),
        ],
    )
    result = inject_directory(
        InjectOptions(
            output_dir=args.output_dir,
            manifest=manifest_options,
            devtool=args.devtool,
            minimize=args.minimize,
            mode=args.mode,
            api=args.hook_api,
        )
    )
    get_reporter().flush()
    return 0 if result.ok else 1


def _locate_cmd(args: argparse.Namespace) -> int:
    rep = get_reporter()
    try:
        offset, line, column = locate_in_file(args.file, args.injection_point)
    except InjectError as exc:
        get_logger().error("%s", exc)
        return 1
    rep.status(
        "Locate summary: "
        + f"file={args.file.name} offset={offset} line={line} column={column}"
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="precachegen",
        description="Inject a precache manifest into a service worker",
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (repeatable)",
    )
    p.add_argument(
        "-r",
        "--reporter",
        choices=["plain", "rich", "json", "silent"],
        default="plain",
        help="Select reporter backend: plain (default), rich, json (JSONL events), silent",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    i = sub.add_parser(
        "inject", help="Inject the manifest for an existing output directory"
    )
    i.add_argument("sw_src", type=Path, help="Service worker source file")
    i.add_argument("output_dir", type=Path, help="Build output directory")
    i.add_argument("--config", type=Path, help="JSON or YAML options file")
    i.add_argument("--sw-dest", dest="sw_dest", help="Asset name of the result")
    i.add_argument(
        "--injection-point",
        dest="injection_point",
        help=f"Marker to replace (default {DEFAULT_INJECTION_POINT})",
    )
    i.add_argument(
        "--no-compile",
        dest="no_compile",
        action="store_true",
        help="Copy sw_src verbatim instead of building it",
    )
    i.add_argument("--devtool", help="Source map style, e.g. source-map")
    i.add_argument("--minimize", action="store_true", help="Build is minified")
    i.add_argument("--mode", help="Build mode, e.g. production")
    i.add_argument(
        "--hook-api",
        dest="hook_api",
        choices=["staged", "legacy"],
        default="staged",
        help="Hook api generation of the in-process toolchain",
    )
    i.set_defaults(func=_inject_cmd)

    loc = sub.add_parser("locate", help="Check a file for a single injection point")
    loc.add_argument("file", type=Path)
    loc.add_argument(
        "--injection-point",
        dest="injection_point",
        default=DEFAULT_INJECTION_POINT,
    )
    loc.set_defaults(func=_locate_cmd)
    return p


def main(argv: list[str] | None = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)
    requested = args.reporter
    if requested == "json":
        set_reporter(JsonLinesReporter())
    elif requested == "silent":
        set_reporter(SilentReporter())
    elif requested == "rich" and sys.stderr.isatty():
        set_reporter(RichReporter())
    else:
        # rich without a TTY falls back to plain
        set_reporter(PlainReporter())
    set_verbosity(args.verbose)
    configure_logging(args.verbose)
    try:
        return args.func(args)
    except (InjectError, FileNotFoundError) as exc:
        get_logger().error("%s", exc)
        return 2


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
