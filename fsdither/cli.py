"""Command-line interface for fsdither.

Supports headless conversion (optionally JSON for scripting), the upload
web service, and the interactive TUI previewer.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from urllib.parse import urlparse

from fsdither.core.bands import RemainderPolicy
from fsdither.core.processor import DEFAULT_WORKERS, DitherStrategy
from fsdither.utils.log import setup_logging

logger = logging.getLogger(__name__)


def _add_dither_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--strategy",
        choices=[s.value for s in DitherStrategy],
        default=DitherStrategy.BANDED.value,
        help="Diffusion schedule (default: banded).",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=DEFAULT_WORKERS,
        help=f"Number of row bands / worker threads (default: {DEFAULT_WORKERS}).",
    )
    parser.add_argument(
        "--remainder",
        choices=[p.value for p in RemainderPolicy],
        default=RemainderPolicy.EXTEND.value,
        help="Rows left over by the band split: drop (leave undithered) "
        "or extend (join the last band). Default: extend.",
    )


def _add_logging_options(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    group.add_argument("-q", "--quiet", action="store_true", help="Only log errors.")
    parser.add_argument("--log-file", help="Also append log records to this file.")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fsdither",
        description="Floyd-Steinberg black/white dithering for JPEG and PNG images.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # --- convert subcommand ---
    convert = subparsers.add_parser(
        "convert",
        help="Dither an image file.",
    )
    convert.add_argument("input", help="Input JPEG/PNG path or URL.")
    convert.add_argument(
        "-o", "--output",
        help="Output file path. Defaults to <input>_dithered.<ext>.",
    )
    _add_dither_options(convert)
    convert.add_argument(
        "--json",
        action="store_true",
        help="Output structured JSON (pipe-friendly).",
    )
    convert.add_argument(
        "--debug",
        action="store_true",
        help="Show stack traces on error (with --json).",
    )
    _add_logging_options(convert)

    # --- serve subcommand ---
    serve = subparsers.add_parser(
        "serve",
        help="Run the upload/download web service.",
    )
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1).")
    serve.add_argument("--port", type=int, default=8080, help="Port (default: 8080).")
    serve.add_argument(
        "--output-dir",
        default="dithered",
        help="Directory for dithered results (default: ./dithered).",
    )
    _add_dither_options(serve)
    _add_logging_options(serve)

    return parser


def _auto_output_path(input_path: Path) -> Path:
    """Generate default output path from input."""
    return input_path.parent / f"{input_path.stem}_dithered{input_path.suffix}"


def _json_error(message: str, code: str) -> None:
    """Print JSON error to stderr and exit with code 1."""
    err = {"status": "error", "error": message, "code": code}
    print(json.dumps(err), file=sys.stderr)
    sys.exit(1)


def _fail(message: str, code: str, is_json: bool) -> None:
    if is_json:
        _json_error(message, code)
    logger.error(message)
    sys.exit(1)


def _run_convert(args: argparse.Namespace) -> None:
    """Run the headless convert pipeline."""
    from fsdither.core.processor import Settings, process_image
    from fsdither.core.reader import is_url, open_image
    from fsdither.core.writer import save_image

    raw_input = args.input
    is_json = args.json
    is_remote = is_url(raw_input)

    if args.workers < 1:
        _fail(f"--workers must be at least 1, got {args.workers}", "INVALID_INPUT", is_json)

    if is_remote:
        logger.info("Downloading %s...", raw_input)
        input_path = Path(Path(urlparse(raw_input).path).name or "download")
        if not input_path.suffix:
            input_path = input_path.with_suffix(".png")
        input_display = raw_input
    else:
        input_path = Path(raw_input).resolve()
        input_display = str(input_path)
        if not input_path.exists():
            _fail(f"File not found: {input_path}", "FILE_NOT_FOUND", is_json)

    try:
        img = open_image(raw_input)
    except (ValueError, OSError) as e:
        code = "DOWNLOAD_FAILED" if is_remote else "INVALID_INPUT"
        _fail(str(e), code, is_json)
    logger.info("Image loaded: %dx%d", img.width, img.height)

    # Determine output path
    if args.output:
        output_path = Path(args.output).resolve()
    else:
        output_path = _auto_output_path(input_path)

    settings = Settings(
        strategy=DitherStrategy(args.strategy),
        workers=args.workers,
        remainder=RemainderPolicy(args.remainder),
    )

    try:
        result = process_image(img, settings)
        save_image(result.image, output_path)
    except Exception as e:
        if is_json and args.debug:
            import traceback
            traceback.print_exc(file=sys.stderr)
        _fail(str(e), "PROCESSING_ERROR", is_json)

    if not is_json:
        logger.info("Saved to %s", output_path)
    else:
        output = {
            "status": "success",
            "input": input_display,
            "output": str(output_path),
            "settings": {
                "strategy": settings.strategy.value,
                "workers": settings.workers,
                "remainder": settings.remainder.value,
            },
            "metadata": {
                "width": result.width,
                "height": result.height,
                "dither_ms": round(result.elapsed_ms, 3),
                "output_format": output_path.suffix.lstrip("."),
            },
        }
        print(json.dumps(output, indent=2))


def _run_serve(args: argparse.Namespace) -> None:
    from fsdither.web import run_server

    if args.workers < 1:
        _fail(f"--workers must be at least 1, got {args.workers}", "INVALID_INPUT", False)

    run_server(
        host=args.host,
        port=args.port,
        config={
            "OUTPUT_FOLDER": args.output_dir,
            "DITHER_WORKERS": args.workers,
            "DITHER_STRATEGY": args.strategy,
            "DITHER_REMAINDER": args.remainder,
        },
    )


def main(argv: list[str] | None = None) -> None:
    """Main entry point.

    Routing:
      fsdither convert <file> [opts]  → headless conversion
      fsdither serve [opts]           → web service
      fsdither <file>                 → launch TUI with file
      fsdither                        → launch TUI (open dialog)
    """
    raw_args = sys.argv[1:] if argv is None else argv
    if raw_args and raw_args[0] in ("convert", "serve"):
        parser = _build_parser()
        args = parser.parse_args(raw_args)
        # JSON mode keeps stderr free for the error object.
        setup_logging(
            verbose=args.verbose,
            quiet=args.quiet or getattr(args, "json", False),
            log_file=args.log_file,
        )
        if args.command == "convert":
            _run_convert(args)
        else:
            _run_serve(args)
    elif raw_args and not raw_args[0].startswith("-"):
        # Positional arg = file path → TUI
        from fsdither.app import run_app
        run_app(input_path=raw_args[0])
    elif raw_args and raw_args[0] in ("-h", "--help"):
        parser = _build_parser()
        parser.parse_args(raw_args)
    else:
        from fsdither.app import run_app
        run_app()


if __name__ == "__main__":
    main()
