# src/main.py - v2
"""CLI entry point: text, image and batch commands.

Usage:
    contentguard text "some text" [options]
    contentguard text --file post.txt
    contentguard image photo.jpg
    contentguard batch items.json

Verdicts are printed to stdout as JSON; logs go to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from contentguard.version import __version__

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID = 2


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return EXIT_FAILED

    try:
        settings = _load_settings(args)
    except Exception as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return EXIT_FAILED

    from contentguard.logging.logger import setup_logging_from_settings

    setup_logging_from_settings(settings, stream=sys.stderr)

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="contentguard",
        description=f"contentguard v{__version__} - fingerprint-memoized content moderation",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--memory", action="store_true",
        help="Use in-memory cache and store (nothing persisted)",
    )
    parser.add_argument(
        "--store-path", type=Path, default=None,
        help="SQLite store path (default: from settings)",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- text ---
    p_text = subparsers.add_parser("text", help="Moderate a piece of text")
    source = p_text.add_mutually_exclusive_group(required=True)
    source.add_argument("text", nargs="?", help="Text to moderate ('-' reads stdin)")
    source.add_argument("-f", "--file", type=Path, help="Read text from a UTF-8 file")
    p_text.set_defaults(func=_cmd_text)

    # --- image ---
    p_image = subparsers.add_parser("image", help="Moderate an image file")
    p_image.add_argument("file", type=Path, help="Path to image")
    p_image.set_defaults(func=_cmd_image)

    # --- batch ---
    p_batch = subparsers.add_parser(
        "batch", help="Moderate a JSON list of {type, content} items",
    )
    p_batch.add_argument(
        "file", type=Path,
        help="JSON file; image content is a base64 string",
    )
    p_batch.set_defaults(func=_cmd_batch)

    return parser


def _load_settings(args: argparse.Namespace) -> Any:
    from contentguard.config.settings import load_settings

    overrides: dict[str, Any] = {}
    if args.verbose:
        overrides["log_level"] = "DEBUG"
    if args.memory:
        overrides["cache_backend"] = "memory"
        overrides["store_backend"] = "memory"
    if args.store_path is not None:
        overrides["store_path"] = args.store_path
    return load_settings(**overrides)


async def _cmd_text(args: argparse.Namespace, settings: Any) -> int:
    """Moderate text from the argument, a file or stdin."""
    if args.file is not None:
        if not args.file.is_file():
            logger.error("File not found: %s", args.file)
            return EXIT_INVALID
        text = args.file.read_text(encoding="utf-8")
    elif args.text == "-":
        text = sys.stdin.read()
    else:
        text = args.text

    return await _run(settings, lambda service: service.moderate_text(text))


async def _cmd_image(args: argparse.Namespace, settings: Any) -> int:
    """Moderate an image file."""
    if not args.file.is_file():
        logger.error("File not found: %s", args.file)
        return EXIT_INVALID
    data = args.file.read_bytes()
    return await _run(settings, lambda service: service.moderate_image(data))


async def _cmd_batch(args: argparse.Namespace, settings: Any) -> int:
    """Moderate a heterogeneous batch."""
    from contentguard.api.models import BatchRequest

    if not args.file.is_file():
        logger.error("File not found: %s", args.file)
        return EXIT_INVALID
    try:
        raw = json.loads(args.file.read_text(encoding="utf-8"))
        request = BatchRequest(items=raw if isinstance(raw, list) else raw["items"])
    except (ValueError, KeyError, TypeError) as exc:
        logger.error("Invalid batch file %s: %s", args.file, exc)
        return EXIT_INVALID

    return await _run(settings, lambda service: service.moderate_batch(request.items))


async def _run(settings: Any, action: Any) -> int:
    """Start the service, run one action, print the verdict(s), shut down."""
    from contentguard.api.facade import ModerationService, error_response
    from contentguard.core.models import dump_result

    service = await ModerationService.create(settings, with_job_queue=False)
    try:
        outcome = await action(service)
    except Exception as exc:
        status, body = error_response(exc)
        if status >= 500:
            logger.error("Moderation failed: %s", exc, exc_info=True)
        print(body.model_dump_json(indent=2), file=sys.stderr)
        return EXIT_INVALID if status < 500 else EXIT_FAILED
    finally:
        await service.shutdown()

    if isinstance(outcome, list):
        payload: Any = [dump_result(r) for r in outcome]
    else:
        payload = dump_result(outcome)
    print(json.dumps(payload, indent=2))
    return EXIT_OK
