# src/main.py — v1
"""CLI entry point — read, cache, languages, fingerprint commands.

Usage:
    pagereader read <file> [--page N] [--translate | --no-translate] [--auto-read] [--refresh]
    pagereader cache clear <file>
    pagereader cache clear-all
    pagereader languages [--tts]
    pagereader fingerprint <file>
"""

from __future__ import annotations

import argparse
import asyncio
import functools
import logging
import sys
from pathlib import Path

from pagereader.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        _setup_logging(args.verbose)
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="pagereader",
        description=f"pagereader v{__version__} — OCR, translate and read aloud document pages",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- read ---
    p_read = subparsers.add_parser(
        "read", help="Recognize (and optionally translate / narrate) a page",
    )
    p_read.add_argument("file", type=Path, help="Path to PDF document")
    p_read.add_argument(
        "-p", "--page", type=int, default=1,
        help="1-based page number (default: 1)",
    )
    p_read.add_argument(
        "--translate", action=argparse.BooleanOptionalAction, default=None,
        help="Translate the recognized text (default: AUTO_TRANSLATE setting)",
    )
    p_read.add_argument(
        "--target", default=None,
        help="Target language for translation (default: TRANSLATION_TARGET_LANGUAGE)",
    )
    p_read.add_argument(
        "--auto-read", action="store_true",
        help="Read aloud from this page to the end of the document",
    )
    p_read.add_argument(
        "--refresh", action="store_true",
        help="Ignore cached text for the page and recognize it again",
    )
    p_read.set_defaults(func=_cmd_read)

    # --- cache ---
    p_cache = subparsers.add_parser("cache", help="Manage the page cache")
    cache_sub = p_cache.add_subparsers(dest="cache_command", required=True)
    p_clear = cache_sub.add_parser("clear", help="Drop cached pages of one document")
    p_clear.add_argument("file", type=Path, help="Path to document")
    p_clear.set_defaults(func=_cmd_cache_clear)
    p_clear_all = cache_sub.add_parser("clear-all", help="Drop every cached page")
    p_clear_all.set_defaults(func=_cmd_cache_clear_all)

    # --- languages ---
    p_languages = subparsers.add_parser(
        "languages", help="List languages supported by local OCR (or TTS)",
    )
    p_languages.add_argument(
        "--tts", action="store_true",
        help="List narration languages instead of OCR languages",
    )
    p_languages.set_defaults(func=_cmd_languages)

    # --- fingerprint ---
    p_fingerprint = subparsers.add_parser(
        "fingerprint", help="Print the cache fingerprint of a document",
    )
    p_fingerprint.add_argument("file", type=Path, help="Path to document")
    p_fingerprint.set_defaults(func=_cmd_fingerprint)

    return parser


def _settings_provider(args: argparse.Namespace):
    """load_settings with the CLI flags applied as overrides."""
    from pagereader.config.settings import load_settings

    overrides: dict[str, object] = {}
    if getattr(args, "translate", None) is not None:
        overrides["auto_translate"] = args.translate
    if getattr(args, "target", None):
        overrides["translation_target_language"] = args.target
    return functools.partial(load_settings, **overrides)


async def _cmd_read(args: argparse.Namespace) -> int:
    """Show one page, or read aloud from it onwards."""
    from pagereader.api.session import ReadingSession

    file_path: Path = args.file
    if not file_path.exists():
        logger.error("File not found: %s", file_path)
        return 1

    settings_provider = _settings_provider(args)
    async with await ReadingSession.open(file_path, settings_provider) as session:
        pipeline = session.pipeline
        language = settings_provider().ui_language

        if args.auto_read:
            pipeline.add_listener(functools.partial(_print_when_ready, language=language))
            await pipeline.go_to_page(args.page, force_refresh=args.refresh)
            await pipeline.start_auto_read()
            await pipeline.auto_reader.wait_stopped()
            return 1 if pipeline.view.error else 0

        await pipeline.go_to_page(args.page, force_refresh=args.refresh)
        view = await pipeline.wait_until_settled()
        return _print_view(view, language)


async def _cmd_cache_clear(args: argparse.Namespace) -> int:
    """Drop cached pages of one document."""
    from pagereader.api.session import open_cache
    from pagereader.cache.fingerprint import fingerprint_file

    file_path: Path = args.file
    if not file_path.exists():
        logger.error("File not found: %s", file_path)
        return 1

    cache = open_cache()
    try:
        removed = await cache.clear(fingerprint_file(file_path))
    finally:
        cache.close()
    print(f"Removed {removed} cached page(s) for {file_path.name}")
    return 0


async def _cmd_cache_clear_all(args: argparse.Namespace) -> int:
    """Drop every cached page."""
    from pagereader.api.session import open_cache

    cache = open_cache()
    try:
        removed = await cache.clear_all()
    finally:
        cache.close()
    print(f"Removed {removed} cached page(s)")
    return 0


async def _cmd_languages(args: argparse.Namespace) -> int:
    """List OCR or narration languages."""
    if args.tts:
        from pagereader.narration.narration_client import NarrationClient

        languages = await NarrationClient().get_supported_languages()
    else:
        from pagereader.recognition.recognition_client import RecognitionClient

        languages = await RecognitionClient().get_supported_languages()
    for language in languages:
        print(language)
    return 0


async def _cmd_fingerprint(args: argparse.Namespace) -> int:
    """Print the document fingerprint."""
    from pagereader.cache.fingerprint import fingerprint_file

    file_path: Path = args.file
    if not file_path.exists():
        logger.error("File not found: %s", file_path)
        return 1
    print(fingerprint_file(file_path))
    return 0


def _print_view(view: object, language: str) -> int:
    """Print a settled page view. Returns the exit code."""
    from pagereader.core.messages import message
    from pagereader.pipeline.state import PageStage

    if view.error:
        print(view.error, file=sys.stderr)
        return 1
    print(f"--- Page {view.page} ---")
    if view.stage is PageStage.EMPTY:
        print(message("no_text", language))
        return 0
    if view.stage is PageStage.IDLE:
        print("(AUTO_OCR is off and the page is not cached)")
        return 0
    print(view.ocr_text)
    if view.translated:
        print("\n--- Translation ---")
        print(view.translated_text)
    return 0


def _print_when_ready(view: object, language: str) -> None:
    """View listener used while auto-reading."""
    from pagereader.pipeline.state import PageStage

    if view.stage in (PageStage.READY, PageStage.EMPTY) or view.error:
        _print_view(view, language)


def _setup_logging(verbose: bool) -> None:
    """Configure logging for CLI usage from LOG_* settings."""
    from pagereader.config.settings import load_settings
    from pagereader.logging.logger import setup_logging

    settings = load_settings()
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
