# src/main.py — v2
"""CLI entry point — enrichment capabilities, backend status, cache upkeep.

Usage:
    lexiread detect <text|->
    lexiread summarize <text|-> [--max-length N] [--bullets]
    lexiread rewrite <text|-> --difficulty N
    lexiread translate <text|-> --from LANG --to LANG
    lexiread vocab <word>... --context <text|->
    lexiread status
    lexiread cache stats|maintain|clear
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from lexiread.config.settings import ConfigurationError, Settings, load_settings
from lexiread.core.errors import AIError, user_message
from lexiread.logging.logger import setup_logging
from lexiread.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        settings = load_settings()
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    _setup_logging(settings, args.verbose)

    try:
        return asyncio.run(_run(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except AIError as exc:
        logger.debug("Command failed: %r", exc)
        print(user_message(exc), file=sys.stderr)
        return 1
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def cli() -> None:
    sys.exit(main())


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="lexiread",
        description=f"lexiread v{__version__} — AI reading assistant backend",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- detect ---
    p_detect = subparsers.add_parser("detect", help="Detect the language of a text")
    p_detect.add_argument("text", help="Text, or - to read stdin")
    p_detect.set_defaults(func=_cmd_detect)

    # --- summarize ---
    p_sum = subparsers.add_parser("summarize", help="Summarize a text")
    p_sum.add_argument("text", help="Text, or - to read stdin")
    p_sum.add_argument(
        "--max-length", type=int, default=300,
        help="Approximate summary length in words (default: 300)",
    )
    p_sum.add_argument(
        "--bullets", action="store_true",
        help="Bullet-point summary instead of paragraphs",
    )
    p_sum.set_defaults(func=_cmd_summarize)

    # --- rewrite ---
    p_rewrite = subparsers.add_parser("rewrite", help="Rewrite a text at a difficulty level")
    p_rewrite.add_argument("text", help="Text, or - to read stdin")
    p_rewrite.add_argument(
        "-d", "--difficulty", type=int, required=True,
        help="Target difficulty 1 (beginner) .. 10 (proficient)",
    )
    p_rewrite.set_defaults(func=_cmd_rewrite)

    # --- translate ---
    p_tr = subparsers.add_parser("translate", help="Translate a text")
    p_tr.add_argument("text", help="Text, or - to read stdin")
    p_tr.add_argument("--from", dest="source", required=True, help="Source language code")
    p_tr.add_argument("--to", dest="target", required=True, help="Target language code")
    p_tr.set_defaults(func=_cmd_translate)

    # --- vocab ---
    p_vocab = subparsers.add_parser("vocab", help="Analyze vocabulary words in context")
    p_vocab.add_argument("words", nargs="+", help="Words to analyze")
    p_vocab.add_argument("--context", required=True, help="Context text, or - to read stdin")
    p_vocab.set_defaults(func=_cmd_vocab)

    # --- status ---
    p_status = subparsers.add_parser("status", help="Show backend availability")
    p_status.set_defaults(func=_cmd_status)

    # --- cache ---
    p_cache = subparsers.add_parser("cache", help="Inspect or maintain the result cache")
    p_cache.add_argument("action", choices=["stats", "maintain", "clear"])
    p_cache.set_defaults(func=_cmd_cache)

    return parser


async def _run(args: argparse.Namespace, settings: Settings) -> int:
    """Run a command against a fresh coordinator and always release it."""
    from lexiread.llm.coordinator import create_coordinator

    coordinator = create_coordinator(settings)
    try:
        return await args.func(args, coordinator)
    finally:
        await coordinator.destroy()
        if coordinator.cache is not None:
            await coordinator.cache.store.close()


def _read_text(value: str) -> str:
    return sys.stdin.read() if value == "-" else value


async def _cmd_detect(args, coordinator) -> int:
    print(await coordinator.detect_language(_read_text(args.text)))
    return 0


async def _cmd_summarize(args, coordinator) -> int:
    from lexiread.llm.models import SummaryOptions

    options = SummaryOptions(
        max_length=args.max_length,
        format="bullet" if args.bullets else "paragraph",
    )
    print(await coordinator.summarize(_read_text(args.text), options))
    return 0


async def _cmd_rewrite(args, coordinator) -> int:
    print(await coordinator.rewrite(_read_text(args.text), args.difficulty))
    return 0


async def _cmd_translate(args, coordinator) -> int:
    print(await coordinator.translate(_read_text(args.text), args.source, args.target))
    return 0


async def _cmd_vocab(args, coordinator) -> int:
    analyses = await coordinator.analyze_vocabulary(args.words, _read_text(args.context))
    print(json.dumps([a.model_dump(by_alias=True) for a in analyses], indent=2))
    return 0


async def _cmd_status(args, coordinator) -> int:
    from lexiread.llm.coordinator import describe_status

    status = await coordinator.get_service_status(force=True)
    print(json.dumps(describe_status(status), indent=2))
    return 0 if status.any_available else 1


async def _cmd_cache(args, coordinator) -> int:
    cache = coordinator.cache
    if cache is None:
        print("Caching is disabled (CACHE_ENABLED=false)", file=sys.stderr)
        return 1

    if args.action == "clear":
        await cache.clear_all()
        print("Cache cleared")
        return 0

    if args.action == "maintain":
        report = await cache.perform_maintenance()
        print(f"\nMaintenance complete:")
        print(f"  Expired:   {report.expired}")
        print(f"  Evicted:   {report.evicted}")
        print(f"  In use:    {report.bytes_in_use} bytes")
        return 0

    usage = await cache.get_storage_usage()
    print(f"\nCache usage: {usage.bytes_in_use}/{usage.quota_bytes} bytes ({usage.ratio:.1%})")
    for namespace, stats in cache.get_all_stats().items():
        print(
            f"  {namespace.value:<18} hits={stats.hits} misses={stats.misses} "
            f"hit_rate={stats.hit_rate:.2f}"
        )
    return 0


def _setup_logging(settings: Settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
