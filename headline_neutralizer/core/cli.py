"""
CLI interface for headline_neutralizer
"""
import argparse
import asyncio
import logging
import sys

from pydantic import ValidationError

from .discovery import collect_candidates
from .engine import Neutralizer
from .errors import SnapshotError
from .models import LongTextDecision
from .report import render_audit, render_candidates
from .selectors import (
    DEFAULT_EXCLUDES,
    DEFAULT_SELECTORS,
    build_exclusion,
    build_manual_matcher,
    excludes_for_host,
    merge_lists,
    selectors_for_host,
)
from .settings import (
    API_KEY_ENV,
    PROVIDERS,
    STRENGTH_LEVELS,
    NeutralizerSettings,
    configured_providers,
    resolve_api_key,
)
from .snapshot import dump_snapshot, load_snapshot
from .storage import JsonFileStore, MemoryStore


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser"""
    parser = argparse.ArgumentParser(
        description="Rewrite sensational headlines in a page snapshot into neutral ones"
    )

    parser.add_argument(
        "input",
        help="Page snapshot (saved HTML page, or YAML/JSON description)"
    )

    parser.add_argument(
        "--host",
        help="Host name for cache and per-domain rules (defaults to the snapshot's host)"
    )

    parser.add_argument(
        "--output", "-o",
        help="Write the rewritten snapshot to this path"
    )

    parser.add_argument(
        "--selector",
        action="append",
        default=[],
        help="Extra manual selector (repeatable)"
    )

    parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        help="Extra ancestor exclusion selector (repeatable)"
    )

    parser.add_argument(
        "--provider",
        choices=PROVIDERS,
        help="Rewrite provider"
    )

    parser.add_argument(
        "--model",
        help="Model name"
    )

    parser.add_argument(
        "--strength",
        choices=list(STRENGTH_LEVELS),
        help="Neutralization strength"
    )

    parser.add_argument(
        "--no-auto-detect",
        action="store_true",
        help="Only rewrite manual selector matches"
    )

    parser.add_argument(
        "--cache-file",
        help="JSON file keeping the rewrite cache and usage counters between runs"
    )

    parser.add_argument(
        "--allow-long",
        action="store_true",
        help="Process manual matches longer than the sanity limit for this run"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List scored candidates without calling the API"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output"
    )

    return parser


def _build_settings(args: argparse.Namespace) -> NeutralizerSettings:
    overrides = {}
    if args.provider:
        overrides["provider"] = args.provider
    if args.model:
        overrides["model"] = args.model
    if args.strength:
        overrides["strength"] = args.strength
    if args.no_auto_detect:
        overrides["auto_detect"] = False
    return NeutralizerSettings(**overrides)


def _allow_long(items, host: str) -> LongTextDecision:
    for item in items:
        print(f"Processing long manual match ({item.length} chars) on {host or 'page'}: {item.text[:60]}...")
    return LongTextDecision.ONCE


def _print_advice(error, message: str) -> None:
    print(f"Warning: {message}", file=sys.stderr)


async def _run(neutralizer: Neutralizer) -> Neutralizer:
    try:
        await neutralizer.run()
    finally:
        await neutralizer.teardown()
    return neutralizer


def main(argv=None):
    """Main CLI entry point"""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        settings = _build_settings(args)
    except ValidationError as exc:
        print(f"Error: invalid settings\n{exc}", file=sys.stderr)
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose or settings.debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.dry_run and not resolve_api_key(settings.provider):
        available = configured_providers()
        hint = f"Keys found for: {', '.join(available)}.\n" if available else ""
        print(
            f"Error: no API key found for provider '{settings.provider}'.\n"
            f"{hint}"
            f"Set {API_KEY_ENV[settings.provider]}, or use --dry-run to only list candidates.",
            file=sys.stderr,
        )
        sys.exit(1)

    try:
        snapshot = load_snapshot(args.input)
    except SnapshotError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    host = args.host or snapshot.host
    rules = snapshot.rules
    selectors = selectors_for_host(
        host,
        merge_lists(DEFAULT_SELECTORS, rules.selectors, args.selector),
        rules.domain_selectors,
    )
    excludes = excludes_for_host(
        host,
        {
            "self": merge_lists(DEFAULT_EXCLUDES["self"], rules.excludes["self"]),
            "ancestors": merge_lists(DEFAULT_EXCLUDES["ancestors"], rules.excludes["ancestors"], args.exclude),
        },
        rules.domain_excludes,
    )
    is_excluded = build_exclusion(excludes["self"], excludes["ancestors"])
    is_manual_match = build_manual_matcher(selectors)

    if args.verbose:
        print(f"Snapshot: {args.input}")
        print(f"Host: {host or '(none)'}")
        print(f"Provider: {settings.provider} / {settings.model_name}")
        print(f"Manual selectors: {len(selectors)}")

    if args.dry_run:
        candidates = collect_candidates(snapshot.document, settings, is_excluded, is_manual_match)
        print(render_candidates(candidates))
        return

    store = JsonFileStore(args.cache_file) if args.cache_file else MemoryStore()
    neutralizer = Neutralizer(
        snapshot.document,
        host=host,
        settings=settings,
        store=store,
        is_excluded=is_excluded,
        is_manual_match=is_manual_match,
        confirm_long_text=_allow_long if args.allow_long else None,
        advisor=_print_advice,
    )

    try:
        asyncio.run(_run(neutralizer))
        if args.output:
            dump_snapshot(snapshot, args.output)
            print(f"Snapshot written: {args.output}")
    except Exception as exc:
        if args.verbose:
            raise
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    print(
        render_audit(
            neutralizer.stats,
            neutralizer.changes,
            cache_size=len(neutralizer.cache),
            usage=neutralizer.usage,
            host=host,
        )
    )


if __name__ == "__main__":
    main()
