"""Command-line entrypoint for story-safe."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from story_safe.content.errors import ContentError
from story_safe.content.fetcher import SafeStoryFetcher
from story_safe.content.fixtures import repository_for_runtime
from story_safe.content.global_settings import GlobalSettingsCache
from story_safe.content.mode import Mode, detect_mode
from story_safe.runtime_config import (
    RuntimeConfig,
    load_runtime_config,
    set_current_runtime_config,
)
from story_safe.settings import Settings


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, sort_keys=True, indent=2))


def _runtime_from_args(args: argparse.Namespace) -> RuntimeConfig:
    config_path = Path(args.config).expanduser() if args.config else None
    runtime = load_runtime_config(config_path)
    fixtures_dir = Path(args.fixtures_dir).expanduser() if args.fixtures_dir else None
    runtime = runtime.with_overrides(
        fixtures_dir=fixtures_dir, version=args.content_version or None
    )
    set_current_runtime_config(runtime)
    return runtime


def _build_fetcher(args: argparse.Namespace) -> tuple[SafeStoryFetcher, RuntimeConfig]:
    runtime = _runtime_from_args(args)
    settings = Settings.from_runtime()
    mode = Mode.OFFLINE if getattr(args, "offline", False) else detect_mode(
        settings.delivery_api_token
    )
    fetcher = SafeStoryFetcher(
        settings=settings, mode=mode, fixtures=repository_for_runtime(runtime)
    )
    return fetcher, runtime


def _cmd_story(args: argparse.Namespace) -> int:
    fetcher, _ = _build_fetcher(args)
    envelope = asyncio.run(fetcher.get_story(args.slug))
    _print_json(envelope.to_dict())
    return 0


def _cmd_settings(args: argparse.Namespace) -> int:
    fetcher, runtime = _build_fetcher(args)
    cache = GlobalSettingsCache(fetcher, key=runtime.settings_slug)
    _print_json(asyncio.run(cache.get()))
    return 0


def _cmd_mode(args: argparse.Namespace) -> int:
    _runtime_from_args(args)
    settings = Settings.from_runtime()
    print(detect_mode(settings.delivery_api_token).value)
    return 0


def _cmd_fixtures_ls(args: argparse.Namespace) -> int:
    runtime = _runtime_from_args(args)
    repository = repository_for_runtime(runtime)
    for key in repository.keys():
        marker = " (default)" if key == repository.fallback_key else ""
        print(f"{key}{marker}")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="story-safe")
    parser.add_argument(
        "--config",
        default="",
        help="Path to runtime config TOML (default: config/runtime.toml).",
    )
    parser.add_argument(
        "--fixtures-dir",
        default="",
        help="Serve fixtures from this directory instead of the bundled ones.",
    )
    parser.add_argument(
        "--content-version",
        default="",
        choices=["", "draft", "published"],
        help="Content version to request (default comes from runtime config).",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level for diagnostics written to stderr.",
    )
    subparsers = parser.add_subparsers(dest="command")

    story = subparsers.add_parser("story", help="Fetch one story as a JSON envelope")
    story.add_argument("slug", help="Story slug or full slug, e.g. home")
    story.add_argument(
        "--offline",
        action="store_true",
        help="Serve fixtures without calling the API.",
    )
    story.set_defaults(func=_cmd_story)

    settings = subparsers.add_parser("settings", help="Resolve global settings")
    settings.add_argument(
        "--offline",
        action="store_true",
        help="Serve fixtures without calling the API.",
    )
    settings.set_defaults(func=_cmd_settings)

    mode = subparsers.add_parser("mode", help="Print ONLINE or OFFLINE")
    mode.set_defaults(func=_cmd_mode)

    fixtures = subparsers.add_parser("fixtures", help="Inspect bundled fixtures")
    fixtures_sub = fixtures.add_subparsers(dest="fixtures_command")
    fixtures_ls = fixtures_sub.add_parser("ls", help="List fixture keys")
    fixtures_ls.set_defaults(func=_cmd_fixtures_ls)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the CLI."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    func = getattr(args, "func", None)
    if func is None:
        parser.print_help()
        return 0
    try:
        return int(func(args))
    except (ContentError, RuntimeError, ValueError) as exc:
        print(str(exc), file=sys.stderr)
        return 2
    finally:
        set_current_runtime_config(None)


if __name__ == "__main__":
    raise SystemExit(main())
