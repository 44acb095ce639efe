from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from typing import Optional, Sequence

from bitcli import APP
from bitcli.config import ConfigError, ConfigLoadRequest, Options, TomlConfigLoader, default_config_path
from bitcli.config.interfaces import ConfigLoader
from bitcli.config.models import AppConfig
from bitcli.core.errors import ShortenError
from bitcli.io import read_stdin_urls
from bitcli.logging import init_logging
from bitcli.shortener import AppContext

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130

ORDERINGS = ("ordered", "unordered")
_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in _TRUTHY


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from None
    if parsed < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {parsed}")
    return parsed


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=APP, description="Shorten URLs via Bitly")
    parser.add_argument(
        "urls",
        nargs="*",
        metavar="URL",
        help="URLs to shorten. If none are given, they are read from stdin, one per line.",
    )
    parser.add_argument(
        "-c",
        "--config-file",
        default=None,
        help="Path to the config file (default: $BITCLI_CONFIG_FILE or ~/.config/bitcli/config.toml)",
    )
    parser.add_argument(
        "--env-file",
        default=None,
        help="Optional .env file loaded before BITCLI__* environment overrides are applied",
    )

    parser.add_argument(
        "--cache-dir",
        default=None,
        help="Alternative cache directory. An empty value disables caching.",
    )
    cache_group = parser.add_mutually_exclusive_group()
    cache_group.add_argument(
        "--no-cache",
        action="store_true",
        default=_env_flag("BITCLI_NO_CACHE"),
        help="Disable the local cache for this invocation (env: BITCLI_NO_CACHE)",
    )
    cache_group.add_argument(
        "--offline",
        action="store_true",
        default=None,
        help="Answer from the local cache only, never calling the API",
    )

    parser.add_argument(
        "--max-concurrent",
        type=_positive_int,
        default=None,
        help="Maximum number of API requests in flight (default: 16)",
    )
    parser.add_argument(
        "--ordering",
        choices=ORDERINGS,
        default=os.environ.get("BITCLI_ORDERING", "ordered").strip().lower(),
        help=(
            "ordered: outputs follow input order; unordered: print '<long> <short>' as results arrive "
            "(env: BITCLI_ORDERING)"
        ),
    )
    parser.add_argument("-d", "--domain", default=None, help="Domain to create bitlinks under")
    parser.add_argument("-g", "--group-guid", default=None, help="Group GUID to create bitlinks under")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"),
        default=None,
        help="Override the configured log level",
    )
    return parser


def _options_from_args(args: argparse.Namespace) -> Options:
    # An empty cache_dir disables the cache and wins over --cache-dir.
    cache_dir = "" if args.no_cache else args.cache_dir
    return Options(
        domain=args.domain,
        group_guid=args.group_guid,
        cache_dir=cache_dir,
        offline=args.offline,
        max_concurrent=args.max_concurrent,
    )


async def _load_config(args: argparse.Namespace) -> AppConfig:
    config_path = args.config_file or os.environ.get("BITCLI_CONFIG_FILE") or default_config_path()
    request = ConfigLoadRequest(
        config_path=str(config_path),
        dotenv_path=args.env_file,
        options=_options_from_args(args),
    )
    loader: ConfigLoader = TomlConfigLoader()
    return await loader.load(request)


async def _shorten(config: AppConfig, urls: Sequence[str], *, ordering: str) -> int:
    failures = 0
    async with await AppContext.create(config) as ctx:
        async for outcome in ctx.pipeline.iter_outcomes(urls, ordering=ordering):
            if outcome.ok:
                if ordering == "ordered":
                    print(outcome.short_url, flush=True)
                else:
                    print(f"{outcome.long_url} {outcome.short_url}", flush=True)
            else:
                failures += 1
                print(f"{APP}: {outcome.long_url}: {outcome.error}", file=sys.stderr, flush=True)
    logger.info("Batch completed. total=%d failed=%d", len(urls), failures)
    return EXIT_FAILURE if failures else EXIT_OK


async def _main_async(args: argparse.Namespace) -> int:
    try:
        config = await _load_config(args)
    except ConfigError as e:
        print(f"{APP}: {e}", file=sys.stderr)
        return EXIT_FAILURE
    init_logging(config.logging, level=args.log_level)

    urls = list(args.urls) or read_stdin_urls()
    if not urls:
        print(f"{APP}: no URLs given", file=sys.stderr)
        return EXIT_USAGE

    try:
        return await _shorten(config, urls, ordering=args.ordering)
    except ShortenError as e:
        print(f"{APP}: {e}", file=sys.stderr)
        return EXIT_FAILURE


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    # argparse does not check defaults against choices.
    if args.ordering not in ORDERINGS:
        parser.error(f"invalid BITCLI_ORDERING value: {args.ordering!r} (choose from {', '.join(ORDERINGS)})")
    try:
        return asyncio.run(_main_async(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
