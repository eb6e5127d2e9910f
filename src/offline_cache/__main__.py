from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
from typing import Any

from offline_cache.cache.engine import ResourceCache
from offline_cache.cache.preload import UrlPreloader
from offline_cache.cache.stats import StatsPoller
from offline_cache.config import YamlConfigLoader
from offline_cache.config.models import AppConfig, ConfigLoadRequest
from offline_cache.logging import init_logging
from offline_cache.store import build_store
from offline_cache.utils import format_rfc3339

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="offline-cache", description="Inspect and maintain the offline resource cache")
    parser.add_argument(
        "--config",
        default="data/config/config.yaml",
        help="Path to config.yaml (default: data/config/config.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command to run")

    subparsers.add_parser("stats", help="Print cache statistics")
    subparsers.add_parser("preload", help="Fetch and cache the configured preload URLs")
    subparsers.add_parser("sweep", help="Remove expired cache entries")
    subparsers.add_parser("clear", help="Remove every cache entry and offline snapshot")

    get_parser = subparsers.add_parser("get", help="Print a cached resource")
    get_parser.add_argument("url")

    snapshot_parser = subparsers.add_parser("snapshot", help="Print an offline page snapshot")
    snapshot_parser.add_argument("url")

    watch_parser = subparsers.add_parser("watch", help="Log cache statistics periodically")
    watch_parser.add_argument(
        "--run-seconds",
        type=float,
        default=None,
        help="Stop after N seconds (default: run until interrupted).",
    )

    return parser


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


async def _load_config(args: argparse.Namespace) -> AppConfig:
    loader = YamlConfigLoader()
    request = ConfigLoadRequest(
        yaml_path=args.config,
    )
    return await loader.load(request)


async def _open_cache(config: AppConfig) -> ResourceCache:
    cache = ResourceCache(build_store(config.store), config.cache)
    if not await cache.initialize():
        logger.warning("Cache initialization failed; continuing with an empty cache.")
    return cache


async def _watch(cache: ResourceCache, config: AppConfig, run_seconds: float | None) -> None:
    poller = StatsPoller(cache, interval_seconds=config.stats_poll_interval_seconds)
    poller.start()
    try:
        if run_seconds is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(run_seconds)
    finally:
        await poller.stop()


async def _main_async() -> int:
    parser = _build_parser()
    args = parser.parse_args()

    config = await _load_config(args)
    init_logging(config.logging)
    cache = await _open_cache(config)

    if args.command == "stats":
        _print_json(dataclasses.asdict(await cache.stats()))
    elif args.command == "preload":
        cached = await UrlPreloader(cache).run()
        _print_json({"cached": cached, "requested": len(cache.config.preload_urls)})
    elif args.command == "sweep":
        _print_json({"removed": await cache.sweep_expired()})
    elif args.command == "clear":
        ok = await cache.clear_all()
        _print_json({"cleared": ok})
        return 0 if ok else 1
    elif args.command == "get":
        entry = await cache.get(args.url)
        if entry is None:
            _print_json({"url": args.url, "found": False})
            return 1
        payload = entry.payload if isinstance(entry.payload, str) else f"<{len(entry.payload)} bytes>"
        _print_json(
            {
                "url": entry.url,
                "found": True,
                "content_type": entry.content_type,
                "headers": entry.headers,
                "created_at": format_rfc3339(entry.created_at),
                "payload": payload,
            }
        )
    elif args.command == "snapshot":
        snapshot = await cache.snapshots.get_snapshot(args.url)
        if snapshot is None:
            _print_json({"url": args.url, "found": False})
            return 1
        _print_json(
            {
                "url": args.url,
                "found": True,
                "captured_at": format_rfc3339(snapshot.captured_at),
                "size_bytes": snapshot.size_bytes,
                "html": snapshot.html,
            }
        )
    elif args.command == "watch":
        await _watch(cache, config, args.run_seconds)
    return 0


def main() -> None:
    try:
        raise SystemExit(asyncio.run(_main_async()))
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")


if __name__ == "__main__":
    main()
