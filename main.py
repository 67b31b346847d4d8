#!/usr/bin/env python3
"""
favsearch CLI: keep a remote semantic index in sync with a media collection and search it.

Commands:
  keygen: Show (or create) the user key for an account
  sync:   Submit a collection file to the remote index if it is stale
  search: Rank a collection file against a free-text query
  models: List remote models and the effective ranking weights
  status: Show (or watch) per-model indexing progress
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

import yaml
from tqdm import tqdm

from client import IndexClient
from config import Config, config
from errors import ConfigurationMissing, NetworkFailure
from indexer import Indexer, SyncCoordinator
from integration import build_orchestrator
from keys import KeyStore, generate_user_key, resolve_user_key
from models import Item, StatusCounts
from orchestrator import QueryOrchestrator, QueryState
from status import DEFAULT_POLL_INTERVAL, merge_model_weights, watch_status
from view import CollectionView

# Constants for output formatting
MAX_LOCATOR_CHARS_SHOWN = 80


def load_items(path: Path) -> list[Item]:
    """Load a collection file (YAML or JSON).

    Accepts a list of items, or a mapping with an ``items`` list. Rows may use
    the host's field names (``url`` for id, ``src`` for locator).

    Args:
        path: Path to the collection file

    Returns:
        Items in file order
    """
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or []
    if isinstance(data, dict):
        data = data.get("items", [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of items")

    items: list[Item] = []
    for row in data:
        if not isinstance(row, dict):
            raise ValueError(f"{path}: every item must be a mapping, got {type(row).__name__}")
        row = dict(row)
        if "id" not in row and "url" in row:
            row["id"] = row.pop("url")
        if "locator" not in row and "src" in row:
            row["locator"] = row.pop("src")
        items.append(Item.model_validate(row))
    return items


def build_client(cfg: Config) -> IndexClient:
    key = resolve_user_key(cfg)
    return IndexClient(cfg.API_URL, key, timeout=cfg.REQUEST_TIMEOUT)


def pretty_print_items(items: list[Item]) -> None:
    for i, item in enumerate(items, start=1):
        locator = item.locator
        if len(locator) > MAX_LOCATOR_CHARS_SHOWN:
            locator = locator[: MAX_LOCATOR_CHARS_SHOWN - 3] + "..."
        print(f"{i:3d}. {item.id}")
        print(f"     {locator}")


def cmd_keygen(args: argparse.Namespace) -> int:
    """Keygen command: print the account's key, generating it if needed.

    Args:
        args: Parsed arguments with account, force

    Returns:
        Exit code (0 on success)
    """
    account = args.account or config.ACCOUNT
    store = KeyStore(config.keys_path)
    if args.force:
        key = generate_user_key()
        store.set(account, key)
    else:
        key = store.get_or_create(account)
    print(key)
    return 0


async def _run_sync(coordinator: SyncCoordinator, items: list[Item], cfg: Config, account: str) -> bool | None:
    if coordinator.check(items, cfg.MODEL_WEIGHTS, account) is None:
        return None
    return await coordinator.wait()


def cmd_sync(args: argparse.Namespace) -> int:
    """Sync command: validate a collection file and submit it to the index.

    Args:
        args: Parsed arguments with items, account

    Returns:
        Exit code (0 on success, non-zero on failure)
    """
    try:
        items = load_items(args.items)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"Error: could not read items: {e}", file=sys.stderr)
        return 1

    client = build_client(config)
    if not client.configured:
        client.close()
        print("Error: user key is not configured (expected 32 alphanumeric characters)", file=sys.stderr)
        return 2

    account = args.account or config.ACCOUNT
    coordinator = SyncCoordinator(Indexer(client, config.validation_rules))
    try:
        outcome = asyncio.run(_run_sync(coordinator, items, config, account))
    finally:
        client.close()

    if outcome is None:
        print("Index is up to date.")
        return 0
    if not outcome:
        print("Nothing was indexed (no valid items, no enabled models, or the request failed).", file=sys.stderr)
        return 1
    indexed = len(coordinator.state.last_validated_ids)
    print(f"Indexed {indexed} of {len(items)} items for models: {', '.join(config.enabled_models)}")
    return 0


async def _run_search(orchestrator: QueryOrchestrator, query: str) -> None:
    orchestrator.on_change(query)
    await orchestrator.settled()


def cmd_search(args: argparse.Namespace) -> int:
    """Search command: rank a collection file against a query.

    Args:
        args: Parsed arguments with query, items, k, json

    Returns:
        Exit code (0 on success, non-zero on failure)
    """
    query = (args.query or "").strip()
    try:
        items = load_items(args.items)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"Error: could not read items: {e}", file=sys.stderr)
        return 1

    client = build_client(config)
    if not client.configured:
        client.close()
        print("Error: user key is not configured (expected 32 alphanumeric characters)", file=sys.stderr)
        return 2

    view = CollectionView(items)
    # One-shot query: no keystrokes to debounce
    orchestrator = build_orchestrator(view, client, config, quiet_period=0.0, k=args.k or config.SEARCH_K)
    try:
        asyncio.run(_run_search(orchestrator, query))
        final_state = orchestrator.state
    finally:
        orchestrator.close()
        client.close()

    if final_state == QueryState.FAILED:
        print("Search failed.", file=sys.stderr)
        return 1
    if query and final_state == QueryState.IDLE:
        print("Index not configured: user key is not provisioned on the server (run `favsearch sync` first)", file=sys.stderr)
        return 2

    results = view.items
    if args.json:
        print(json.dumps([item.model_dump() for item in results], indent=2))
    elif not results:
        print("No results.")
    else:
        pretty_print_items(results)
    return 0


def cmd_models(args: argparse.Namespace) -> int:
    """Models command: list remote models with their effective weights.

    Args:
        args: Parsed arguments with json

    Returns:
        Exit code (0 on success, non-zero on failure)
    """
    client = IndexClient(config.API_URL, config.USER_KEY, timeout=config.REQUEST_TIMEOUT)
    try:
        remote = client.list_models()
    except NetworkFailure as e:
        print(f"Could not list models: {e}", file=sys.stderr)
        return 1
    finally:
        client.close()

    weights = merge_model_weights(config.MODEL_WEIGHTS, remote)
    if args.json:
        print(json.dumps({"remote_defaults": remote, "effective": weights}, indent=2))
        return 0
    for model_id, weight in weights.items():
        default = remote.get(model_id)
        default_str = f"{default:.2f}" if default is not None else "n/a"
        print(f"  model {model_id}: weight={weight:.2f} (remote default {default_str})")
    return 0


def _print_counts(counts: StatusCounts) -> None:
    print(f"status: {counts.status or 'unknown'}")
    for model_id, progress in counts.counts.items():
        print(
            f"  model {model_id}: completed={progress.completed} processing={progress.processing} "
            f"downloading={progress.downloading} failed={progress.failed}"
        )


async def _watch(client: IndexClient, interval: float) -> StatusCounts | None:
    bars: dict[str, tqdm] = {}
    last: StatusCounts | None = None
    try:
        async for counts in watch_status(client, interval=interval):
            last = counts
            for model_id, progress in counts.counts.items():
                bar = bars.get(model_id)
                if bar is None:
                    bar = tqdm(total=progress.total, desc=f"model {model_id}", unit="item")
                    bars[model_id] = bar
                bar.total = progress.total
                bar.n = progress.completed + progress.failed
                bar.set_postfix(failed=progress.failed, pending=progress.pending)
                bar.refresh()
    finally:
        for bar in bars.values():
            bar.close()
    return last


def cmd_status(args: argparse.Namespace) -> int:
    """Status command: show or watch indexing progress.

    Args:
        args: Parsed arguments with watch, interval, json

    Returns:
        Exit code (0 on success, non-zero on failure)
    """
    client = build_client(config)
    try:
        if args.watch:
            counts = asyncio.run(_watch(client, args.interval))
        else:
            counts = client.status_counts()
    except ConfigurationMissing as e:
        print(f"Index not configured: {e}", file=sys.stderr)
        return 2
    except NetworkFailure as e:
        print(f"Could not fetch status: {e}", file=sys.stderr)
        return 1
    finally:
        client.close()

    if counts is None:
        return 0
    if args.json:
        print(json.dumps(counts.model_dump(), indent=2))
    else:
        _print_counts(counts)
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build argument parser with subcommands.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog="favsearch",
        description="favsearch CLI: keygen, sync, search, models, status",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    keygen_parser = subparsers.add_parser("keygen", help="Show or create the user key")
    keygen_parser.add_argument("--account", type=str, default=None, help="Account name (default: ACCOUNT)")
    keygen_parser.add_argument("--force", action="store_true", help="Replace any existing key")

    sync_parser = subparsers.add_parser("sync", help="Submit a collection to the remote index")
    sync_parser.add_argument("items", type=Path, help="YAML or JSON collection file")
    sync_parser.add_argument("--account", type=str, default=None, help="Account name (default: ACCOUNT)")
    sync_parser.epilog = (
        "Examples:\n"
        "  favsearch sync favorites.yaml\n"
        "  MODEL_WEIGHTS='0=1,1=0' favsearch sync favorites.json\n"
    )

    search_parser = subparsers.add_parser("search", help="Rank a collection against a query")
    search_parser.add_argument("query", type=str, help="Free-text query")
    search_parser.add_argument("items", type=Path, help="YAML or JSON collection file")
    search_parser.add_argument("--k", type=int, default=None, help="Result limit per model (default: SEARCH_K)")
    search_parser.add_argument("--json", action="store_true", help="Output raw JSON")
    search_parser.epilog = (
        "Examples:\n"
        "  favsearch search 'cat jumping' favorites.yaml\n"
        "  favsearch search 'dance' favorites.json --k 20 --json\n"
    )

    models_parser = subparsers.add_parser("models", help="List remote models and weights")
    models_parser.add_argument("--json", action="store_true", help="Output raw JSON")

    status_parser = subparsers.add_parser("status", help="Show indexing progress")
    status_parser.add_argument("--watch", action="store_true", help="Poll until indexing settles")
    status_parser.add_argument(
        "--interval",
        type=float,
        default=DEFAULT_POLL_INTERVAL,
        help=f"Polling interval in seconds (default: {DEFAULT_POLL_INTERVAL})",
    )
    status_parser.add_argument("--json", action="store_true", help="Output raw JSON")

    return parser


def configure_logging(verbose: bool = False) -> None:
    level: Any = logging.DEBUG if verbose else config.LOG_LEVEL
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def main() -> None:
    """Main entry point for CLI."""
    parser = build_parser()
    args = parser.parse_args()
    configure_logging(args.verbose)

    if args.command == "keygen":
        rc = cmd_keygen(args)
    elif args.command == "sync":
        rc = cmd_sync(args)
    elif args.command == "search":
        rc = cmd_search(args)
    elif args.command == "models":
        rc = cmd_models(args)
    elif args.command == "status":
        rc = cmd_status(args)
    else:
        parser.print_help()
        rc = 2

    sys.exit(rc)


if __name__ == "__main__":
    main()
