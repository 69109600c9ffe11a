#!/usr/bin/env python3
"""prioritycache CLI - inspect and manage a priority cache directory.

Examples:
    prioritycache --dir ./cache info
    prioritycache --dir ./cache put --key https://example.com/a.png --priority 5 a.png
    prioritycache --dir ./cache list
    prioritycache --dir ./cache set-max 1048576
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .cache import PriorityCache
from .config import CacheConfig, load_config
from .exceptions import PriorityCacheError
from .fingerprint import blob_filename
from .utils.logging import configure_from_cli, get_logger

logger = get_logger("cli")

EXIT_OK = 0
EXIT_NOT_DONE = 1
EXIT_ERROR = 2


def format_size(num_bytes: int) -> str:
    """Render a byte count with a binary unit."""
    if num_bytes < 1024:
        return f"{num_bytes} B"
    size = float(num_bytes)
    for unit in ("KiB", "MiB", "GiB"):
        size /= 1024
        if size < 1024:
            break
    return f"{size:.1f} {unit}"


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="prioritycache",
        description="Inspect and manage a disk-backed priority cache",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--dir", dest="directory", help="Cache directory (default: per-application cache dir)")
    parser.add_argument("--max-size", type=int, default=None,
                        help="Maximum total size in bytes for a new cache")
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase log verbosity (-v info, -vv debug)")
    parser.add_argument("--log-format", choices=["text", "json"], default="text",
                        help="Log output format")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    subparsers.required = True

    subparsers.add_parser("info", help="Show cache size and limits")
    subparsers.add_parser("list", help="List cached items in eviction order")

    put_parser = subparsers.add_parser("put", help="Cache a file under a key")
    put_parser.add_argument("file", help="File whose bytes are cached")
    put_parser.add_argument("--key", required=True, help="Identifying key (e.g., a URL)")
    put_parser.add_argument("--priority", type=int, required=True, help="Item priority")

    path_parser = subparsers.add_parser("path", help="Print the blob path for a key")
    path_parser.add_argument("key", help="Identifying key")

    remove_parser = subparsers.add_parser("remove", help="Remove the item for a key")
    remove_parser.add_argument("key", help="Identifying key")

    reprioritize_parser = subparsers.add_parser("reprioritize", help="Change the priority of an item")
    reprioritize_parser.add_argument("key", help="Identifying key")
    reprioritize_parser.add_argument("priority", type=int, help="New priority")

    set_max_parser = subparsers.add_parser("set-max", help="Change the maximum total size")
    set_max_parser.add_argument("size", type=int, help="Maximum total size in bytes")

    subparsers.add_parser("clear", help="Delete all cached items")

    return parser


def open_cache(args: argparse.Namespace) -> PriorityCache:
    """Open the cache described by the global options."""
    config = load_config(args.config) if args.config else CacheConfig()
    return PriorityCache(
        default_max_total_size=args.max_size,
        directory=Path(args.directory) if args.directory else None,
        config=config,
    )


def cmd_info(cache: PriorityCache, args: argparse.Namespace, console: Console) -> int:
    """Show cache size and limits."""
    stats = cache.get_stats()
    table = Table(title="Priority cache", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Directory", str(cache.directory))
    table.add_row("Entries", str(stats.entry_count))
    table.add_row("Total size", f"{format_size(stats.total_size)} ({stats.total_size} bytes)")
    table.add_row("Maximum size", f"{format_size(stats.max_total_size)} ({stats.max_total_size} bytes)")
    table.add_row("Utilization", f"{stats.utilization:.1%}")
    console.print(table)
    return EXIT_OK


def cmd_list(cache: PriorityCache, args: argparse.Namespace, console: Console) -> int:
    """List cached items, head (kept longest) first."""
    table = Table(title=f"{len(cache)} cached item(s)")
    table.add_column("#", justify="right")
    table.add_column("Priority", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Blob")
    for position, (key, item) in enumerate(cache.index.items()):
        table.add_row(
            str(position),
            str(item.priority),
            format_size(item.size),
            blob_filename(key, item.path_extension),
        )
    console.print(table)
    return EXIT_OK


def cmd_put(cache: PriorityCache, args: argparse.Namespace, console: Console) -> int:
    """Cache a file's bytes under a key."""
    data = Path(args.file).read_bytes()
    if not cache.save(args.priority, data, args.key):
        console.print(f"[yellow]Not cached:[/yellow] {len(data)} bytes at priority {args.priority} do not fit")
        return EXIT_NOT_DONE
    console.print(f"[green]Cached[/green] {escape(args.key)} -> {cache.local_path(args.key)}")
    return EXIT_OK


def cmd_path(cache: PriorityCache, args: argparse.Namespace, console: Console) -> int:
    """Print the blob path for a cached key."""
    path = cache.local_path(args.key) if cache.contains(args.key) else None
    if path is None:
        console.print(f"[yellow]Not cached:[/yellow] {escape(args.key)}")
        return EXIT_NOT_DONE
    console.print(str(path), soft_wrap=True)
    return EXIT_OK


def cmd_remove(cache: PriorityCache, args: argparse.Namespace, console: Console) -> int:
    """Remove a key."""
    present = cache.contains(args.key)
    cache.remove(args.key)
    if not present:
        console.print(f"[yellow]Not cached:[/yellow] {escape(args.key)}")
        return EXIT_NOT_DONE
    console.print(f"[green]Removed[/green] {escape(args.key)}")
    return EXIT_OK


def cmd_reprioritize(cache: PriorityCache, args: argparse.Namespace, console: Console) -> int:
    """Change an item's priority."""
    if not cache.change_priority(args.priority, args.key):
        console.print(f"[yellow]Unchanged:[/yellow] {escape(args.key)} is not cached or already at priority {args.priority}")
        return EXIT_NOT_DONE
    console.print(f"[green]Priority of[/green] {escape(args.key)} [green]set to[/green] {args.priority}")
    return EXIT_OK


def cmd_set_max(cache: PriorityCache, args: argparse.Namespace, console: Console) -> int:
    """Change the maximum total size."""
    before = len(cache)
    cache.set_max_total_size(args.size)
    evicted = before - len(cache)
    console.print(f"Maximum total size set to {format_size(args.size)}; {evicted} item(s) evicted")
    return EXIT_OK


def cmd_clear(cache: PriorityCache, args: argparse.Namespace, console: Console) -> int:
    """Delete all cached items."""
    cache.clear()
    console.print(f"[green]Cleared[/green] {cache.directory}")
    return EXIT_OK


COMMANDS = {
    "info": cmd_info,
    "list": cmd_list,
    "put": cmd_put,
    "path": cmd_path,
    "remove": cmd_remove,
    "reprioritize": cmd_reprioritize,
    "set-max": cmd_set_max,
    "clear": cmd_clear,
}


def main(argv: Optional[List[str]] = None, console: Optional[Console] = None) -> int:
    """CLI entry point.

    Returns:
        Exit code: 0 success, 1 nothing done (rejected save or unknown key),
        2 cache or I/O error
    """
    parser = create_parser()
    args = parser.parse_args(argv)
    console = console or Console()
    configure_from_cli(verbose=args.verbose, log_format=args.log_format)

    try:
        with open_cache(args) as cache:
            return COMMANDS[args.command](cache, args, console)
    except (PriorityCacheError, OSError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}", command=args.command)
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
