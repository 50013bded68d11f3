"""Main CLI entry point for blobcache.

Provides command-line inspection and maintenance of a cache directory.
"""

import asyncio
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from blobcache.cache import CacheConfig, CacheStore
from blobcache.cache.config import get_global_config
from blobcache.fetch import FetchCoordinator, ImageDecoder

# Global console for Rich output
console = Console()


def build_config(
    ctx_cache_dir: Optional[str] = None, ctx_capacity: Optional[int] = None
) -> CacheConfig:
    """Build the cache configuration from multiple sources.

    Priority:
    1. Explicit --cache-dir/-C and --capacity flags
    2. BLOBCACHE_* environment variables
    3. ~/.blobcache/config.json, then defaults

    Args:
        ctx_cache_dir: Cache directory from CLI context
        ctx_capacity: Capacity from CLI context

    Returns:
        CacheConfig instance
    """
    config = get_global_config()

    if os.environ.get("BLOBCACHE_DIR") and not ctx_cache_dir:
        config = replace(config, cache_dir=Path(os.environ["BLOBCACHE_DIR"]))

    if ctx_cache_dir:
        config = replace(config, cache_dir=Path(ctx_cache_dir))

    if ctx_capacity is not None:
        config = replace(config, capacity=ctx_capacity)

    return config


def open_store(ctx) -> CacheStore:
    """Create a CacheStore from the CLI context."""
    config = build_config(ctx.obj.get("cache_dir"), ctx.obj.get("capacity"))
    return CacheStore(config)


@click.group()
@click.option(
    "--cache-dir",
    "-C",
    type=click.Path(),
    help="Cache directory (default: BLOBCACHE_DIR env var or ~/.blobcache/Cache)",
)
@click.option("--capacity", type=int, help="Maximum number of counted entries")
@click.pass_context
def cli(ctx, cache_dir, capacity):
    """blobcache CLI - Inspect and maintain a blob cache directory.

    Use --cache-dir/-C to choose the directory, or set BLOBCACHE_DIR.
    """
    ctx.ensure_object(dict)
    ctx.obj["cache_dir"] = cache_dir
    ctx.obj["capacity"] = capacity


@cli.command("stats")
@click.pass_context
def stats(ctx):
    """Show entry count, disk usage and capacity.

    Example:
        blobcache -C ./Cache stats
    """
    try:
        store = open_store(ctx)
        info = store.get_stats()

        table = Table(title="Cache statistics")
        table.add_column("Field", style="cyan", no_wrap=True)
        table.add_column("Value", justify="right", style="green")

        table.add_row("Directory", info["cache_dir"])
        table.add_row("Entries", f"{info['entry_count']} / {info['capacity']}")
        table.add_row("Disk size", f"{info['total_disk_size']:.2f} KB")
        extensions = store.recognized_extensions
        table.add_row(
            "Counted extensions", ", ".join(extensions) if extensions else "all files"
        )

        console.print(table)

    except Exception as e:
        console.print(f"[red]✗[/red] Error: {e}", style="red")
        sys.exit(1)


@cli.command("clear")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def clear(ctx, yes):
    """Remove every cached blob.

    Example:
        blobcache clear -y
    """
    try:
        store = open_store(ctx)

        # Confirmation
        if not yes:
            if not click.confirm(f"Remove all cached files in {store.cache_dir}?"):
                console.print("[yellow]Cancelled[/yellow]")
                return

        removed = store.evict_all()
        console.print(f"[green]✓[/green] Removed {removed} cached file(s)")

    except Exception as e:
        console.print(f"[red]✗[/red] Error: {e}", style="red")
        sys.exit(1)


@cli.command("get")
@click.argument("key")
@click.option(
    "--output", "-o", type=click.Path(), help="Write the cached bytes to a file"
)
@click.pass_context
def get(ctx, key, output):
    """Look up a cached blob by key.

    Example:
        blobcache get cat.png -o /tmp/cat.png
    """
    try:
        store = open_store(ctx)
        data = store.get(key)

        if data is None:
            console.print(f"[yellow]Not cached: {key}[/yellow]")
            sys.exit(1)

        if output:
            Path(output).write_bytes(data)
            console.print(f"[green]✓[/green] Wrote {len(data)} bytes to {output}")
        else:
            console.print(f"[green]✓[/green] {key}: {len(data)} bytes")

    except Exception as e:
        console.print(f"[red]✗[/red] Error: {e}", style="red")
        sys.exit(1)


@cli.command("put")
@click.argument("key")
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def put(ctx, key, source):
    """Store a local file under a key.

    Example:
        blobcache put cat.png ./downloads/cat.png
    """
    try:
        store = open_store(ctx)
        data = Path(source).read_bytes()
        store.set(key, data)
        console.print(f"[green]✓[/green] Cached {key} ({len(data)} bytes)")

    except Exception as e:
        console.print(f"[red]✗[/red] Error: {e}", style="red")
        sys.exit(1)


@cli.command("fetch")
@click.argument("identifier")
@click.option(
    "--output", "-o", type=click.Path(), help="Write the resolved bytes to a file"
)
@click.option(
    "--image", is_flag=True, help="Require PNG or JPEG content (re-fetch otherwise)"
)
@click.pass_context
def fetch(ctx, identifier, output, image):
    """Resolve an identifier through the cache, fetching on a miss.

    Example:
        blobcache fetch gs://bucket/images/cat.png
        blobcache fetch https://example.com/logo.png --image -o logo.png
    """
    try:
        store = open_store(ctx)
        coordinator = FetchCoordinator(
            store, decoder=ImageDecoder() if image else None
        )
        result = asyncio.run(coordinator.resolve(identifier))

        if not result.ok:
            console.print(
                f"[red]✗[/red] Could not resolve {identifier}: {result.error}",
                style="red",
            )
            sys.exit(1)

        data = result.value.data if image else result.value
        console.print(
            f"[green]✓[/green] {result.key}: {len(data)} bytes (from {result.source})"
        )
        if output:
            Path(output).write_bytes(data)
            console.print(f"  Wrote {output}")

    except Exception as e:
        console.print(f"[red]✗[/red] Error: {e}", style="red")
        sys.exit(1)


if __name__ == "__main__":
    cli()
