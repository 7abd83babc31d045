"""CLI for Merkle Guard."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import CONFIG_FILE, __version__
from .config import DIGEST_ALGORITHM_NAMES, TreeConfig, get_config_path, load_config, save_config
from .digests import is_digest_string
from .display import render_tree
from .logging_config import setup_logging
from .tree import MerkleTree

console = Console()
error_console = Console(stderr=True)


def get_project_root() -> Path:
    """Get the project root directory (current working directory)."""
    return Path.cwd()


def read_items(path: Path, config: TreeConfig) -> list[str]:
    """Read one item per line from a text file."""
    with open(path, encoding=config.encoding) as f:
        lines = f.read().splitlines()

    items = []
    for line in lines:
        if config.strip_whitespace:
            line = line.strip()
        if config.skip_blank_lines and not line.strip():
            continue
        items.append(line)
    return items


def build_tree(path: Path, config: TreeConfig) -> MerkleTree:
    """Build a tree from the items in a file."""
    tree = MerkleTree.from_config(config)
    tree.add_many(read_items(path, config))
    return tree


@click.group()
@click.version_option(version=__version__, prog_name="mkg")
@click.option("--verbose", "-v", is_flag=True, help="Log tree rebuilds and updates")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Merkle Guard - detect tampering and divergence with Merkle root hashes."""
    if verbose:
        setup_logging(logging.DEBUG, console=error_console)
    ctx.obj = load_config(get_project_root())


@main.command()
@click.option(
    "--digest",
    type=click.Choice(DIGEST_ALGORITHM_NAMES),
    default="sha256",
    help="Leaf digest algorithm",
)
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
def init(digest: str, force: bool) -> None:
    """Write a default configuration in the current directory."""
    project_root = get_project_root()
    config_path = get_config_path(project_root)

    if config_path.exists() and not force:
        error_console.print(
            f"[yellow]Warning:[/yellow] {CONFIG_FILE} already exists. Use --force to overwrite."
        )
        sys.exit(1)

    config = TreeConfig(digest_algorithm=digest)
    save_config(config, project_root)

    console.print(
        Panel(
            f"[green]Initialized Merkle Guard[/green]\n\n"
            f"Digest algorithm: [bold]{digest}[/bold]\n"
            f"Config file: [dim]{config_path}[/dim]",
            title="mkg init",
        )
    )


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def root(config: TreeConfig, file: Path) -> None:
    """Print the root hash of the items in FILE."""
    tree = build_tree(file, config)
    root_hash = tree.compute_root_hash()
    if not root_hash:
        error_console.print("[yellow]Warning:[/yellow] No items found.")
        return
    click.echo(root_hash)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--hash-length", type=click.IntRange(4, 64), default=12, help="Hash characters to show")
@click.pass_obj
def show(config: TreeConfig, file: Path, hash_length: int) -> None:
    """Show the tree built from the items in FILE."""
    tree = build_tree(file, config)
    console.print(render_tree(tree, hash_length=hash_length))

    stats = tree.build_stats
    if stats is not None and stats.leaf_count:
        console.print(
            f"[dim]{stats.leaf_count} leaves, {stats.internal_nodes} internal nodes, "
            f"height {stats.height}[/dim]"
        )


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("expected")
@click.pass_obj
def verify(config: TreeConfig, file: Path, expected: str) -> None:
    """Check that the items in FILE produce the EXPECTED root hash."""
    expected = expected.strip().upper()
    if not is_digest_string(expected):
        error_console.print("[red]Error:[/red] EXPECTED must be a 64-character hex digest.")
        sys.exit(2)

    tree = build_tree(file, config)
    actual = tree.compute_root_hash()

    if actual == expected:
        console.print(f"[green]OK[/green] {actual}")
        return

    error_console.print(
        f"[red]Mismatch[/red]\n  expected: {expected}\n  actual:   {actual or '(empty)'}"
    )
    sys.exit(1)


@main.command()
@click.argument("old", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("new", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def diff(config: TreeConfig, old: Path, new: Path) -> None:
    """Compare the items in OLD and NEW by their Merkle trees."""
    old_tree = build_tree(old, config)
    new_tree = build_tree(new, config)

    result = old_tree.compare(new_tree)

    if not result.has_changes:
        console.print("[green]In sync.[/green] Root hashes match.")
        return

    table = Table(title="Divergence")
    table.add_column("Change", style="cyan")
    table.add_column("Item")

    for item in result.added:
        table.add_row("added", str(item))
    for item in result.removed:
        table.add_row("removed", str(item))

    if result.total_changes:
        console.print(table)
    if result.order_changed:
        console.print("[yellow]Item order differs.[/yellow]")

    sys.exit(1)


if __name__ == "__main__":
    main()
