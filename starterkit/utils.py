"""Shared utility functions for starterkit.

Provides name sanitising, JSON loading, artifact path resolution with
traversal protection, logging setup, and Rich-based console reporting.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path, PurePosixPath
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .errors import PathTraversalError

console = Console()

# ---------------------------------------------------------------------------
# String / name helpers
# ---------------------------------------------------------------------------


def sanitize_name(name: str) -> str:
    """Convert an arbitrary slug or label to a safe directory name.

    * Lowercases the input.
    * Replaces spaces and non-alphanumeric characters (except hyphens and
      underscores) with hyphens.
    * Collapses consecutive hyphens and strips leading/trailing hyphens.

    Examples::

        sanitize_name("SaaS Starter") -> "saas-starter"
        sanitize_name("../pro") -> "pro"
    """
    result = re.sub(r"[^a-zA-Z0-9_-]", "-", name.strip().lower())
    result = re.sub(r"-+", "-", result)
    return result.strip("-")


def title_case(value: str) -> str:
    """Upper-case the first character only: ``"monetization"`` -> ``"Monetization"``."""
    return value[:1].upper() + value[1:] if value else value


# ---------------------------------------------------------------------------
# JSON I/O
# ---------------------------------------------------------------------------


def load_json(path: str | Path) -> Any:
    """Load and parse a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    raw = Path(path).read_text(encoding="utf-8")
    return json.loads(raw)


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------


def ensure_within(path: Path, root: Path, label: str) -> Path:
    """Resolve *path* and check that it stays inside *root*.

    Returns:
        The resolved path.

    Raises:
        PathTraversalError: If the resolved path escapes *root*.
    """
    resolved = path.resolve()
    normalized_root = root.resolve()
    if resolved != normalized_root and normalized_root not in resolved.parents:
        raise PathTraversalError(label, str(path))
    return resolved


def resolve_artifact_source(source: str, modules_dir: Path, template_dir: Path) -> Path:
    """Locate a feature artifact on disk.

    Sources starting with ``modules/`` or ``core/`` are relative to the
    modules root; anything else is relative to the base template.
    """
    if source.startswith(("modules/", "core/")):
        root = modules_dir
    else:
        root = template_dir
    return ensure_within(root / source, root, "artifact source")


def normalize_destination(destination: str) -> str:
    """Validate an archive-relative destination and return it in POSIX form.

    Raises:
        PathTraversalError: For absolute paths or paths containing ``..``.
    """
    pure = PurePosixPath(destination.replace("\\", "/"))
    if pure.is_absolute() or ".." in pure.parts or not pure.parts:
        raise PathTraversalError("file mapping destination", destination)
    return pure.as_posix()


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
    """
    if seconds < 0:
        return "0.0s"

    minutes = int(seconds // 60)
    secs = seconds % 60
    if minutes > 0:
        return f"{minutes}m {int(secs)}s"
    return f"{secs:.1f}s"


def format_bytes(size: int) -> str:
    """Format a byte count: ``2048`` -> ``"2.0 KB"``."""
    value = float(size)
    for unit in ("B", "KB", "MB"):
        if value < 1024:
            return f"{int(value)} B" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


# ---------------------------------------------------------------------------
# Logging & Rich output helpers
# ---------------------------------------------------------------------------


def setup_logging(level: str = "INFO") -> None:
    """Route library logging through a Rich handler on the shared console."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")
