"""
Helper utilities for the PSD export watcher.

Path handling shared by the watcher, the dispatch loop and the batch runner.
"""

from pathlib import Path
from typing import Iterator, List

from psd_export.models.schemas import OutputFormat


def normalise_path(path: Path) -> Path:
    """Return a resolved version of ``path`` without forcing existence."""

    try:
        return Path(path).expanduser().resolve()
    except (FileNotFoundError, RuntimeError):
        return Path(path).expanduser().absolute()


def output_path_for(path: Path, output_format: OutputFormat) -> Path:
    """Path of the exported image: same stem, the format's extension."""
    return path.with_suffix("." + output_format.extension)


def has_suffix(path: Path, suffix: str) -> bool:
    """Case-sensitive suffix check (``.psd`` matches, ``.PSD`` does not)."""
    return path.suffix == suffix


def iter_files(root: Path) -> Iterator[Path]:
    """Yield ``root`` if it is a file, else every file below it."""

    if root.is_file():
        yield root
        return
    if root.is_dir():
        for child in root.rglob("*"):
            if child.is_file():
                yield child


def find_documents(root: Path, suffix: str) -> List[Path]:
    """
    Enumerate candidate documents under ``root``.

    Args:
        root: A single document or a directory scanned recursively
        suffix: Source suffix including the dot, e.g. ``.psd``

    Returns:
        Sorted list of normalised document paths
    """
    return sorted(
        normalise_path(path) for path in iter_files(root) if has_suffix(path, suffix)
    )


def format_bytes(bytes_count: int) -> str:
    """Format bytes as human-readable string."""
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if bytes_count < 1024.0:
            return f"{bytes_count:.1f} {unit}"
        bytes_count /= 1024.0
    return f"{bytes_count:.1f} PB"
