"""Lazy directory walks.

Walks use an explicit stack instead of recursion, so depth is bounded only by
memory, and yield paths one at a time. Each call to ``walk_files`` starts a
fresh traversal; entries are visited in sorted order, so results are
deterministic.
"""

from pathlib import Path
from typing import Callable, Iterator, Optional

from .ignore import IgnoreSpec


def walk_files(
    root: Path,
    should_traverse: Optional[Callable[[str], bool]] = None,
    should_include: Optional[Callable[[str], bool]] = None,
) -> Iterator[str]:
    """Yield root-relative POSIX paths of regular files under ``root``.

    Args:
        root: Directory to walk
        should_traverse: Predicate on relative directory paths; False prunes
        should_include: Predicate on relative file paths; False skips

    Symlinked directories are not followed.
    """
    root = Path(root)
    stack = [(root, "")]
    while stack:
        directory, prefix = stack.pop()
        try:
            entries = sorted(directory.iterdir(), key=lambda p: p.name)
        except (FileNotFoundError, NotADirectoryError):
            # Removed while walking
            continue

        subdirs = []
        for entry in entries:
            rel = f"{prefix}{entry.name}"
            if entry.is_dir() and not entry.is_symlink():
                if should_traverse is None or should_traverse(rel):
                    subdirs.append((entry, f"{rel}/"))
            elif entry.is_file():
                if should_include is None or should_include(rel):
                    yield rel

        # Reverse so the stack pops subdirectories in sorted order
        stack.extend(reversed(subdirs))


def iter_trackable(root: Path, ignore: IgnoreSpec) -> Iterator[str]:
    """Yield every file under ``root`` that track --all should pick up."""
    return walk_files(
        root,
        should_traverse=ignore.should_traverse,
        should_include=lambda rel: not ignore.is_ignored(rel),
    )
