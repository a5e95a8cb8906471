"""Restore engine: makes a commit's tree the truth of the working set."""

from pathlib import Path
from typing import List
import logging
import os
import shutil

from .commits import CommitStore
from .context import RepoContext
from .core import RestoreResult
from .errors import ObjectNotFoundError
from .index import Index, is_trackable_path, load_index, save_index
from .objects import ObjectStore
from .refs import write_head

logger = logging.getLogger(__name__)


def remove_path(path: Path) -> bool:
    """Remove a file, symlink or directory subtree. Returns False if nothing was there."""
    if path.is_symlink() or path.is_file():
        path.unlink()
        return True
    if path.is_dir():
        shutil.rmtree(path)
        return True
    return False


def prune_empty_dirs(top: Path) -> None:
    """Remove ``top`` and the directories under it that hold no files."""
    # Bottom-up, so parents are empty by the time they're checked
    for dirpath, _, _ in os.walk(top, topdown=False):
        d = Path(dirpath)
        if not any(d.iterdir()):
            d.rmdir()


def _contains_claimed(path: str, target_paths: List[str]) -> bool:
    """True if a restored path lives beneath `path` (now a directory)."""
    prefix = f"{path}/"
    return any(t.startswith(prefix) for t in target_paths)


def reconcile_index(current: Index, target_paths: List[str]) -> Index:
    """Reset the index to the target tree's paths.

    Paths in both keep their current order; target-only paths are appended
    in tree order.
    """
    wanted = set(target_paths)
    index = Index(paths=[p for p in current if p in wanted])
    for path in target_paths:
        index.add(path)
    return index


class RestoreEngine:
    """Writes a commit back into the working directory."""

    def __init__(self, ctx: RepoContext, objects: ObjectStore, commits: CommitStore):
        self.ctx = ctx
        self.objects = objects
        self.commits = commits

    def _make_room(self, path: str, current: Index, result: RestoreResult) -> bool:
        """Clear tracked files standing where ``path`` must be written.

        A tracked file where a parent directory must go is removed, as are
        tracked files inside a directory sitting at ``path``. Untracked files
        are never deleted: if any are in the way, returns False.
        """
        root = self.ctx.root
        parts = path.split("/")
        for depth in range(1, len(parts)):
            parent = "/".join(parts[:depth])
            location = root / parent
            if location.is_symlink() or location.is_file():
                if parent not in current:
                    return False
                location.unlink()
                result.removed.append(parent)
                return True

        dest = root / path
        if not dest.is_dir() or dest.is_symlink():
            return True

        prefix = f"{path}/"
        for tracked in current:
            if tracked.startswith(prefix) and remove_path(root / tracked):
                result.removed.append(tracked)
        prune_empty_dirs(dest)
        return not dest.exists()

    def restore(self, commit_id: str) -> RestoreResult:
        """Restore the working set to ``commit_id``.

        1. Every pointer in the target tree is resolved and written back.
           A missing object is recorded and skipped, not fatal, as is a path
           with untracked files in the way. Paths under .mnemos or escaping
           the root are rejected.
        2. Indexed paths the target doesn't claim are removed from disk.
        3. The index is reset to the target's paths, then HEAD moves.

        Args:
            commit_id: A full, existing commit id

        Raises:
            CommitNotFoundError: If the commit doesn't exist
            IndexUnreadableError: If the index can't be loaded (nothing is written)
        """
        current = load_index(self.ctx)
        result = RestoreResult(commit_id=commit_id)

        target_paths: List[str] = []
        for path, digest in self.commits.iter_tree(commit_id):
            if not is_trackable_path(path):
                logger.warning("Skipping unsafe path in commit %s: %r", commit_id, path)
                result.rejected.append(path)
                continue
            target_paths.append(path)
            if not self.objects.has(digest):
                logger.warning("Object %s for %s is missing; not restored", digest, path)
                result.missing_objects[path] = digest
                continue
            if not self._make_room(path, current, result):
                logger.warning("Untracked files in the way of %s; not restored", path)
                result.blocked.append(path)
                continue
            try:
                self.objects.materialize(digest, self.ctx.absolute(path))
            except ObjectNotFoundError:
                logger.warning("Object %s for %s is missing; not restored", digest, path)
                result.missing_objects[path] = digest
                continue
            result.restored.append(path)

        claimed = set(target_paths)
        for path in current:
            if path in claimed or _contains_claimed(path, target_paths):
                continue
            if remove_path(self.ctx.absolute(path)):
                result.removed.append(path)
                logger.debug("Removed %s (not in %s)", path, commit_id)

        save_index(reconcile_index(current, target_paths), self.ctx)
        write_head(self.ctx, commit_id)

        logger.info("Restored %s: %s", commit_id, result.summary())
        return result
