"""Working state: the tracked set compared against the HEAD tree."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .context import RepoContext
from .core import ChangeType, FileChange
from .hashing import compute_file_digest
from .index import Index


@dataclass(slots=True)
class StatusSummary:
    """High-level status summary for UI display."""

    head: Optional[str]
    total_tracked: int

    # Change counts by type
    unchanged: int = 0
    added: int = 0
    modified: int = 0
    deleted: int = 0
    removed: int = 0

    changes: List[FileChange] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        """Check if anything differs from HEAD."""
        return (self.added > 0 or
                self.modified > 0 or
                self.deleted > 0 or
                self.removed > 0)

    @property
    def changed_files(self) -> List[FileChange]:
        """Changes other than UNCHANGED, in index order then removals."""
        return [c for c in self.changes if c.change_type != ChangeType.UNCHANGED]


def compute_status(
    ctx: RepoContext,
    index: Index,
    head_tree: Dict[str, str],
    head: Optional[str] = None,
    chunk_size: Optional[int] = None,
) -> StatusSummary:
    """Classify every indexed path against the HEAD tree.

    Args:
        ctx: Repository context
        index: Current index
        head_tree: path -> digest of the HEAD commit (empty before the first commit)
        head: HEAD commit id, for display
        chunk_size: Read size for hashing

    Returns:
        StatusSummary with one FileChange per indexed path, plus REMOVED
        entries for HEAD paths that are no longer indexed
    """
    summary = StatusSummary(head=head, total_tracked=len(index))
    hash_kwargs = {"chunk_size": chunk_size} if chunk_size else {}

    for path in index:
        head_digest = head_tree.get(path)
        source = ctx.absolute(path)
        if not source.is_file():
            change = FileChange(path=path, change_type=ChangeType.DELETED, head_digest=head_digest)
            summary.deleted += 1
        else:
            local_digest = compute_file_digest(source, **hash_kwargs)
            if head_digest is None:
                change_type = ChangeType.ADDED
                summary.added += 1
            elif head_digest == local_digest:
                change_type = ChangeType.UNCHANGED
                summary.unchanged += 1
            else:
                change_type = ChangeType.MODIFIED
                summary.modified += 1
            change = FileChange(
                path=path,
                change_type=change_type,
                head_digest=head_digest,
                local_digest=local_digest,
            )
        summary.changes.append(change)

    for path in sorted(head_tree):
        if path not in index:
            summary.changes.append(FileChange(
                path=path,
                change_type=ChangeType.REMOVED,
                head_digest=head_tree[path],
            ))
            summary.removed += 1

    return summary
