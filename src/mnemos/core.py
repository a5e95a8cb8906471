"""Core data models for mnemos.

Commit/Restore Ordering:
------------------------
A commit writes its metadata, objects and tree pointers first, then replaces
the index, then moves HEAD. A restore writes working-tree content first, then
replaces the index, then moves HEAD. Whatever point a crash interrupts, HEAD
names a commit whose tree and objects are complete.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


# ============= Commits =============

class Commit(BaseModel):
    """A fully loaded commit: metadata plus its tree."""

    commit_id: str
    message: str
    timestamp: int  # seconds since epoch
    tree: Dict[str, str] = Field(default_factory=dict)  # path -> sha256:...


class CommitInfo(BaseModel):
    """Commit summary for log listings."""

    commit_id: str
    message: str
    timestamp: int
    file_count: int = 0
    is_head: bool = False

    @property
    def short_id(self) -> str:
        return self.commit_id[:10]


# ============= Operation Results =============

class CommitResult(BaseModel):
    """Result of a completed commit."""

    commit_id: str
    committed: List[str] = Field(default_factory=list)  # paths recorded in the tree
    missing: List[str] = Field(default_factory=list)    # tracked paths absent on disk
    rejected: List[str] = Field(default_factory=list)   # index entries that can't be stored
    new_objects: int = 0

    def summary(self) -> str:
        """Get human-readable summary."""
        parts = [f"{len(self.committed)} files", f"{self.new_objects} new objects"]
        if self.missing:
            parts.append(f"{len(self.missing)} missing (untracked)")
        if self.rejected:
            parts.append(f"{len(self.rejected)} unsupported names (untracked)")
        return ", ".join(parts)


class RestoreResult(BaseModel):
    """Result of a completed restore."""

    commit_id: str
    restored: List[str] = Field(default_factory=list)
    removed: List[str] = Field(default_factory=list)
    missing_objects: Dict[str, str] = Field(default_factory=dict)  # path -> digest
    rejected: List[str] = Field(default_factory=list)  # unsafe pointer paths
    blocked: List[str] = Field(default_factory=list)   # untracked files in the way

    @property
    def complete(self) -> bool:
        """True when every pointer in the target tree was written back."""
        return not (self.missing_objects or self.rejected or self.blocked)

    def summary(self) -> str:
        """Get human-readable summary."""
        parts = [f"restored {len(self.restored)} files"]
        if self.removed:
            parts.append(f"removed {len(self.removed)}")
        if self.missing_objects:
            parts.append(f"⚠ {len(self.missing_objects)} missing objects")
        if self.rejected:
            parts.append(f"⚠ {len(self.rejected)} unsafe paths skipped")
        if self.blocked:
            parts.append(f"⚠ {len(self.blocked)} blocked by untracked files")
        return ", ".join(parts)


# ============= Change Detection =============

class ChangeType(str, Enum):
    """Working-set state of a path relative to HEAD."""

    UNCHANGED = "unchanged"
    ADDED = "added"          # tracked, not in HEAD
    MODIFIED = "modified"    # tracked, content differs from HEAD
    DELETED = "deleted"      # tracked, missing on disk
    REMOVED = "removed"      # in HEAD, no longer tracked


class FileChange(BaseModel):
    """Single path's status."""

    path: str
    change_type: ChangeType
    head_digest: Optional[str] = None
    local_digest: Optional[str] = None


# ============= Diff =============

class DiffOutcome(str, Enum):
    """Outcome reported by the diff coordinator."""

    IDENTICAL = "identical"
    DIFFERS = "differs"
    ERROR = "error"


class DiffReport(BaseModel):
    """Result of comparing one path between two endpoints."""

    path: str
    left_label: str
    right_label: str
    outcome: DiffOutcome
    lines: List[str] = Field(default_factory=list)
    error: Optional[str] = None
