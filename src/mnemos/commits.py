"""Commit storage.

Each commit is a directory under .mnemos/commits named by its id:

    <id>/message      free-text message
    <id>/timestamp    integer seconds since epoch
    <id>/tree/...     one pointer file per tracked path, mirroring the path,
                      each holding the content digest of that file

Commits are created exclusively (an existing id is never reused) and never
modified afterwards. Everything a commit references lives in the commits and
objects directories, so both can be copied elsewhere as-is.
"""

from pathlib import Path, PurePosixPath
from typing import Iterator, List, Optional, Tuple
import logging
import re

from .constants import MESSAGE_FILE, MNEMOS_DIR, TIMESTAMP_FILE, TREE_DIR
from .core import Commit, CommitInfo
from .errors import AmbiguousCommitError, CommitIdCollisionError, CommitNotFoundError
from .utils import atomic_write_text
from .walk import walk_files

logger = logging.getLogger(__name__)

_COMMIT_ID = re.compile(r"^[0-9a-f]+$")

HEAD_REF = "HEAD"


def make_commit_id(now_ns: int) -> str:
    """Commit ids are the lowercase hex of the creation clock in nanoseconds."""
    return f"{now_ns:x}"


def is_safe_tree_path(path: str) -> bool:
    """True if a tree path names a file inside the working tree.

    Rejects absolute paths, empty, `.` and `..` components, NUL bytes and
    anything under the metadata directory.
    """
    if not path or "\x00" in path or PurePosixPath(path).is_absolute():
        return False
    parts = path.split("/")
    if parts[0] == MNEMOS_DIR:
        return False
    return all(part not in ("", ".", "..") for part in parts)


class CommitStore:
    """Reads and writes commit directories."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, commit_id: str) -> Path:
        if not _COMMIT_ID.fullmatch(commit_id or ""):
            raise ValueError(f"Invalid commit id: {commit_id!r}")
        return self.root / commit_id

    def exists(self, commit_id: str) -> bool:
        try:
            return self.path_for(commit_id).is_dir()
        except ValueError:
            return False

    def ids(self) -> List[str]:
        """All commit ids, unordered."""
        return [
            entry.name for entry in self.root.iterdir()
            if entry.is_dir() and _COMMIT_ID.fullmatch(entry.name)
        ]

    def resolve(self, ref: str, head: Optional[str] = None) -> str:
        """Resolve a full id, a unique id prefix or HEAD to a commit id.

        Raises:
            CommitNotFoundError: If nothing matches
            AmbiguousCommitError: If a prefix matches several commits
        """
        ref = (ref or "").strip()
        if ref == HEAD_REF:
            if not head or not self.exists(head):
                raise CommitNotFoundError(ref)
            return head
        if self.exists(ref):
            return ref
        if not _COMMIT_ID.fullmatch(ref):
            raise CommitNotFoundError(ref)

        matches = sorted(cid for cid in self.ids() if cid.startswith(ref))
        if not matches:
            raise CommitNotFoundError(ref)
        if len(matches) > 1:
            raise AmbiguousCommitError(ref, matches)
        return matches[0]

    # ---- writing ------------------------------------------------------------

    def create(self, commit_id: str, message: str, timestamp: int) -> Path:
        """Create a commit directory with its metadata.

        Raises:
            CommitIdCollisionError: If a commit with this id already exists
            OSError: If the metadata can't be written
        """
        commit_dir = self.path_for(commit_id)
        try:
            commit_dir.mkdir()
        except FileExistsError:
            raise CommitIdCollisionError(commit_id)

        atomic_write_text(commit_dir / MESSAGE_FILE, message)
        atomic_write_text(commit_dir / TIMESTAMP_FILE, f"{timestamp}\n")
        (commit_dir / TREE_DIR).mkdir()
        return commit_dir

    def write_pointer(self, commit_id: str, path: str, digest: str) -> None:
        """Record path -> digest in a commit's tree.

        Raises:
            ValueError: If the path would escape the tree directory
        """
        if not is_safe_tree_path(path):
            raise ValueError(f"Unsafe tree path: {path!r}")
        pointer = self.path_for(commit_id) / TREE_DIR / path
        atomic_write_text(pointer, f"{digest}\n")
        logger.debug("Pointer %s -> %s", path, digest)

    # ---- reading ------------------------------------------------------------

    def read_pointer(self, commit_id: str, path: str) -> Optional[str]:
        """Return the digest a commit records for a path, or None."""
        if not is_safe_tree_path(path):
            return None
        pointer = self.path_for(commit_id) / TREE_DIR / path
        if not pointer.is_file():
            return None
        return pointer.read_text(encoding="utf-8").strip()

    def iter_tree(self, commit_id: str) -> Iterator[Tuple[str, str]]:
        """Yield (path, digest) for every pointer in a commit's tree.

        Raises:
            CommitNotFoundError: If the commit doesn't exist
        """
        if not self.exists(commit_id):
            raise CommitNotFoundError(commit_id)
        tree_dir = self.path_for(commit_id) / TREE_DIR
        for rel in walk_files(tree_dir):
            yield rel, (tree_dir / rel).read_text(encoding="utf-8").strip()

    def read_message(self, commit_id: str) -> str:
        return (self.path_for(commit_id) / MESSAGE_FILE).read_text(encoding="utf-8")

    def read_timestamp(self, commit_id: str) -> int:
        text = (self.path_for(commit_id) / TIMESTAMP_FILE).read_text(encoding="utf-8")
        return int(text.strip())

    def load(self, commit_id: str) -> Commit:
        """Load a commit with its full tree.

        Raises:
            CommitNotFoundError: If the commit doesn't exist
        """
        if not self.exists(commit_id):
            raise CommitNotFoundError(commit_id)
        return Commit(
            commit_id=commit_id,
            message=self.read_message(commit_id),
            timestamp=self.read_timestamp(commit_id),
            tree=dict(self.iter_tree(commit_id)),
        )

    def list_commits(self, head: Optional[str] = None) -> List[CommitInfo]:
        """All readable commits, newest first.

        Commits whose metadata can't be read (e.g. an interrupted fetch) are
        skipped with a warning.
        """
        infos = []
        for commit_id in self.ids():
            try:
                message = self.read_message(commit_id)
                timestamp = self.read_timestamp(commit_id)
                file_count = sum(1 for _ in self.iter_tree(commit_id))
            except (OSError, ValueError) as e:
                logger.warning("Skipping unreadable commit %s: %s", commit_id, e)
                continue
            infos.append(CommitInfo(
                commit_id=commit_id,
                message=message,
                timestamp=timestamp,
                file_count=file_count,
                is_head=(commit_id == head),
            ))
        infos.sort(key=lambda info: (info.timestamp, info.commit_id), reverse=True)
        return infos
