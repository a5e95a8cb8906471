"""Repository handle.

Every operation hangs off an explicit ``Repository`` instance; nothing is kept
at module level, so several repositories can be used from one process.

Mutating operations (track, commit, restore, fetch) hold an exclusive portalocker
lock on .mnemos/lock for their whole duration, so index replacement and the
HEAD update are atomic with respect to other mnemos processes.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Union
import logging
import time

import portalocker

from .commits import CommitStore
from .config import RepoConfig, load_config
from .constants import MNEMOS_DIR
from .context import RepoContext
from .core import CommitInfo, CommitResult, DiffReport, RestoreResult
from .diffing import WORKING_TREE, DiffCoordinator, ExternalDiffRenderer, UnifiedDiffRenderer
from .errors import PathNotFoundError, RepositoryExistsError, RepositoryLockedError
from .index import is_trackable_path, load_index, save_index
from .objects import ObjectStore
from .refs import read_head, read_remote, validate_remote, write_remote
from .restore import RestoreEngine
from .snapshot import SnapshotBuilder
from .transport import RsyncTransport
from .utils import atomic_write_text
from .walk import iter_trackable, walk_files
from .working_state import StatusSummary, compute_status

logger = logging.getLogger(__name__)


class Repository:
    """A mnemos repository rooted at a directory containing .mnemos."""

    def __init__(
        self,
        start_path: Optional[Path] = None,
        clock: Callable[[], int] = time.time_ns,
        transport: Optional[RsyncTransport] = None,
    ):
        """Open the repository containing ``start_path`` (default: cwd).

        Args:
            start_path: Directory to start searching upwards from
            clock: Nanosecond clock used for commit ids and timestamps
            transport: Remote transport (defaults to rsync/ssh from config)

        Raises:
            RepositoryNotFoundError: If no .mnemos directory is found
            ConfigError: If .mnemos/config.yaml is invalid
        """
        self.ctx = RepoContext(start_path)
        self.config: RepoConfig = load_config(self.ctx.config_path)
        self.objects = ObjectStore(self.ctx.objects_dir, chunk_size=self.config.chunk_size)
        self.commits = CommitStore(self.ctx.commits_dir)
        self.clock = clock
        self.transport = transport or RsyncTransport(
            rsync_command=self.config.rsync_command,
            ssh_command=self.config.ssh_command,
        )

    @classmethod
    def init(cls, path: Optional[Path] = None, **kwargs) -> "Repository":
        """Create a new repository at ``path`` (default: cwd).

        Raises:
            RepositoryExistsError: If ``path`` already holds a repository
        """
        root = Path(path) if path else Path.cwd()
        root.mkdir(parents=True, exist_ok=True)
        if RepoContext.is_initialized(root):
            raise RepositoryExistsError(str(root.resolve()))

        meta = root / MNEMOS_DIR
        meta.mkdir()
        repo = cls(root, **kwargs)
        repo.ctx.objects_dir.mkdir(exist_ok=True)
        repo.ctx.commits_dir.mkdir(exist_ok=True)
        atomic_write_text(repo.ctx.index_path, "")
        atomic_write_text(repo.ctx.head_path, "")
        logger.info("Initialized repository in %s", repo.root)
        return repo

    @classmethod
    def open(cls, start_path: Optional[Path] = None, **kwargs) -> "Repository":
        """Open the nearest enclosing repository."""
        return cls(start_path, **kwargs)

    @property
    def root(self) -> Path:
        return self.ctx.root

    @property
    def head(self) -> Optional[str]:
        """Commit id HEAD points at, or None before the first commit."""
        return read_head(self.ctx)

    @contextmanager
    def _lock(self) -> Iterator[None]:
        timeout = self.config.lock_timeout
        try:
            lock = portalocker.Lock(str(self.ctx.lock_path), "w", timeout=timeout)
            lock.acquire()
        except portalocker.exceptions.LockException as e:
            raise RepositoryLockedError(str(self.ctx.lock_path), timeout) from e
        try:
            yield
        finally:
            lock.release()

    # ---- tracking -----------------------------------------------------------

    def track(self, path: Union[str, Path]) -> List[str]:
        """Add a file, or every file beneath a directory, to the index.

        Already-tracked paths are left where they are.

        Returns:
            Paths newly added, in the order they were appended

        Raises:
            PathNotFoundError: If the path doesn't exist
            ValueError: If the path is outside the repository, inside .mnemos,
                or has a name the index can't store
            IndexUnreadableError: If the index can't be loaded
        """
        if Path(path).resolve() == self.root:
            return self.track_all()

        rel = self.ctx.resolve(path)
        if rel == MNEMOS_DIR or rel.startswith(f"{MNEMOS_DIR}/"):
            raise ValueError(f"Cannot track mnemos metadata: {path}")

        target = self.ctx.absolute(rel)
        if not (target.exists() or target.is_symlink()):
            raise PathNotFoundError(str(path))

        if not target.is_dir() or target.is_symlink():
            return self._add_to_index([rel])

        ignore = self.ctx.get_ignore_spec()
        candidates = [
            f"{rel}/{sub}" for sub in walk_files(
                target,
                should_traverse=lambda d: ignore.should_traverse(f"{rel}/{d}"),
                should_include=lambda f: not ignore.is_ignored(f"{rel}/{f}"),
            )
        ]
        return self._add_to_index(candidates, skip_unsupported=True)

    def track_all(self) -> List[str]:
        """Track every file in the repository not excluded by ignore rules."""
        return self._add_to_index(
            iter_trackable(self.root, self.ctx.get_ignore_spec()),
            skip_unsupported=True,
        )

    def _add_to_index(self, paths, skip_unsupported: bool = False) -> List[str]:
        """Append paths to the index under the lock.

        Names the index can't store raise ValueError, or are skipped with a
        warning when ``skip_unsupported`` is set (directory expansion).
        """
        with self._lock():
            index = load_index(self.ctx)
            added = []
            for p in paths:
                if skip_unsupported and not is_trackable_path(p):
                    logger.warning("Skipping unsupported file name: %r", p)
                    continue
                if index.add(p):
                    added.append(p)
            if added:
                save_index(index, self.ctx)
        for p in added:
            logger.debug("Tracking %s", p)
        return added

    def tracked(self) -> List[str]:
        """Current index, in order."""
        return list(load_index(self.ctx))

    # ---- commit / restore ---------------------------------------------------

    def commit(self, message: str) -> CommitResult:
        """Snapshot the index into a new commit and move HEAD to it."""
        builder = SnapshotBuilder(self.ctx, self.objects, self.commits, clock=self.clock)
        with self._lock():
            return builder.build(message)

    def resolve_ref(self, ref: str) -> str:
        """Resolve HEAD, a full commit id or a unique prefix."""
        return self.commits.resolve(ref, self.head)

    def restore(self, ref: str) -> RestoreResult:
        """Make the working set match commit ``ref`` and move HEAD to it.

        Raises:
            CommitNotFoundError: If ``ref`` resolves to nothing
            AmbiguousCommitError: If ``ref`` is an ambiguous prefix
        """
        engine = RestoreEngine(self.ctx, self.objects, self.commits)
        with self._lock():
            commit_id = self.resolve_ref(ref)
            return engine.restore(commit_id)

    revert = restore

    # ---- inspection ---------------------------------------------------------

    def log(self) -> List[CommitInfo]:
        """All commits, newest first."""
        return self.commits.list_commits(head=self.head)

    def head_tree(self) -> Dict[str, str]:
        head = self.head
        if not head or not self.commits.exists(head):
            return {}
        return dict(self.commits.iter_tree(head))

    def status(self) -> StatusSummary:
        """Compare the tracked set against HEAD."""
        return compute_status(
            self.ctx,
            load_index(self.ctx),
            self.head_tree(),
            head=self.head,
            chunk_size=self.config.chunk_size,
        )

    def diff(
        self,
        path: Union[str, Path],
        endpoint_a: Optional[str] = "HEAD",
        endpoint_b: Optional[str] = WORKING_TREE,
        tool: Optional[str] = None,
    ) -> DiffReport:
        """Compare ``path`` between two endpoints (commit refs or WORKING_TREE).

        Args:
            path: File path, relative to the current directory
            endpoint_a: Left endpoint (default: HEAD)
            endpoint_b: Right endpoint (default: the working tree)
            tool: "builtin" or "external"; defaults to the configured diff_tool
        """
        tool = tool or self.config.diff_tool
        if tool == "external":
            renderer = ExternalDiffRenderer(self.config.diff_command)
        elif tool == "builtin":
            renderer = UnifiedDiffRenderer()
        else:
            raise ValueError(f"Unknown diff tool: {tool}")

        coordinator = DiffCoordinator(
            self.ctx,
            self.commits,
            object_path=self.objects.path_for,
            resolve_ref=self.resolve_ref,
            renderer=renderer,
        )
        return coordinator.diff(self.ctx.resolve(path), endpoint_a, endpoint_b)

    # ---- remotes ------------------------------------------------------------

    def set_remote(self, location: str) -> str:
        """Store the remote location. Returns the stored value."""
        return write_remote(self.ctx, location)

    def get_remote(self) -> str:
        return read_remote(self.ctx)

    def send(self) -> str:
        """Push commits and objects to the remote. Returns the remote used."""
        remote = self.get_remote()
        self.transport.send(self.ctx.meta_dir, remote)
        return remote

    def fetch(self) -> str:
        """Pull commits and objects from the remote. Returns the remote used."""
        remote = self.get_remote()
        with self._lock():
            self.transport.fetch(self.ctx.meta_dir, remote)
        return remote

    def create_remote(self, location: str) -> str:
        """Create the remote layout and set it as this repository's remote."""
        location = validate_remote(location)
        self.transport.create(location)
        return self.set_remote(location)
