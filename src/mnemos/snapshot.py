"""Snapshot builder: turns the current index into a commit."""

from typing import Callable, List
import logging
import time

from .commits import CommitStore, make_commit_id
from .context import RepoContext
from .core import CommitResult
from .errors import CommitFailedError, IndexWriteFailedError
from .index import Index, is_trackable_path, load_index, save_index
from .objects import ObjectStore
from .refs import write_head

logger = logging.getLogger(__name__)


class SnapshotBuilder:
    """Builds commits from the index.

    Ordering guarantees:
        1. Commit metadata is written before any file is processed, so a
           partially built commit is still attributable
        2. Objects and tree pointers are durable before the index is replaced
        3. The index is replaced before HEAD moves

    A crash at any point leaves HEAD at the last complete commit.
    """

    def __init__(
        self,
        ctx: RepoContext,
        objects: ObjectStore,
        commits: CommitStore,
        clock: Callable[[], int] = time.time_ns,
    ):
        self.ctx = ctx
        self.objects = objects
        self.commits = commits
        self.clock = clock

    def build(self, message: str) -> CommitResult:
        """Snapshot every indexed path into a new commit.

        Tracked paths that no longer exist (or are no longer regular files)
        are reported in ``missing`` and dropped from the index; they are not
        an error. Index entries no commit tree can hold (hand edits such as
        ``../x`` or paths under .mnemos) are dropped the same way and reported
        in ``rejected``.

        Args:
            message: Commit message

        Returns:
            CommitResult for the new commit

        Raises:
            IndexUnreadableError: If the index can't be loaded (nothing is written)
            CommitIdCollisionError: If the generated id is already taken
            CommitFailedError: On any I/O failure; index and HEAD untouched
        """
        index = load_index(self.ctx)

        now_ns = self.clock()
        commit_id = make_commit_id(now_ns)
        timestamp = now_ns // 1_000_000_000

        try:
            self.commits.create(commit_id, message, timestamp)
        except OSError as e:
            raise CommitFailedError(commit_id, f"could not write metadata: {e}") from e

        committed: List[str] = []
        missing: List[str] = []
        rejected: List[str] = []
        new_objects = 0

        for path in index:
            if not is_trackable_path(path):
                rejected.append(path)
                continue
            source = self.ctx.absolute(path)
            if not source.is_file():
                missing.append(path)
                continue
            try:
                digest, created = self.objects.ingest(source)
            except FileNotFoundError:
                # Deleted between the check and the read
                missing.append(path)
                continue
            except OSError as e:
                raise CommitFailedError(commit_id, f"could not store {path}: {e}") from e

            try:
                self.commits.write_pointer(commit_id, path, digest)
            except OSError as e:
                raise CommitFailedError(commit_id, f"could not record {path}: {e}") from e

            committed.append(path)
            if created:
                new_objects += 1

        for path in missing:
            logger.warning("Tracked file missing, dropped from index: %s", path)
        for path in rejected:
            logger.warning("Unsupported path in index, dropped: %r", path)

        self._publish(commit_id, Index(paths=committed), previous=index)

        logger.info("Committed %s (%d files, %d new objects)", commit_id, len(committed), new_objects)
        return CommitResult(
            commit_id=commit_id,
            committed=committed,
            missing=missing,
            rejected=rejected,
            new_objects=new_objects,
        )

    def _publish(self, commit_id: str, rebuilt: Index, previous: Index) -> None:
        """Swap in the rebuilt index, then move HEAD."""
        try:
            save_index(rebuilt, self.ctx)
        except IndexWriteFailedError as e:
            raise CommitFailedError(commit_id, str(e)) from e
        try:
            write_head(self.ctx, commit_id)
        except OSError as e:
            # Put the old index back so index and HEAD stay in step
            try:
                save_index(previous, self.ctx)
            except IndexWriteFailedError as restore_error:
                logger.error("Could not restore previous index: %s", restore_error)
            raise CommitFailedError(commit_id, f"could not update HEAD: {e}") from e
