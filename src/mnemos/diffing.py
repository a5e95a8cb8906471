"""Diff coordinator: resolves endpoints and delegates the comparison.

An endpoint is either a commit reference or ``WORKING_TREE`` (None). Commit
endpoints resolve through the commit's tree pointer to the object file in the
store, which is read in place; nothing is written to the working directory.
The line comparison itself is done by a renderer.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence
import difflib
import logging
import subprocess

from .commits import CommitStore
from .context import RepoContext
from .core import DiffOutcome, DiffReport
from .errors import FileNotFoundInEndpointError, ObjectNotFoundError
from .hashing import compute_file_digest

logger = logging.getLogger(__name__)

WORKING_TREE = None
WORKING_TREE_LABEL = "working tree"


class DiffToolError(Exception):
    """Renderer could not compare the two inputs."""
    pass


@dataclass
class RenderResult:
    """What a renderer reports back."""
    differs: bool
    lines: List[str] = field(default_factory=list)


@dataclass
class ResolvedEndpoint:
    """A diff endpoint pinned to a readable file."""
    label: str
    location: Path
    digest: Optional[str] = None


class UnifiedDiffRenderer:
    """In-process unified diff via difflib."""

    def __call__(self, left: Path, right: Path, left_label: str, right_label: str) -> RenderResult:
        try:
            left_lines = left.read_bytes().decode(errors="replace").splitlines()
            right_lines = right.read_bytes().decode(errors="replace").splitlines()
        except OSError as e:
            raise DiffToolError(str(e)) from e

        lines = list(difflib.unified_diff(
            left_lines,
            right_lines,
            fromfile=left_label,
            tofile=right_label,
            lineterm="",
        ))
        # Byte-level differences that decode to the same text still differ
        differs = bool(lines) or left.read_bytes() != right.read_bytes()
        return RenderResult(differs=differs, lines=lines)


class ExternalDiffRenderer:
    """Runs an external diff command (``diff -u`` by default).

    Exit status 0 means identical, 1 means the files differ; anything else
    is a tool failure.
    """

    def __init__(self, command: Sequence[str] = ("diff", "-u"), runner: Optional[Callable] = None):
        self.command = list(command)
        self.runner = runner or subprocess.run

    def __call__(self, left: Path, right: Path, left_label: str, right_label: str) -> RenderResult:
        argv = self.command + [str(left), str(right)]
        try:
            proc = self.runner(argv, capture_output=True, text=True, check=False)
        except OSError as e:
            raise DiffToolError(f"could not run {argv[0]}: {e}") from e

        if proc.returncode == 0:
            return RenderResult(differs=False)
        if proc.returncode == 1:
            return RenderResult(differs=True, lines=proc.stdout.splitlines())
        raise DiffToolError(
            f"{argv[0]} exited with {proc.returncode}: {(proc.stderr or '').strip()}"
        )


class DiffCoordinator:
    """Resolves diff endpoints and reports identical / differs / error."""

    def __init__(
        self,
        ctx: RepoContext,
        commits: CommitStore,
        object_path: Callable[[str], Path],
        resolve_ref: Callable[[str], str],
        renderer: Optional[Callable] = None,
    ):
        """
        Args:
            ctx: Repository context
            commits: Commit storage
            object_path: Maps a digest to its object file
            resolve_ref: Maps a user commit reference to a full commit id
            renderer: Comparison collaborator (defaults to difflib)
        """
        self.ctx = ctx
        self.commits = commits
        self.object_path = object_path
        self.resolve_ref = resolve_ref
        self.renderer = renderer or UnifiedDiffRenderer()

    def resolve(self, path: str, endpoint: Optional[str]) -> ResolvedEndpoint:
        """Pin ``path`` at ``endpoint`` to a readable file.

        Raises:
            FileNotFoundInEndpointError: If the path is absent at the endpoint
            CommitNotFoundError: If the commit reference doesn't resolve
            ObjectNotFoundError: If the commit's object was never stored/fetched
        """
        if endpoint is WORKING_TREE:
            location = self.ctx.absolute(path)
            if not location.is_file():
                raise FileNotFoundInEndpointError(path, WORKING_TREE_LABEL)
            return ResolvedEndpoint(label=f"{path} ({WORKING_TREE_LABEL})", location=location)

        commit_id = self.resolve_ref(endpoint)
        digest = self.commits.read_pointer(commit_id, path)
        if digest is None:
            raise FileNotFoundInEndpointError(path, f"commit {commit_id}")
        try:
            location = self.object_path(digest)
        except ValueError:
            raise ObjectNotFoundError(digest, path)
        if not location.is_file():
            raise ObjectNotFoundError(digest, path)
        return ResolvedEndpoint(label=f"{path} ({commit_id[:10]})", location=location, digest=digest)

    def diff(self, path: str, endpoint_a: Optional[str], endpoint_b: Optional[str] = WORKING_TREE) -> DiffReport:
        """Compare ``path`` between two endpoints.

        Resolution failures raise; renderer failures come back as an
        ``error`` outcome.
        """
        left = self.resolve(path, endpoint_a)
        right = self.resolve(path, endpoint_b)

        left_digest = left.digest or compute_file_digest(left.location)
        right_digest = right.digest or compute_file_digest(right.location)
        report = DiffReport(
            path=path,
            left_label=left.label,
            right_label=right.label,
            outcome=DiffOutcome.IDENTICAL,
        )
        if left_digest == right_digest:
            return report

        try:
            rendered = self.renderer(left.location, right.location, left.label, right.label)
        except DiffToolError as e:
            logger.warning("Diff of %s failed: %s", path, e)
            report.outcome = DiffOutcome.ERROR
            report.error = str(e)
            return report

        report.outcome = DiffOutcome.DIFFERS if rendered.differs else DiffOutcome.IDENTICAL
        report.lines = rendered.lines
        return report
