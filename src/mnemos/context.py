"""Repository context for managing paths and root discovery."""

from pathlib import Path
from typing import Optional, Union

from .constants import (
    COMMITS_DIR,
    CONFIG_FILE,
    HEAD_FILE,
    INDEX_FILE,
    LOCK_FILE,
    MNEMOS_DIR,
    OBJECTS_DIR,
    REMOTE_FILE,
)
from .errors import RepositoryNotFoundError
from .ignore import IgnoreSpec


class RepoContext:
    """Locates a repository root and resolves paths against it."""

    def __init__(self, start_path: Optional[Path] = None):
        """Initialize context by finding the repository root.

        Args:
            start_path: Path to start searching for the repository root

        Raises:
            RepositoryNotFoundError: If no .mnemos directory is found
        """
        start = Path(start_path) if start_path else Path.cwd()
        root = self._find_root(start)
        if root is None:
            raise RepositoryNotFoundError(str(start))
        self.root = root
        self._ignore_spec: Optional[IgnoreSpec] = None

    @classmethod
    def is_initialized(cls, path: Optional[Path] = None) -> bool:
        """Check if a specific directory is initialized (without traversing up)."""
        target = Path(path) if path else Path.cwd()
        return (target / MNEMOS_DIR).is_dir()

    def _find_root(self, start: Path) -> Optional[Path]:
        """Walk up directory tree to find repository root."""
        current = start.resolve()

        while current != current.parent:
            if (current / MNEMOS_DIR).is_dir():
                return current
            current = current.parent

        # Check root directory
        if (current / MNEMOS_DIR).is_dir():
            return current
        return None

    def resolve(self, path: Union[str, Path]) -> str:
        """Convert a user-supplied path to a root-relative POSIX path.

        Relative paths are taken relative to the current directory.

        Raises:
            ValueError: If the path is outside the repository
        """
        p = Path(path)
        if not p.is_absolute():
            p = Path.cwd() / p
        # Resolve the parent only so a symlinked file is tracked as itself
        if p.name in ("", ".."):
            absolute = p.resolve()
        else:
            absolute = p.parent.resolve() / p.name
        try:
            rel = absolute.relative_to(self.root)
        except ValueError:
            raise ValueError(f"Path {path} is outside repository {self.root}")
        if rel == Path("."):
            raise ValueError(f"Path {path} is the repository root")
        return rel.as_posix()

    def absolute(self, repo_path: Union[str, Path]) -> Path:
        """Get absolute path from a root-relative path."""
        return self.root / repo_path

    @property
    def meta_dir(self) -> Path:
        """The .mnemos metadata directory."""
        return self.root / MNEMOS_DIR

    @property
    def index_path(self) -> Path:
        return self.meta_dir / INDEX_FILE

    @property
    def head_path(self) -> Path:
        return self.meta_dir / HEAD_FILE

    @property
    def remote_path(self) -> Path:
        return self.meta_dir / REMOTE_FILE

    @property
    def config_path(self) -> Path:
        return self.meta_dir / CONFIG_FILE

    @property
    def lock_path(self) -> Path:
        return self.meta_dir / LOCK_FILE

    @property
    def objects_dir(self) -> Path:
        return self.meta_dir / OBJECTS_DIR

    @property
    def commits_dir(self) -> Path:
        return self.meta_dir / COMMITS_DIR

    def get_ignore_spec(self) -> IgnoreSpec:
        """Get the ignore specification (memoized)."""
        if self._ignore_spec is None:
            self._ignore_spec = IgnoreSpec(self.root)
        return self._ignore_spec
