"""Gitignore-style pattern matching for track --all."""

from pathlib import Path

from pathspec import PathSpec
from pathspec.patterns import GitWildMatchPattern

from .constants import IGNORE_FILE, MNEMOS_DIR


# Patterns that are always ignored
DEFAULTS = [
    f"{MNEMOS_DIR}/",
]


class IgnoreSpec:
    """Manages gitignore-style patterns for file exclusion."""

    def __init__(self, root: Path):
        """Initialize ignore spec with default and repository patterns.

        Args:
            root: Repository root directory
        """
        self.root = root
        patterns = list(DEFAULTS)

        # Load repository-specific .mnemosignore if it exists
        ignore_file = root / IGNORE_FILE
        if ignore_file.exists():
            for line in ignore_file.read_text(encoding="utf-8").splitlines():
                line = line.strip()
                if line and not line.startswith("#"):
                    patterns.append(line)

        # Compile patterns once for efficiency
        self.spec = PathSpec.from_lines(GitWildMatchPattern, patterns)

    def is_ignored(self, relpath: str) -> bool:
        """Check if a root-relative POSIX path should be ignored."""
        return self.spec.match_file(relpath)

    def should_traverse(self, dirpath: str) -> bool:
        """Check if a directory should be descended into during a walk.

        Args:
            dirpath: Root-relative directory path in POSIX format
        """
        # The metadata directory is never walked, whatever the patterns say
        if dirpath == MNEMOS_DIR or dirpath.startswith(f"{MNEMOS_DIR}/"):
            return False

        # Add trailing slash to match directory patterns
        if not dirpath.endswith("/"):
            dirpath = dirpath + "/"

        return not self.spec.match_file(dirpath)
