"""Index: the ordered, duplicate-free list of tracked paths.

Stored as .mnemos/index, one root-relative POSIX path per line, in the order
the paths were first tracked. The file is only ever replaced whole
(temp file + rename), never appended to or edited in place.
"""

from pathlib import Path
from typing import Iterable, Iterator, List, Set
import logging

from pydantic import BaseModel, Field, PrivateAttr

from .commits import is_safe_tree_path
from .context import RepoContext
from .errors import IndexUnreadableError, IndexWriteFailedError
from .utils import atomic_write_text

logger = logging.getLogger(__name__)

# Characters the line-per-path index file can't hold
UNSTORABLE_CHARS = ("\n", "\r", "\x00")


def normalize_path(path) -> str:
    """Normalize a root-relative path to POSIX form."""
    if isinstance(path, str):
        path = Path(path)
    return path.as_posix()


def is_trackable_path(path: str) -> bool:
    """True if a path can be stored in the index and in a commit tree."""
    if any(c in path for c in UNSTORABLE_CHARS):
        return False
    return is_safe_tree_path(path)


class Index(BaseModel):
    """Tracked paths in insertion order.

    All paths are stored as POSIX strings (forward slashes) for consistency
    across platforms.
    """

    paths: List[str] = Field(default_factory=list)
    _members: Set[str] = PrivateAttr(default_factory=set)

    def model_post_init(self, __context) -> None:
        self._members = set(self.paths)

    def add(self, path) -> bool:
        """Append a path unless already tracked. Returns True if it was added.

        Raises:
            ValueError: If the path can't be stored in the index
        """
        p = normalize_path(path)
        if p in self._members:
            return False
        if not is_trackable_path(p):
            raise ValueError(f"Cannot track {p!r}: unsupported file name")
        self.paths.append(p)
        self._members.add(p)
        return True

    def __contains__(self, path) -> bool:
        return normalize_path(path) in self._members

    def __iter__(self) -> Iterator[str]:
        return iter(list(self.paths))

    def __len__(self) -> int:
        return len(self.paths)

    @classmethod
    def from_paths(cls, paths: Iterable[str]) -> "Index":
        """Build an index from paths, dropping later duplicates."""
        index = cls()
        for p in paths:
            index.add(p)
        return index


def parse_index(text: str, source: str = "index") -> Index:
    """Parse index file content.

    Raises:
        IndexUnreadableError: If the content contains duplicates or NUL bytes
    """
    if "\x00" in text:
        raise IndexUnreadableError(source, "contains NUL bytes")

    seen = set()
    paths = []
    # Split on \n only; other whitespace is part of the file name
    for lineno, path in enumerate(text.split("\n"), start=1):
        if not path:
            continue
        if path in seen:
            raise IndexUnreadableError(source, f"duplicate entry '{path}' on line {lineno}")
        seen.add(path)
        paths.append(path)
    return Index(paths=paths)


def load_index(ctx: RepoContext) -> Index:
    """Load the index.

    Raises:
        IndexUnreadableError: If the index file is missing or corrupt
    """
    path = ctx.index_path
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise IndexUnreadableError(str(path), "file is missing")
    except UnicodeDecodeError as e:
        raise IndexUnreadableError(str(path), f"not valid UTF-8 ({e.reason})")
    except OSError as e:
        raise IndexUnreadableError(str(path), e.strerror or str(e))
    return parse_index(text, str(path))


def save_index(index: Index, ctx: RepoContext) -> None:
    """Replace the index atomically.

    A failure leaves the previous index file untouched.

    Raises:
        IndexWriteFailedError: On any I/O failure
    """
    text = "".join(f"{p}\n" for p in index.paths)
    try:
        atomic_write_text(ctx.index_path, text)
    except OSError as e:
        raise IndexWriteFailedError(str(ctx.index_path), e.strerror or str(e)) from e
    logger.debug("Index replaced (%d paths)", len(index))
