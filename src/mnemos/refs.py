"""HEAD pointer and remote reference."""

from typing import Optional

from .context import RepoContext
from .errors import RemoteNotConfiguredError
from .utils import atomic_write_text, read_single_line


def read_head(ctx: RepoContext) -> Optional[str]:
    """Return the commit id HEAD points at, or None before the first commit."""
    return read_single_line(ctx.head_path) or None


def write_head(ctx: RepoContext, commit_id: str) -> None:
    """Point HEAD at a commit (atomic replace)."""
    atomic_write_text(ctx.head_path, f"{commit_id}\n")


def validate_remote(location: str) -> str:
    """Check a remote location is usable as an opaque single-line value.

    Raises:
        ValueError: If the location is empty or spans several lines
    """
    location = (location or "").strip()
    if not location:
        raise ValueError("Remote location must not be empty")
    if "\n" in location or "\r" in location or "\x00" in location:
        raise ValueError("Remote location must be a single line")
    return location


def read_remote(ctx: RepoContext) -> str:
    """Return the configured remote location.

    Raises:
        RemoteNotConfiguredError: If no remote has been set
    """
    location = read_single_line(ctx.remote_path)
    if not location:
        raise RemoteNotConfiguredError()
    return location


def write_remote(ctx: RepoContext, location: str) -> str:
    """Validate and store the remote location. Returns the stored value."""
    location = validate_remote(location)
    atomic_write_text(ctx.remote_path, f"{location}\n")
    return location
