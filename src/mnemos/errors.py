"""Custom exceptions for mnemos.

This module defines typed exceptions for better error handling and clearer
error messages throughout the application. Structural failures (anything that
would leave committed history inconsistent) are raised; per-file failures in
bulk operations are recorded on the operation result instead.
"""

from typing import Optional


class MnemosError(RuntimeError):
    """Base class for all mnemos errors."""
    pass


# Repository Errors
class RepositoryError(MnemosError):
    """Base class for repository layout errors."""
    pass


class RepositoryNotFoundError(RepositoryError):
    """No .mnemos directory found."""

    def __init__(self, start: str):
        self.start = start
        super().__init__(f"Not inside a mnemos repository (no .mnemos found above {start})")


class RepositoryExistsError(RepositoryError):
    """Repository already initialized at this location."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Repository already initialized in {path}")


class RepositoryLockedError(RepositoryError):
    """Another process holds the repository lock."""

    def __init__(self, lock_path: str, timeout: float):
        self.lock_path = lock_path
        self.timeout = timeout
        super().__init__(
            f"Could not acquire repository lock {lock_path} within {timeout:g}s. "
            f"Another mnemos process may be running."
        )


class ConfigError(MnemosError):
    """Invalid .mnemos/config.yaml."""
    pass


# Tracking Errors
class PathNotFoundError(MnemosError):
    """Track target does not exist on disk."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"File '{path}' does not exist")


class IndexUnreadableError(MnemosError):
    """Index file is missing or corrupt."""

    def __init__(self, index_path: str, reason: str):
        self.index_path = index_path
        self.reason = reason
        super().__init__(
            f"Index {index_path} is unreadable: {reason}. "
            f"Refusing to continue to avoid losing tracked-file history."
        )


class IndexWriteFailedError(MnemosError):
    """Index could not be replaced."""

    def __init__(self, index_path: str, reason: str):
        self.index_path = index_path
        super().__init__(f"Failed to write index {index_path}: {reason}")


# Commit Errors
class CommitError(MnemosError):
    """Base class for commit-related errors."""
    pass


class CommitIdCollisionError(CommitError):
    """A commit with the generated id already exists."""

    def __init__(self, commit_id: str):
        self.commit_id = commit_id
        super().__init__(f"Commit {commit_id} already exists; refusing to overwrite it")


class CommitNotFoundError(CommitError):
    """No commit matches the given reference."""

    def __init__(self, ref: str):
        self.ref = ref
        super().__init__(f"Commit {ref} not found")


class AmbiguousCommitError(CommitError):
    """A commit prefix matches more than one commit."""

    def __init__(self, ref: str, matches: list):
        self.ref = ref
        self.matches = matches
        shown = ", ".join(matches[:3])
        if len(matches) > 3:
            shown += f" and {len(matches) - 3} more"
        super().__init__(f"Commit prefix '{ref}' is ambiguous: {shown}")


class CommitFailedError(CommitError):
    """Commit aborted; HEAD and index left untouched."""

    def __init__(self, commit_id: str, reason: str):
        self.commit_id = commit_id
        super().__init__(
            f"Commit {commit_id} failed: {reason}. HEAD and index were not changed."
        )


# Storage Errors
class ObjectNotFoundError(MnemosError):
    """Object referenced by a tree pointer is absent from the store."""

    def __init__(self, digest: str, path: Optional[str] = None):
        self.digest = digest
        self.path = path
        where = f" (referenced by {path})" if path else ""
        super().__init__(f"Object not found: {digest}{where}")


# Diff Errors
class FileNotFoundInEndpointError(MnemosError):
    """Path absent at one of the diff endpoints."""

    def __init__(self, path: str, endpoint: str):
        self.path = path
        self.endpoint = endpoint
        super().__init__(f"'{path}' does not exist in {endpoint}")


# Remote Errors
class RemoteError(MnemosError):
    """Base class for remote configuration and transport errors."""
    pass


class RemoteNotConfiguredError(RemoteError):
    """No remote location set."""

    def __init__(self):
        super().__init__("No remote configured. Use 'mnemos remote <location>' to set one.")


class TransportError(RemoteError):
    """External transfer tool failed."""

    def __init__(self, command: str, returncode: Optional[int], stderr: str = ""):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() or "no output"
        status = f"exit code {returncode}" if returncode is not None else "could not be started"
        super().__init__(f"'{command}' failed ({status}): {detail}")
