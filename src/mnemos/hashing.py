"""Content hashing for the object store.

Every object is identified by the SHA-256 of its raw bytes, rendered as
``"sha256:<64 hex chars>"``. Identical bytes always produce the identical
identifier, and the 256-bit width makes accidental collisions practically
impossible, so the digest alone is a safe object identity.
"""

from pathlib import Path
from typing import Iterable
import hashlib
import re

from .constants import DEFAULT_CHUNK_SIZE

DIGEST_SCHEME = "sha256"

_HEX64 = re.compile(r"^[0-9a-f]{64}$")


def _format(h) -> str:
    return f"{DIGEST_SCHEME}:{h.hexdigest()}"


def digest_bytes(data: bytes) -> str:
    """Compute the content hash of an in-memory byte string."""
    return _format(hashlib.sha256(data))


def digest_chunks(chunks: Iterable[bytes]) -> str:
    """Fold successive chunks into one running digest.

    Chunk boundaries never affect the result: feeding ``b"ab"`` then
    ``b"c"`` gives the same digest as feeding ``b"abc"`` once.

    Args:
        chunks: Iterable of byte strings

    Returns:
        Digest in format "sha256:xxxx"
    """
    sha256 = hashlib.sha256()
    for chunk in chunks:
        sha256.update(chunk)
    return _format(sha256)


def iter_file_chunks(path: Path, chunk_size: int = DEFAULT_CHUNK_SIZE):
    """Yield a file's content in fixed-size chunks."""
    with Path(path).open("rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            yield chunk


def compute_file_digest(path: Path, chunk_size: int = DEFAULT_CHUNK_SIZE) -> str:
    """Compute SHA256 hash of file contents.

    Simple byte-for-byte hashing - any change invalidates the digest.

    Args:
        path: Path to file to hash
        chunk_size: Bytes read per step

    Returns:
        SHA256 digest in format "sha256:xxxx"
    """
    return digest_chunks(iter_file_chunks(path, chunk_size))


def validate_digest(digest: str) -> str:
    """Validate and extract the hex part of a digest string.

    Args:
        digest: Digest string in format "sha256:hexvalue"

    Returns:
        The 64-character hex string

    Raises:
        ValueError: If digest format is invalid

    Security:
        Object file names come from this hex, so validating it prevents
        path traversal through crafted pointer files.
    """
    if not isinstance(digest, str) or not digest.startswith(f"{DIGEST_SCHEME}:"):
        raise ValueError(f"Invalid digest scheme: {digest!r}")

    hex_part = digest.split(":", 1)[1]
    if not _HEX64.fullmatch(hex_part):
        raise ValueError(f"Invalid sha256 hex (must be 64 hex chars): {hex_part!r}")

    return hex_part


def is_valid_digest(digest: str) -> bool:
    try:
        validate_digest(digest)
    except ValueError:
        return False
    return True


__all__ = [
    "DIGEST_SCHEME",
    "compute_file_digest",
    "digest_bytes",
    "digest_chunks",
    "is_valid_digest",
    "iter_file_chunks",
    "validate_digest",
]
