"""Content-addressed object store.

Blobs live in a flat directory, one file per object, named by the 64-hex part
of their SHA-256 digest. Objects are write-once: once an object with a given
digest exists, later writes of the same content are no-ops.

Key Features:
- Streaming ingest: content is hashed while it is copied into a temp file,
  so the stored bytes are exactly the bytes the digest was computed from
- Atomic promotion with fsync for durability (temp file + os.replace)
- Objects made read-only (0o444) so working-tree edits can't corrupt them
- Atomic materialization into the working directory (reflink, then copy)
- Digest validation before any path is built from a digest
"""

from __future__ import annotations
import contextlib
import hashlib
import logging
import os
import shutil
import sys
import tempfile
from pathlib import Path
from typing import Iterator, Tuple

from .constants import DEFAULT_CHUNK_SIZE
from .errors import ObjectNotFoundError
from .hashing import DIGEST_SCHEME, is_valid_digest, validate_digest
from .utils import fsync_dir

logger = logging.getLogger(__name__)

_TMP_PREFIX = ".obj-"

# ---- Platform-specific helpers ---------------------------------------------

def _fsync_file(path: Path) -> None:
    """Fsync a file to ensure durability.

    Opens with write permissions to ensure fsync actually works.
    """
    with open(path, "r+b") as f:
        os.fsync(f.fileno())


def _try_reflink(src: Path, dst: Path) -> bool:
    """Attempt to create a reflink (copy-on-write clone).

    Linux-only operation using FICLONE ioctl. Falls back silently on other platforms.

    Returns:
        True if reflink succeeded, False otherwise

    Technical Note:
        Reflinks create a new inode that shares data blocks via COW semantics,
        so the working copy gets its own permissions and edits to it never
        reach the stored object.
    """
    if not sys.platform.startswith("linux"):
        return False

    try:
        import fcntl
        FICLONE = 0x40049409  # Linux ioctl value

        with open(src, "rb") as s, open(dst, "wb") as d:
            fcntl.ioctl(d.fileno(), FICLONE, s.fileno())
        return True
    except (ImportError, OSError):
        return False


# ---- ObjectStore -----------------------------------------------------------

class ObjectStore:
    """Write-once content-addressed blob storage.

    Directory Structure:
        <root>/<full_sha256_hex>

    Attributes:
        root: Object directory (.mnemos/objects)
        chunk_size: Read size used when streaming content
    """

    def __init__(self, root: Path, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.root = Path(root)
        self.chunk_size = chunk_size
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, digest: str) -> Path:
        """Get store path for a digest.

        Raises:
            ValueError: If digest format is invalid
        """
        return self.root / validate_digest(digest)

    def has(self, digest: str) -> bool:
        """Check if object exists. Invalid digests are never present."""
        try:
            return self.path_for(digest).is_file()
        except ValueError:
            return False

    def iter_digests(self) -> Iterator[str]:
        """Yield the digest of every stored object (temp files skipped)."""
        for entry in sorted(self.root.iterdir()):
            if entry.is_file() and not entry.name.startswith("."):
                digest = f"{DIGEST_SCHEME}:{entry.name}"
                if is_valid_digest(digest):
                    yield digest

    def get(self, digest: str) -> bytes:
        """Return an object's bytes.

        Raises:
            ObjectNotFoundError: If no object exists for the digest
        """
        try:
            path = self.path_for(digest)
        except ValueError:
            raise ObjectNotFoundError(digest)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise ObjectNotFoundError(digest)

    def put_bytes(self, data: bytes) -> str:
        """Store in-memory content. Returns its digest (idempotent)."""
        digest, _ = self._store(_iter_bytes(data, self.chunk_size))
        return digest

    def put_file(self, path: Path) -> str:
        """Store a file's content by streaming it. Returns its digest (idempotent)."""
        digest, _ = self.ingest(path)
        return digest

    def ingest(self, path: Path) -> Tuple[str, bool]:
        """Store a file's content and report whether a new object was written.

        Returns:
            (digest, created) where created is False when the object already existed

        Raises:
            FileNotFoundError: If the source disappears before it is opened
            OSError: On any other read/write failure
        """
        with Path(path).open("rb") as f:
            return self._store(iter(lambda: f.read(self.chunk_size), b""))

    def _store(self, chunks) -> Tuple[str, bool]:
        """Copy chunks into a temp object while hashing, then promote.

        Technical Details:
            1. Temp file lives in the object directory (same filesystem for
               atomic rename)
            2. Digest is computed over exactly the bytes written
            3. If the object already exists the temp file is discarded
            4. Otherwise fsync, chmod 0o444, os.replace, fsync directory
        """
        sha256 = hashlib.sha256()
        with tempfile.NamedTemporaryFile(
            prefix=_TMP_PREFIX,
            dir=str(self.root),
            delete=False
        ) as tmp:
            tmppath = Path(tmp.name)
            try:
                for chunk in chunks:
                    sha256.update(chunk)
                    tmp.write(chunk)
                tmp.flush()
                os.fsync(tmp.fileno())
            except BaseException:
                tmp.close()
                tmppath.unlink(missing_ok=True)
                raise

        digest = f"{DIGEST_SCHEME}:{sha256.hexdigest()}"
        dst = self.root / sha256.hexdigest()

        try:
            if dst.exists():
                tmppath.unlink()
                logger.debug("Object already present: %s", digest)
                return digest, False

            # Read-only BEFORE the rename so the object is immutable from
            # the moment it becomes visible
            os.chmod(tmppath, 0o444)
            os.replace(str(tmppath), str(dst))
            fsync_dir(self.root)
        except BaseException:
            with contextlib.suppress(OSError):
                tmppath.unlink()
            raise

        logger.debug("Stored object: %s", digest)
        return digest, True

    def materialize(self, digest: str, dest: Path) -> None:
        """Write an object's content to a working-directory path.

        The destination either keeps its old content or receives the full new
        content; it is never left half-written. Parent directories are created.

        Raises:
            ObjectNotFoundError: If object not in store
            OSError: If the destination can't be written
        """
        if not self.has(digest):
            raise ObjectNotFoundError(digest, str(dest))
        src = self.path_for(digest)

        dest = Path(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)

        tmp = dest.with_name(f".{dest.name}.mnemos-tmp")
        try:
            if _try_reflink(src, tmp):
                logger.debug("Materialized via reflink: %s <- %s", dest, src)
            else:
                shutil.copyfile(src, tmp)
                logger.debug("Materialized via copy: %s <- %s", dest, src)
            # Stored objects are read-only; the working copy must not be
            os.chmod(tmp, 0o644)
            _fsync_file(tmp)
            os.replace(str(tmp), str(dest))
            fsync_dir(dest.parent)
        finally:
            with contextlib.suppress(OSError):
                tmp.unlink()


def _iter_bytes(data: bytes, chunk_size: int):
    for start in range(0, len(data), chunk_size):
        yield data[start:start + chunk_size]
