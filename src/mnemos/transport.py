"""Remote transport via rsync and ssh.

The commits and objects directories are self-contained, so a remote is just a
location holding copies of both. Transfers are delegated to ``rsync``; remote
directory creation on ``host:path`` locations goes through ``ssh``.
"""

from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple
import logging
import shlex
import subprocess

from .constants import COMMITS_DIR, OBJECTS_DIR
from .errors import TransportError

logger = logging.getLogger(__name__)

TRANSFER_DIRS = (COMMITS_DIR, OBJECTS_DIR)


def split_remote(location: str) -> Tuple[Optional[str], str]:
    """Split ``host:path`` into (host, path). Plain paths give (None, path).

    A colon after the first slash is part of the path, as with rsync.
    """
    head, sep, tail = location.partition(":")
    if sep and head and "/" not in head:
        return head, tail
    return None, location


def join_remote(location: str, name: str) -> str:
    """Append a subdirectory to a remote location, with a trailing slash."""
    return f"{location.rstrip('/')}/{name}/"


class RsyncTransport:
    """Moves the commits and objects directories to and from a remote."""

    def __init__(
        self,
        rsync_command: Sequence[str] = ("rsync", "-av"),
        ssh_command: Sequence[str] = ("ssh",),
        runner: Optional[Callable] = None,
    ):
        self.rsync_command = list(rsync_command)
        self.ssh_command = list(ssh_command)
        self.runner = runner or subprocess.run

    def _run(self, argv: List[str]) -> None:
        command = " ".join(argv)
        logger.debug("Running %s", command)
        try:
            result = self.runner(argv, capture_output=True, text=True, check=False)
        except OSError as e:
            raise TransportError(command, None, str(e)) from e

        if result.returncode != 0:
            error_msg = (result.stderr or "").strip() or (result.stdout or "").strip()
            raise TransportError(command, result.returncode, error_msg)

    def send(self, meta_dir: Path, remote: str) -> None:
        """Copy local commits/ and objects/ to the remote.

        Raises:
            TransportError: If rsync fails or can't be started
        """
        for name in TRANSFER_DIRS:
            self._run(self.rsync_command + [f"{meta_dir / name}/", join_remote(remote, name)])
        logger.info("Sent commits and objects to %s", remote)

    def fetch(self, meta_dir: Path, remote: str) -> None:
        """Copy the remote's commits/ and objects/ into the local store.

        Raises:
            TransportError: If rsync fails or can't be started
        """
        for name in TRANSFER_DIRS:
            (meta_dir / name).mkdir(parents=True, exist_ok=True)
            self._run(self.rsync_command + [join_remote(remote, name), f"{meta_dir / name}/"])
        logger.info("Fetched commits and objects from %s", remote)

    def create(self, location: str) -> None:
        """Create the remote directory layout.

        Raises:
            TransportError: If ssh fails or the local directories can't be made
        """
        host, path = split_remote(location)
        targets = [f"{path.rstrip('/') or '.'}/{name}" for name in TRANSFER_DIRS]

        if host is None:
            for target in targets:
                try:
                    Path(target).mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    raise TransportError(f"mkdir -p {target}", None, str(e)) from e
        else:
            remote_cmd = "mkdir -p " + " ".join(shlex.quote(t) for t in targets)
            self._run(self.ssh_command + [host, remote_cmd])
        logger.info("Created remote %s", location)
