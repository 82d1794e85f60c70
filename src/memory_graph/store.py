"""File store used to persist the graph."""

from __future__ import annotations

import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class FileStore(Protocol):
    """Read-all / write-all access to a text file."""

    def ensure_directory_exists(self, path: Path) -> None: ...

    def read_all(self, path: Path) -> str:
        """Return the full text of ``path``, or "" if it does not exist.

        Any other failure raises OSError. A line that cannot be decoded
        is dropped rather than failing the read.
        """
        ...

    def write_all(self, path: Path, text: str) -> None:
        """Replace the full content of ``path``.

        On failure the previous content must remain readable.
        """
        ...


class LocalFileStore:
    """UTF-8 file store on the local filesystem with atomic writes."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def ensure_directory_exists(self, path: Path) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)

    def read_all(self, path: Path) -> str:
        """Read ``path`` line by line. Undecodable lines are logged and dropped."""
        try:
            data = Path(path).read_bytes()
        except FileNotFoundError:
            return ""

        lines: list[str] = []
        for lineno, raw in enumerate(data.split(b"\n"), start=1):
            try:
                lines.append(raw.decode(self.encoding))
            except UnicodeDecodeError as e:
                logger.warning(f"Skipping undecodable line {lineno} in {path}: {e.reason}")
        return "\n".join(lines)

    def write_all(self, path: Path, text: str) -> None:
        path = Path(path)
        self.ensure_directory_exists(path.parent)

        # Same directory as the target: os.replace must not cross filesystems
        fd, temp_path = tempfile.mkstemp(
            suffix=".tmp",
            prefix=f".{path.name}.",
            dir=path.parent,
        )
        try:
            with os.fdopen(fd, "w", encoding=self.encoding) as f:
                f.write(text)
            os.chmod(temp_path, _target_mode(path))
            os.replace(temp_path, path)
        except BaseException:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

        logger.debug(f"Wrote {len(text)} chars to {path}")


def _target_mode(path: Path) -> int:
    """Permission bits for ``path``: its current mode, or 0666 minus the umask."""
    try:
        return stat.S_IMODE(os.stat(path).st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask
