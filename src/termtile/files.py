"""File store - content fetch/save for editor panes

Paths are relative to a project root (the workspace cwd or the configured
PROJECT_ROOT); anything that resolves outside that root is refused.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from . import config
from .telemetry import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class OpenedFile:
    """File loaded for an editor tab"""
    path: str
    content: str
    size: int = 0
    extension: str = ""


class FileAccessError(Exception):
    """Base class for file store failures"""


class AccessDenied(FileAccessError):
    """Path escapes the root"""


class InvalidRoot(FileAccessError):
    """Root override is not an existing directory"""


class FileTooLarge(FileAccessError):
    """File or content exceeds MAX_FILE_BYTES"""


class FileMissing(FileAccessError):
    """Path does not exist or is not a regular file"""


class FileIOError(FileAccessError):
    """Filesystem refused the read or write"""


class FileStore(Protocol):
    def read_file(self, path: str, root: str | None = None) -> OpenedFile: ...

    def save_file(self, path: str, content: str, root: str | None = None) -> int: ...


def safe_path(root: str | Path, requested: str) -> Path | None:
    """Resolve ``requested`` under ``root``; None if it leaves the root."""
    base = Path(root).resolve()
    resolved = (base / requested).resolve()
    if resolved != base and base not in resolved.parents:
        return None
    return resolved


class LocalFileStore:
    """FileStore over the local filesystem

    Attributes:
        root: default root when a call passes none
        max_bytes: size limit for reads and writes
    """

    def __init__(self, root: str | None = None, max_bytes: int | None = None):
        self.root = Path(root or config.PROJECT_ROOT).resolve()
        self.max_bytes = config.MAX_FILE_BYTES if max_bytes is None else max_bytes

    def read_file(self, path: str, root: str | None = None) -> OpenedFile:
        """Load a text file.

        Raises:
            AccessDenied, InvalidRoot, FileTooLarge, FileMissing, FileIOError
        """
        full = self._resolve(path, root)
        if not full.is_file():
            raise FileMissing(path)

        try:
            size = full.stat().st_size
            if size > self.max_bytes:
                raise FileTooLarge(f"{path}: {size} bytes")
            content = full.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning(f"[Files] Read failed: {path}: {e}")
            raise FileIOError(f"{path}: {e}") from e
        return OpenedFile(path=path, content=content, size=size, extension=full.suffix[1:])

    def save_file(self, path: str, content: str, root: str | None = None) -> int:
        """Overwrite an existing file.

        Returns:
            number of bytes written

        Raises:
            AccessDenied, InvalidRoot, FileTooLarge, FileMissing, FileIOError
        """
        data = content.encode("utf-8")
        if len(data) > self.max_bytes:
            raise FileTooLarge(f"{path}: {len(data)} bytes")

        full = self._resolve(path, root)
        if not full.is_file():
            raise FileMissing(path)

        try:
            full.write_bytes(data)
        except OSError as e:
            logger.warning(f"[Files] Save failed: {path}: {e}")
            raise FileIOError(f"{path}: {e}") from e
        logger.info(f"[Files] Saved {path} ({len(data)} bytes)")
        return len(data)

    def _resolve(self, path: str, root: str | None) -> Path:
        base = self.root
        if root:
            base = Path(root).resolve()
            if not base.is_dir():
                raise InvalidRoot(root)

        full = safe_path(base, path)
        if full is None:
            logger.warning(f"[Files] Access denied: {path} (root={base})")
            raise AccessDenied(path)
        return full
