"""Local collection scanner.

Enumerates the documents the remote index cares about (one fixed file
extension) under a vault directory.
"""

import logging
from pathlib import Path

from vectorlink.exceptions import ScanError
from vectorlink.sync.models import LocalDocument

logger = logging.getLogger(__name__)


class LocalCollectionScanner:
    """Scan a directory tree for documents to sync.

    Paths are reported relative to ``root`` using ``/`` separators, so they
    can be used directly as record names in the remote index.
    """

    def __init__(self, root: Path, extension: str = ".md"):
        """Initialize scanner.

        Args:
            root: Vault directory to scan
            extension: File suffix to include (e.g. ".md")
        """
        self.root = Path(root)
        self.extension = extension if extension.startswith(".") else f".{extension}"

    def scan(self) -> list[LocalDocument]:
        """Enumerate local documents with their last-modified timestamps.

        Returns:
            Documents sorted by path

        Raises:
            ScanError: If the root is missing or the filesystem fails
        """
        if not self.root.is_dir():
            raise ScanError(f"Vault directory does not exist: {self.root}")

        documents = []
        try:
            for file_path in self.root.rglob(f"*{self.extension}"):
                rel = file_path.relative_to(self.root)
                # Skip .obsidian, .trash and other hidden directories
                if any(part.startswith(".") for part in rel.parts[:-1]):
                    continue
                if file_path.suffix != self.extension or not file_path.is_file():
                    continue
                stat_info = file_path.stat()
                documents.append(
                    LocalDocument(
                        path=rel.as_posix(),
                        last_modified=stat_info.st_mtime_ns // 1_000_000,
                    )
                )
        except OSError as e:
            raise ScanError(f"Failed to scan {self.root}: {e}") from e

        documents.sort(key=lambda d: d.path)
        logger.debug(f"Scanned {len(documents)} documents under {self.root}")
        return documents

    def read_bytes(self, path: str) -> bytes:
        """Read a document's content.

        Args:
            path: Path relative to the vault root

        Raises:
            ScanError: If the file cannot be read
        """
        try:
            return (self.root / path).read_bytes()
        except OSError as e:
            raise ScanError(f"Failed to read {path}: {e}") from e
