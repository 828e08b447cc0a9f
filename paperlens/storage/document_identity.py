"""
Document identity for saved interpretations.

A document is identified by its path, size and modification time rather
than a content hash, so computing the identity of a large PDF is a single
stat() call. An in-place edit that preserves both size and mtime is not
detected.
"""

import hashlib
import os
from dataclasses import dataclass
from pathlib import Path

KEY_LENGTH = 32


@dataclass(frozen=True)
class DocumentIdentity:
    """
    Stable identity of a document file.

    Attributes:
        path: Absolute path of the file
        size: File size in bytes (None when the file could not be stat'ed)
        mtime_ns: Modification time in nanoseconds (None when unknown)
    """

    path: str
    size: int | None = None
    mtime_ns: int | None = None

    @classmethod
    def from_path(cls, file_path) -> "DocumentIdentity":
        """Build the identity of file_path; falls back to the path alone if stat fails."""
        path = str(Path(file_path).resolve())
        try:
            stat = os.stat(path)
        except OSError:
            return cls(path=path)
        return cls(path=path, size=stat.st_size, mtime_ns=stat.st_mtime_ns)

    @property
    def key(self) -> str:
        """Filesystem-safe digest of path, size and mtime."""
        if self.size is None:
            material = self.path
        else:
            material = f"{self.path}_{self.size}_{self.mtime_ns}"
        return hashlib.sha256(material.encode('utf-8')).hexdigest()[:KEY_LENGTH]
