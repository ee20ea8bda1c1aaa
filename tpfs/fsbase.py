"""Shared pieces for the in-process filesystem models: attributes and errors."""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass


def fs_error(code: int, path: str | None = None) -> OSError:
    """Build the OSError subclass matching ``code`` (e.g. FileNotFoundError)."""
    if path is None:
        return OSError(code, os.strerror(code))
    return OSError(code, os.strerror(code), path)


@dataclass
class FileAttr:
    """File attributes as a filesystem reports them for a path or inode."""

    mode: int = 0
    nlink: int = 0
    size: int = 0
    uid: int = 0
    gid: int = 0
    ino: int = 0
    blocks: int = 0
    atime: float = 0.0
    mtime: float = 0.0
    ctime: float = 0.0

    def is_dir(self) -> bool:
        return stat.S_ISDIR(self.mode)

    def is_file(self) -> bool:
        return stat.S_ISREG(self.mode)