"""A filesystem whose root is a 4 GiB file that reads zeros and discards writes."""

from __future__ import annotations

import errno
import os
import stat
import time

from tpfs.fsbase import FileAttr, fs_error

NULL_SIZE = 1 << 32


def _check_root(path: str) -> None:
    if path != "/":
        raise fs_error(errno.ENOENT, path)


class NullFilesystem:
    """The mount point itself is the only file."""

    def getattr(self, path: str) -> FileAttr:
        _check_root(path)
        now = time.time()
        return FileAttr(
            mode=stat.S_IFREG | 0o644,
            nlink=1,
            uid=os.getuid(),
            gid=os.getgid(),
            size=NULL_SIZE,
            blocks=0,
            atime=now,
            mtime=now,
            ctime=now,
        )

    def truncate(self, path: str, size: int) -> None:
        _check_root(path)

    def open(self, path: str, flags: int) -> None:
        _check_root(path)

    def read(self, path: str, size: int, offset: int) -> bytes:
        _check_root(path)
        if offset >= NULL_SIZE:
            return b""
        return bytes(size)

    def write(self, path: str, data: bytes, offset: int) -> int:
        _check_root(path)
        return len(data)