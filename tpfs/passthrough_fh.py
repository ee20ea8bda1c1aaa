"""Mirror of a host directory tree that keeps real file descriptors per open file."""

from __future__ import annotations

import errno
import fcntl
import itertools
import os
import stat
import struct
from dataclasses import dataclass, field
from typing import Iterator

from tpfs.fsbase import FileAttr, fs_error
from tpfs.passthrough import Passthrough

# struct flock on Linux: l_type, l_whence, l_start, l_len, l_pid
_FLOCK = struct.Struct("@hhqqi4x")

_LOCK_OPERATIONS = {
    fcntl.F_RDLCK: fcntl.LOCK_SH,
    fcntl.F_WRLCK: fcntl.LOCK_EX,
    fcntl.F_UNLCK: fcntl.LOCK_UN,
}


@dataclass
class DirHandle:
    """An open directory: a snapshot of its entries and the current position."""

    path: str
    entries: list[tuple[str, FileAttr]] = field(default_factory=list)
    offset: int = 0
    closed: bool = False


class PassthroughFh(Passthrough):
    """Like :class:`Passthrough`, but ``open`` and ``create`` return descriptors
    that the per-handle operations use directly."""

    def fgetattr(self, fh: int) -> os.stat_result:
        return os.fstat(fh)

    def opendir(self, path: str) -> DirHandle:
        return DirHandle(path=path, entries=self.readdir(path))

    def readdir_handle(
        self, handle: DirHandle, offset: int = 0
    ) -> Iterator[tuple[str, FileAttr, int]]:
        """Yield ``(name, attr, next_offset)`` from ``offset`` on.

        The handle's position follows the entries as they are consumed, so a
        later call can resume from the last ``next_offset`` taken.
        """
        if handle.closed:
            raise fs_error(errno.EBADF, handle.path)
        if offset < 0:
            raise fs_error(errno.EINVAL, handle.path)
        handle.offset = offset
        return self._walk(handle, offset)

    @staticmethod
    def _walk(handle: DirHandle, offset: int) -> Iterator[tuple[str, FileAttr, int]]:
        remaining = itertools.islice(handle.entries, offset, None)
        for next_offset, (name, attr) in enumerate(remaining, start=offset + 1):
            handle.offset = next_offset
            yield name, attr, next_offset

    def releasedir(self, handle: DirHandle) -> None:
        handle.closed = True
        handle.entries = []

    def mknod(self, path: str, mode: int, rdev: int = 0) -> None:
        full = self._full(path)
        if stat.S_ISFIFO(mode):
            os.mkfifo(full, stat.S_IMODE(mode))
        else:
            os.mknod(full, mode, rdev)

    def ftruncate(self, fh: int, size: int) -> None:
        os.ftruncate(fh, size)

    def create(self, path: str, flags: int, mode: int) -> int:
        return os.open(self._full(path), flags, mode)

    def open(self, path: str, flags: int) -> int:
        return os.open(self._full(path), flags)

    def read_fh(self, fh: int, size: int, offset: int) -> bytes:
        return os.pread(fh, size, offset)

    def write_fh(self, fh: int, data: bytes, offset: int) -> int:
        return os.pwrite(fh, data, offset)

    def flush(self, fh: int) -> None:
        """Close a duplicate of ``fh`` so the host sees a close without losing ``fh``."""
        os.close(os.dup(fh))

    def release(self, path: str | None, fh: int) -> None:
        os.close(fh)

    def fsync_fh(self, fh: int, datasync: bool = False) -> None:
        if datasync and hasattr(os, "fdatasync"):
            os.fdatasync(fh)
        else:
            os.fsync(fh)

    def fallocate_fh(self, fh: int, mode: int, offset: int, length: int) -> None:
        if mode:
            raise fs_error(errno.EOPNOTSUPP)
        os.posix_fallocate(fh, offset, length)

    def lock(
        self, fh: int, cmd: int, lock_type: int, start: int = 0, length: int = 0
    ) -> tuple[int, int, int, int] | None:
        """POSIX record locking on ``fh``.

        ``F_GETLK`` returns ``(type, start, length, pid)`` of a conflicting
        lock, with type ``F_UNLCK`` when there is none; ``F_SETLK`` and
        ``F_SETLKW`` take or drop the lock.
        """
        if cmd == fcntl.F_GETLK:
            request = _FLOCK.pack(lock_type, os.SEEK_SET, start, length, 0)
            reply = fcntl.fcntl(fh, fcntl.F_GETLK, request)
            found_type, _, found_start, found_length, pid = _FLOCK.unpack(reply)
            return found_type, found_start, found_length, pid
        if cmd in (fcntl.F_SETLK, fcntl.F_SETLKW):
            try:
                operation = _LOCK_OPERATIONS[lock_type]
            except KeyError:
                raise fs_error(errno.EINVAL) from None
            if cmd == fcntl.F_SETLK and lock_type != fcntl.F_UNLCK:
                operation |= fcntl.LOCK_NB
            fcntl.lockf(fh, operation, length, start, os.SEEK_SET)
            return None
        raise fs_error(errno.EINVAL)

    def flock(self, fh: int, op: int) -> None:
        fcntl.flock(fh, op)