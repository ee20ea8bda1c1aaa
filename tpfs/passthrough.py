"""A filesystem that mirrors a directory tree of the host, one call per operation."""

from __future__ import annotations

import errno
import os
import stat

from tpfs.fsbase import FileAttr, fs_error


def _type_attr(st: os.stat_result) -> FileAttr:
    return FileAttr(ino=st.st_ino, mode=stat.S_IFMT(st.st_mode))


class Passthrough:
    """Every path is resolved below ``root`` and handed to the matching system call.

    Files are not kept open between calls: each read or write opens the file,
    transfers the data and closes it again. Failures surface as the ``OSError``
    raised by the underlying call.
    """

    def __init__(self, root: str | os.PathLike[str] = "/") -> None:
        self.root = os.fspath(root)

    def _full(self, path: str) -> str:
        return os.path.join(self.root, path.lstrip("/"))

    def getattr(self, path: str) -> os.stat_result:
        return os.lstat(self._full(path))

    def access(self, path: str, mask: int) -> None:
        full = self._full(path)
        if os.access(full, mask):
            return
        os.stat(full)
        raise fs_error(errno.EACCES, path)

    def readlink(self, path: str) -> str:
        return os.readlink(self._full(path))

    def readdir(self, path: str) -> list[tuple[str, FileAttr]]:
        """List a directory, ``.`` and ``..`` first, with inode and file type."""
        full = self._full(path)
        with os.scandir(full) as iterator:
            found = list(iterator)
        entries = [
            (".", _type_attr(os.lstat(full))),
            ("..", _type_attr(os.lstat(os.path.join(full, os.pardir)))),
        ]
        entries.extend(
            (entry.name, _type_attr(entry.stat(follow_symlinks=False)))
            for entry in found
        )
        return entries

    def mknod(self, path: str, mode: int, rdev: int = 0) -> None:
        full = self._full(path)
        if stat.S_ISREG(mode):
            fd = os.open(full, os.O_CREAT | os.O_EXCL | os.O_WRONLY, stat.S_IMODE(mode))
            os.close(fd)
        elif stat.S_ISFIFO(mode):
            os.mkfifo(full, stat.S_IMODE(mode))
        else:
            os.mknod(full, mode, rdev)

    def mkdir(self, path: str, mode: int) -> None:
        os.mkdir(self._full(path), mode)

    def unlink(self, path: str) -> None:
        os.unlink(self._full(path))

    def rmdir(self, path: str) -> None:
        os.rmdir(self._full(path))

    def symlink(self, target: str, path: str) -> None:
        """Create ``path`` as a symbolic link whose content is ``target`` verbatim."""
        os.symlink(target, self._full(path))

    def rename(self, old: str, new: str) -> None:
        os.rename(self._full(old), self._full(new))

    def link(self, target: str, path: str) -> None:
        os.link(self._full(target), self._full(path), follow_symlinks=False)

    def chmod(self, path: str, mode: int) -> None:
        os.chmod(self._full(path), mode)

    def chown(self, path: str, uid: int, gid: int) -> None:
        os.lchown(self._full(path), uid, gid)

    def truncate(self, path: str, size: int) -> None:
        os.truncate(self._full(path), size)

    def utimens(self, path: str, times: tuple[int, int] | None = None) -> None:
        """Set access and modification times in nanoseconds, not following links."""
        full = self._full(path)
        if times is None:
            os.utime(full, follow_symlinks=False)
        else:
            os.utime(full, ns=times, follow_symlinks=False)

    def open(self, path: str, flags: int) -> None:
        """Check that the file can be opened with ``flags``."""
        os.close(os.open(self._full(path), flags))

    def read(self, path: str, size: int, offset: int) -> bytes:
        fd = os.open(self._full(path), os.O_RDONLY)
        try:
            return os.pread(fd, size, offset)
        finally:
            os.close(fd)

    def write(self, path: str, data: bytes, offset: int) -> int:
        fd = os.open(self._full(path), os.O_WRONLY)
        try:
            return os.pwrite(fd, data, offset)
        finally:
            os.close(fd)

    def statfs(self, path: str) -> os.statvfs_result:
        return os.statvfs(self._full(path))

    def release(self, path: str, fh: int | None = None) -> None:
        """Nothing is held open between calls, so there is nothing to release."""

    def fsync(self, path: str, datasync: bool = False) -> None:
        """Writes go straight to the host file, so there is nothing to flush."""

    def fallocate(self, path: str, mode: int, offset: int, length: int) -> None:
        if mode:
            raise fs_error(errno.EOPNOTSUPP, path)
        fd = os.open(self._full(path), os.O_WRONLY)
        try:
            os.posix_fallocate(fd, offset, length)
        finally:
            os.close(fd)

    def setxattr(self, path: str, name: str, value: bytes, flags: int = 0) -> None:
        os.setxattr(self._full(path), name, value, flags, follow_symlinks=False)

    def getxattr(self, path: str, name: str) -> bytes:
        return os.getxattr(self._full(path), name, follow_symlinks=False)

    def listxattr(self, path: str) -> list[str]:
        return os.listxattr(self._full(path), follow_symlinks=False)

    def removexattr(self, path: str, name: str) -> None:
        os.removexattr(self._full(path), name, follow_symlinks=False)