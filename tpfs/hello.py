"""A read-only filesystem with a single file holding a greeting."""

from __future__ import annotations

import errno
import os
import stat
import struct

from tpfs.fsbase import FileAttr, fs_error

HELLO_STR = b"Hello World!\n"
HELLO_NAME = "hello"
HELLO_PATH = "/" + HELLO_NAME

ROOT_INO = 1
HELLO_INO = 2
ATTR_TIMEOUT = 1.0
ENTRY_TIMEOUT = 1.0

_DIRENT_HEADER = struct.Struct("<QQII")


def _check_read_only(flags: int, path: str | None = None) -> None:
    if flags & os.O_ACCMODE != os.O_RDONLY:
        raise fs_error(errno.EACCES, path)


class HelloFilesystem:
    """Path-based view: ``/`` holds one file, ``/hello``."""

    def getattr(self, path: str) -> FileAttr:
        if path == "/":
            return FileAttr(mode=stat.S_IFDIR | 0o755, nlink=2)
        if path == HELLO_PATH:
            return FileAttr(mode=stat.S_IFREG | 0o444, nlink=1, size=len(HELLO_STR))
        raise fs_error(errno.ENOENT, path)

    def readdir(self, path: str) -> list[str]:
        if path != "/":
            raise fs_error(errno.ENOENT, path)
        return [".", "..", HELLO_NAME]

    def open(self, path: str, flags: int) -> None:
        if path != HELLO_PATH:
            raise fs_error(errno.ENOENT, path)
        _check_read_only(flags, path)

    def read(self, path: str, size: int, offset: int) -> bytes:
        if path != HELLO_PATH:
            raise fs_error(errno.ENOENT, path)
        return HELLO_STR[offset : offset + size]


def _stat_ino(ino: int) -> FileAttr | None:
    if ino == ROOT_INO:
        return FileAttr(mode=stat.S_IFDIR | 0o755, nlink=2, ino=ino)
    if ino == HELLO_INO:
        return FileAttr(mode=stat.S_IFREG | 0o444, nlink=1, size=len(HELLO_STR), ino=ino)
    return None


def _pack_dirents(entries: list[tuple[str, int]]) -> bytes:
    """Encode directory entries in the kernel dirent layout, 8-byte aligned."""
    buf = bytearray()
    for name, ino in entries:
        raw = name.encode()
        length = _DIRENT_HEADER.size + len(raw)
        length += (-length) % 8
        next_off = len(buf) + length
        entry = _DIRENT_HEADER.pack(ino, next_off, len(raw), 0) + raw
        buf += entry.ljust(length, b"\0")
    return bytes(buf)


class HelloLowLevel:
    """Inode-based view of the same filesystem: root is 1, the file is 2."""

    def lookup(self, parent: int, name: str) -> FileAttr:
        if parent != ROOT_INO or name != HELLO_NAME:
            raise fs_error(errno.ENOENT, name)
        attr = _stat_ino(HELLO_INO)
        assert attr is not None
        return attr

    def getattr(self, ino: int) -> FileAttr:
        attr = _stat_ino(ino)
        if attr is None:
            raise fs_error(errno.ENOENT)
        return attr

    def readdir(self, ino: int, size: int, offset: int) -> bytes:
        if ino != ROOT_INO:
            raise fs_error(errno.ENOTDIR)
        buf = _pack_dirents([(".", ROOT_INO), ("..", ROOT_INO), (HELLO_NAME, HELLO_INO)])
        return buf[offset : offset + size]

    def open(self, ino: int, flags: int) -> None:
        if ino != HELLO_INO:
            raise fs_error(errno.EISDIR)
        _check_read_only(flags)

    def read(self, ino: int, size: int, offset: int) -> bytes:
        if ino != HELLO_INO:
            raise ValueError(f"read on inode {ino}, which is not a file")
        return HELLO_STR[offset : offset + size]