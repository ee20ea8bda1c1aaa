"""A one-file filesystem whose buffer can be sized and queried through ioctls."""

from __future__ import annotations

import enum
import errno
import os
import stat
import struct
import time
from dataclasses import dataclass

from tpfs.fsbase import FileAttr, fs_error

IOC_NONE = 0
IOC_WRITE = 1
IOC_READ = 2

_NRBITS = 8
_TYPEBITS = 8
_SIZEBITS = 14
_DIRBITS = 2

_NRSHIFT = 0
_TYPESHIFT = _NRSHIFT + _NRBITS
_SIZESHIFT = _TYPESHIFT + _TYPEBITS
_DIRSHIFT = _SIZESHIFT + _SIZEBITS

SIZE_T = struct.Struct("@N")
# offset (off_t), buf (pointer), size, prev_size, new_size
RW_ARG_FORMAT = struct.Struct("@qPNNN")

FUSE_IOCTL_COMPAT = 1 << 0
FIOC_NAME = "fioc"


def ioc(direction: int, type_char: str | int, number: int, size: int) -> int:
    """Encode an ioctl request number the way the kernel's _IOC macro does."""
    code = ord(type_char) if isinstance(type_char, str) else type_char
    for label, value, bits in (
        ("direction", direction, _DIRBITS),
        ("type", code, _TYPEBITS),
        ("number", number, _NRBITS),
        ("size", size, _SIZEBITS),
    ):
        if not 0 <= value < (1 << bits):
            raise ValueError(f"ioctl {label} {value} does not fit in {bits} bits")
    return (
        (direction << _DIRSHIFT)
        | (code << _TYPESHIFT)
        | (number << _NRSHIFT)
        | (size << _SIZESHIFT)
    )


FIOC_GET_SIZE = ioc(IOC_READ, "E", 0, SIZE_T.size)
FIOC_SET_SIZE = ioc(IOC_WRITE, "E", 1, SIZE_T.size)
# These two carry a variable amount of data and do not follow the usual encoding.
FIOC_READ = ioc(IOC_NONE, "E", 2, 0)
FIOC_WRITE = ioc(IOC_NONE, "E", 3, 0)


@dataclass(frozen=True)
class RwArg:
    """Argument of the variable-length read and write ioctls."""

    offset: int = 0
    size: int = 0
    data: bytes = b""
    prev_size: int = 0
    new_size: int = 0


class FiocBuffer:
    """A growable byte buffer; growth fills with zero bytes."""

    def __init__(self, data: bytes = b"") -> None:
        self._data = bytearray(data)

    @property
    def size(self) -> int:
        return len(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __bytes__(self) -> bytes:
        return bytes(self._data)

    def resize(self, new_size: int) -> None:
        if new_size < 0:
            raise ValueError(f"negative size {new_size}")
        if new_size < len(self._data):
            del self._data[new_size:]
        else:
            self._data.extend(bytes(new_size - len(self._data)))

    def expand(self, new_size: int) -> None:
        """Grow to ``new_size`` if smaller; never shrink."""
        if new_size > len(self._data):
            self.resize(new_size)

    def read(self, size: int, offset: int) -> bytes:
        if offset < 0 or size < 0:
            raise ValueError("offset and size must not be negative")
        if offset >= len(self._data):
            return b""
        return bytes(self._data[offset : offset + size])

    def write(self, data: bytes, offset: int) -> int:
        if offset < 0:
            raise ValueError("offset must not be negative")
        end = offset + len(data)
        self.expand(end)
        self._data[offset:end] = data
        return len(data)


class _FileType(enum.Enum):
    NONE = enum.auto()
    ROOT = enum.auto()
    FILE = enum.auto()


def _file_type(path: str) -> _FileType:
    if path == "/":
        return _FileType.ROOT
    if path == "/" + FIOC_NAME:
        return _FileType.FILE
    return _FileType.NONE


class FiocFilesystem:
    """Root directory holding the single file ``/fioc``."""

    def __init__(self, buffer: FiocBuffer | None = None) -> None:
        self.buffer = buffer if buffer is not None else FiocBuffer()

    def _require_file(self, path: str) -> None:
        if _file_type(path) is not _FileType.FILE:
            raise fs_error(errno.EINVAL, path)

    def getattr(self, path: str) -> FileAttr:
        kind = _file_type(path)
        if kind is _FileType.NONE:
            raise fs_error(errno.ENOENT, path)
        now = time.time()
        attr = FileAttr(uid=os.getuid(), gid=os.getgid(), atime=now, mtime=now)
        if kind is _FileType.ROOT:
            attr.mode = stat.S_IFDIR | 0o755
            attr.nlink = 2
        else:
            attr.mode = stat.S_IFREG | 0o644
            attr.nlink = 1
            attr.size = self.buffer.size
        return attr

    def open(self, path: str, flags: int) -> None:
        if _file_type(path) is _FileType.NONE:
            raise fs_error(errno.ENOENT, path)

    def read(self, path: str, size: int, offset: int) -> bytes:
        self._require_file(path)
        return self.buffer.read(size, offset)

    def write(self, path: str, data: bytes, offset: int) -> int:
        self._require_file(path)
        return self.buffer.write(data, offset)

    def truncate(self, path: str, size: int) -> None:
        self._require_file(path)
        self.buffer.resize(size)

    def readdir(self, path: str) -> list[str]:
        if _file_type(path) is not _FileType.ROOT:
            raise fs_error(errno.ENOENT, path)
        return [".", "..", FIOC_NAME]

    def ioctl(self, path: str, cmd: int, data: int | bytes | None = None, flags: int = 0) -> int | None:
        """Handle FIOC_GET_SIZE (returns the size) and FIOC_SET_SIZE (takes it)."""
        self._require_file(path)
        if flags & FUSE_IOCTL_COMPAT:
            raise fs_error(errno.ENOSYS, path)
        if cmd == FIOC_GET_SIZE:
            return self.buffer.size
        if cmd == FIOC_SET_SIZE:
            if data is None:
                raise fs_error(errno.EINVAL, path)
            if isinstance(data, (bytes, bytearray)):
                (data,) = SIZE_T.unpack(bytes(data))
            self.buffer.resize(data)
            return None
        raise fs_error(errno.EINVAL, path)