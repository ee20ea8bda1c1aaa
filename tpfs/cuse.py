"""A character device model backed by a growable buffer, with ioctl access."""

from __future__ import annotations

import dataclasses
import errno
import re
import sys
from dataclasses import dataclass, field
from typing import Sequence

from tpfs.fioc import (
    FIOC_GET_SIZE,
    FIOC_READ,
    FIOC_SET_SIZE,
    FIOC_WRITE,
    FUSE_IOCTL_COMPAT,
    FiocBuffer,
    RwArg,
)
from tpfs.fsbase import fs_error

USAGE = (
    "usage: cusexmp [options]\n"
    "\n"
    "options:\n"
    "    --help|-h             print this help message\n"
    "    --maj=MAJ|-M MAJ      device major number\n"
    "    --min=MIN|-m MIN      device minor number\n"
    "    --name=NAME|-n NAME   device name (mandatory)\n"
    "\n"
)

DEVNAME_PREFIX = "DEVNAME="
_DEVNAME_BUFFER = 128
_MAX_NAME = _DEVNAME_BUFFER - len(DEVNAME_PREFIX) - 1

_LONG_OPTIONS = {"--maj=": "major", "--min=": "minor", "--name=": "dev_name"}
_SHORT_OPTIONS = {"-M": "major", "-m": "minor", "-n": "dev_name"}
_UNSIGNED = re.compile(r"\d+")


@dataclass
class CuseParams:
    major: int = 0
    minor: int = 0
    dev_name: str | None = None
    is_help: bool = False
    extra_args: list[str] = field(default_factory=list)


def _set_option(params: CuseParams, name: str, value: str) -> None:
    if name == "dev_name":
        params.dev_name = value
        return
    if not _UNSIGNED.fullmatch(value):
        raise ValueError(f"invalid number {value!r} for {name}")
    setattr(params, name, int(value))


def parse_cuse_args(argv: Sequence[str] | None = None) -> CuseParams:
    """Parse device options; unrecognised arguments are kept in ``extra_args``.

    ``-h``/``--help`` prints the usage text to stderr and passes ``-ho`` on.
    """
    args = list(sys.argv[1:] if argv is None else argv)
    params = CuseParams()
    remaining = iter(args)
    for arg in remaining:
        if arg == "--":
            params.extra_args.append(arg)
            params.extra_args.extend(remaining)
            break
        if arg in ("-h", "--help"):
            params.is_help = True
            sys.stderr.write(USAGE)
            params.extra_args.append("-ho")
            continue
        long_match = next((p for p in _LONG_OPTIONS if arg.startswith(p)), None)
        if long_match is not None:
            _set_option(params, _LONG_OPTIONS[long_match], arg[len(long_match):])
            continue
        short = arg[:2]
        if short in _SHORT_OPTIONS:
            value = arg[2:]
            if not value:
                value = next(remaining, None)
                if value is None:
                    raise ValueError(f"missing argument after {short}")
            _set_option(params, _SHORT_OPTIONS[short], value)
            continue
        params.extra_args.append(arg)
    return params


def device_info(params: CuseParams) -> list[str]:
    """Return the device info strings; the name is required unless help was asked."""
    if params.is_help:
        return [DEVNAME_PREFIX]
    if params.dev_name is None:
        raise ValueError("device name missing")
    return [DEVNAME_PREFIX + params.dev_name[:_MAX_NAME]]


class CuseDevice:
    """Device whose contents live in a buffer that grows on write."""

    def __init__(self, buffer: FiocBuffer | None = None) -> None:
        self.buffer = buffer if buffer is not None else FiocBuffer()

    def open(self, flags: int) -> None:
        return None

    def read(self, size: int, offset: int) -> bytes:
        return self.buffer.read(size, offset)

    def write(self, data: bytes, offset: int) -> int:
        return self.buffer.write(data, offset)

    def ioctl(self, cmd: int, flags: int, arg: int | RwArg | None = None) -> int | tuple[int, RwArg]:
        """Serve the size and read/write ioctls.

        FIOC_GET_SIZE returns the size, FIOC_SET_SIZE returns 0, and the
        read/write commands return the byte count with the filled-in argument.
        """
        if flags & FUSE_IOCTL_COMPAT:
            raise fs_error(errno.ENOSYS)
        if cmd == FIOC_GET_SIZE:
            return self.buffer.size
        if cmd == FIOC_SET_SIZE:
            if not isinstance(arg, int):
                raise fs_error(errno.EINVAL)
            self.buffer.resize(arg)
            return 0
        if cmd in (FIOC_READ, FIOC_WRITE):
            if not isinstance(arg, RwArg):
                raise fs_error(errno.EINVAL)
            prev_size = self.buffer.size
            if cmd == FIOC_READ:
                data = self.buffer.read(arg.size, arg.offset)
                reply = dataclasses.replace(
                    arg, data=data, prev_size=prev_size, new_size=self.buffer.size
                )
                return len(data), reply
            written = self.buffer.write(arg.data[: arg.size], arg.offset)
            reply = dataclasses.replace(arg, prev_size=prev_size, new_size=self.buffer.size)
            return written, reply
        raise fs_error(errno.EINVAL)