"""Command-line client that sizes, reads and writes a fioc file through ioctls."""

from __future__ import annotations

import fcntl
import os
import re
import sys
from array import array
from dataclasses import dataclass
from typing import Sequence

from tpfs.fioc import (
    FIOC_GET_SIZE,
    FIOC_READ,
    FIOC_SET_SIZE,
    FIOC_WRITE,
    RW_ARG_FORMAT,
    SIZE_T,
)

USAGE = (
    "Usage: fioclient FIOC_FILE COMMAND\n"
    "\n"
    "COMMANDS\n"
    "  s [SIZE]     : get size if SIZE is omitted, set size otherwise\n"
    "  r SIZE [OFF] : read SIZE bytes @ OFF (dfl 0) and output to stdout\n"
    "  w SIZE [OFF] : write SIZE bytes @ OFF (dfl 0) from stdin\n"
    "\n"
)

_ULONG_MAX = (1 << 64) - 1
_NUMBER = re.compile(r"\s*([+-]?)(0[xX][0-9a-fA-F]+|0[0-7]*|[1-9][0-9]*)")
_MAX_PARAMS = 2


class UsageError(Exception):
    """The command line does not match the usage text."""


@dataclass(frozen=True)
class Command:
    path: str
    op: str
    params: tuple[int, ...] = ()

    def param(self, index: int) -> int:
        return self.params[index] if index < len(self.params) else 0


def _parse_ulong(text: str) -> int:
    match = _NUMBER.fullmatch(text)
    if match is None:
        raise UsageError(f"not a number: {text!r}")
    sign, digits = match.groups()
    if digits[:2] in ("0x", "0X"):
        value = int(digits[2:], 16)
    elif digits.startswith("0"):
        value = int(digits, 8)
    else:
        value = int(digits)
    value = min(value, _ULONG_MAX)
    return (-value) % (1 << 64) if sign == "-" else value


def parse_command(argv: Sequence[str]) -> Command:
    """Parse ``FIOC_FILE COMMAND [PARAM...]``."""
    if len(argv) < 3 and len(argv) != 2:
        raise UsageError("too few arguments")
    if len(argv) < 2:
        raise UsageError("too few arguments")
    path, command, *rest = argv
    if len(rest) > _MAX_PARAMS:
        raise UsageError("too many parameters")
    params = tuple(_parse_ulong(text) for text in rest)
    op = command[:1].lower()
    if op not in ("s", "r", "w"):
        raise UsageError(f"unknown command {command!r}")
    return Command(path, op, params)


def _as_off_t(value: int) -> int:
    return value - (1 << 64) if value >= 1 << 63 else value


def get_size(fd: int) -> int:
    buf = bytearray(SIZE_T.size)
    fcntl.ioctl(fd, FIOC_GET_SIZE, buf, True)
    return SIZE_T.unpack(buf)[0]


def set_size(fd: int, size: int) -> None:
    fcntl.ioctl(fd, FIOC_SET_SIZE, SIZE_T.pack(size))


def _transfer(fd: int, cmd: int, buffer: array, size: int, offset: int) -> tuple[int, int, int]:
    address, _ = buffer.buffer_info()
    arg = bytearray(RW_ARG_FORMAT.pack(_as_off_t(offset), address, size, 0, 0))
    result = fcntl.ioctl(fd, cmd, arg, True)
    _, _, _, prev_size, new_size = RW_ARG_FORMAT.unpack(arg)
    return result, prev_size, new_size


def read_range(fd: int, size: int, offset: int) -> tuple[bytes, int, int]:
    """Read up to ``size`` bytes at ``offset``; return data, previous and new size."""
    buffer = array("B", bytes(size))
    count, prev_size, new_size = _transfer(fd, FIOC_READ, buffer, size, offset)
    return buffer.tobytes()[:count], prev_size, new_size


def write_range(fd: int, data: bytes, offset: int) -> tuple[int, int, int]:
    """Write ``data`` at ``offset``; return the count, previous and new size."""
    buffer = array("B", data)
    return _transfer(fd, FIOC_WRITE, buffer, len(data), offset)


def _usage() -> int:
    sys.stderr.write(USAGE)
    return 1


def main(argv: Sequence[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) < 2:
        return _usage()
    try:
        fd = os.open(args[0], os.O_RDWR)
    except OSError as exc:
        print(f"open: {exc.strerror}", file=sys.stderr)
        return 1
    try:
        try:
            command = parse_command(args)
        except UsageError:
            return _usage()
        try:
            if command.op == "s":
                if not command.params:
                    print(get_size(fd))
                else:
                    set_size(fd, command.params[0])
                return 0
            size, offset = command.param(0), command.param(1)
            if command.op == "r":
                data, prev_size, new_size = read_range(fd, size, offset)
                sys.stdout.flush()
                sys.stdout.buffer.write(data)
                sys.stdout.buffer.flush()
                count = len(data)
            else:
                data = sys.stdin.buffer.read(size)
                print(f"Writing {len(data)} bytes", file=sys.stderr)
                count, prev_size, new_size = write_range(fd, data, offset)
        except OSError as exc:
            print(f"ioctl: {exc.strerror}", file=sys.stderr)
            return 1
        print(f"transferred {count} bytes ({prev_size} -> {new_size})", file=sys.stderr)
        return 0
    finally:
        os.close(fd)


if __name__ == "__main__":
    sys.exit(main())