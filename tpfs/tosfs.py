"""Reader for tosfs disk images: superblock, inode table and root directory."""

from __future__ import annotations

import argparse
import struct
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

TOSFS_MAGIC = 0x1B19B10C
TOSFS_BLOCK_SIZE = 4096
TOSFS_SUPERBLOCK = 0
TOSFS_INODE_BLOCK = 1
TOSFS_ROOT_INODE = 1
TOSFS_ROOT_BLOCK = 2
TOSFS_MAX_NAME_LENGTH = 32

_SUPERBLOCK = struct.Struct("<7I")
_INODE = struct.Struct("<2I6H")
_DENTRY = struct.Struct(f"<I{TOSFS_MAX_NAME_LENGTH}s")

TOSFS_INODE_SIZE = _INODE.size
TOSFS_DENTRY_SIZE = _DENTRY.size

_RULE = "=======================\n"


class TosfsError(Exception):
    """Raised when an image is not a valid tosfs image."""


@dataclass(frozen=True)
class Superblock:
    magic: int
    block_bitmap: int
    inode_bitmap: int
    block_size: int
    blocks: int
    inodes: int
    root_inode: int

    @classmethod
    def from_bytes(cls, data: bytes) -> "Superblock":
        if len(data) < _SUPERBLOCK.size:
            raise TosfsError("image too short for a superblock")
        return cls(*_SUPERBLOCK.unpack_from(data))

    def to_bytes(self) -> bytes:
        return _SUPERBLOCK.pack(
            self.magic,
            self.block_bitmap,
            self.inode_bitmap,
            self.block_size,
            self.blocks,
            self.inodes,
            self.root_inode,
        )


@dataclass(frozen=True)
class Inode:
    inode: int
    block_no: int
    uid: int
    gid: int
    mode: int
    perm: int
    size: int
    nlink: int

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0) -> "Inode":
        return cls(*_INODE.unpack_from(data, offset))

    def to_bytes(self) -> bytes:
        return _INODE.pack(
            self.inode,
            self.block_no,
            self.uid,
            self.gid,
            self.mode,
            self.perm,
            self.size,
            self.nlink,
        )


@dataclass(frozen=True)
class Dentry:
    inode: int
    name: str

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0) -> "Dentry":
        inode, raw = _DENTRY.unpack_from(data, offset)
        name = raw.split(b"\0", 1)[0].decode("utf-8", "surrogateescape")
        return cls(inode, name)

    def to_bytes(self) -> bytes:
        raw = self.name.encode("utf-8", "surrogateescape")
        if len(raw) > TOSFS_MAX_NAME_LENGTH:
            raise ValueError(
                f"name longer than {TOSFS_MAX_NAME_LENGTH} bytes: {self.name!r}"
            )
        return _DENTRY.pack(self.inode, raw)


@dataclass(frozen=True)
class TosfsImage:
    """A parsed tosfs image."""

    superblock: Superblock
    inodes: tuple[Inode, ...]
    root_dentry: Dentry
    root_entries: tuple[Dentry, ...]
    data: bytes

    def block(self, number: int) -> bytes:
        """Return the raw contents of block ``number``."""
        start = number * TOSFS_BLOCK_SIZE
        if number < 0 or start >= len(self.data):
            raise TosfsError(f"block {number} is outside the image")
        return self.data[start : start + TOSFS_BLOCK_SIZE]

    @property
    def data_blocks(self) -> bytes:
        return self.data[(TOSFS_ROOT_BLOCK + 1) * TOSFS_BLOCK_SIZE :]


def parse_image(data: bytes) -> TosfsImage:
    """Parse a tosfs image held in memory."""
    data = bytes(data)
    superblock = Superblock.from_bytes(data)
    if superblock.magic != TOSFS_MAGIC:
        raise TosfsError(f"bad magic number {superblock.magic:#x}")
    if len(data) < (TOSFS_ROOT_BLOCK + 1) * TOSFS_BLOCK_SIZE:
        raise TosfsError("image too short for inode and root blocks")
    if superblock.inodes * TOSFS_INODE_SIZE > TOSFS_BLOCK_SIZE:
        raise TosfsError(f"inode count {superblock.inodes} does not fit a block")

    inode_base = TOSFS_INODE_BLOCK * TOSFS_BLOCK_SIZE
    inodes = tuple(
        Inode.from_bytes(data, inode_base + n * TOSFS_INODE_SIZE)
        for n in range(superblock.inodes)
    )

    root_base = TOSFS_ROOT_BLOCK * TOSFS_BLOCK_SIZE
    dentries = [
        Dentry.from_bytes(data, root_base + n * TOSFS_DENTRY_SIZE)
        for n in range(TOSFS_BLOCK_SIZE // TOSFS_DENTRY_SIZE)
    ]
    return TosfsImage(
        superblock=superblock,
        inodes=inodes,
        root_dentry=dentries[0],
        root_entries=tuple(d for d in dentries if d.name),
        data=data,
    )


def load_image(path: str | Path) -> TosfsImage:
    """Read and parse a tosfs image file."""
    return parse_image(Path(path).read_bytes())


def format_binary(value: int, bits: int = 8) -> str:
    """Render the low ``bits`` bits of ``value`` as a string of 0s and 1s."""
    if bits not in (8, 16, 32, 64):
        raise ValueError(f"unsupported width {bits}")
    return format(value & ((1 << bits) - 1), f"0{bits}b")


def format_superblock(superblock: Superblock) -> str:
    return (
        _RULE
        + f"magicnumber: {superblock.magic}\n"
        + f"blockBitmap: {superblock.block_bitmap}\n"
        + f"inodeBitmap: {superblock.inode_bitmap}\n"
        + f"blockSize: {superblock.block_size}\n"
        + f"blocks: {superblock.blocks}\n"
        + f"inodes: {superblock.inodes}\n"
        + _RULE
    )


def format_inodes(inodes: Sequence[Inode] | Iterable[Inode]) -> str:
    inodes = list(inodes)
    parts = [f"{len(inodes)}\n"]
    for inode in inodes:
        parts.append(
            _RULE
            + f"inodenumber:{inode.inode}\n"
            + f"blocknumber:{inode.block_no}\n"
            + f"uid:{inode.uid}\n"
            + f"gid:{inode.gid}\n"
            + f"size:{inode.size}\n"
            + f"nlink:{inode.nlink}\n"
            + _RULE
        )
    return "".join(parts)


def format_root_dentry(dentry: Dentry) -> str:
    return (
        "========================\n"
        "root block:\n"
        f"inode:{dentry.inode}\n"
        f"name:{dentry.name}\n"
    )


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="tosfs-dump", description="Display the structures of a tosfs image."
    )
    parser.add_argument("image", nargs="?", default="test_tosfs_files")
    args = parser.parse_args(argv)

    try:
        image = load_image(args.image)
    except OSError as exc:
        print(f"{args.image}: open: {exc.strerror}", file=sys.stderr)
        return 1
    except TosfsError as exc:
        print(f"{args.image}: {exc}", file=sys.stderr)
        return 1

    sys.stdout.write(format_superblock(image.superblock))
    sys.stdout.write(format_inodes(image.inodes))
    sys.stdout.write(format_root_dentry(image.root_dentry))
    return 0


if __name__ == "__main__":
    sys.exit(main())