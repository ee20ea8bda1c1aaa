"""Client that waits on the sixteen select-test files and reports what each yields."""

from __future__ import annotations

import argparse
import os
import select
import sys
from typing import Sequence

FSEL_FILES = 16
HEX_MAP = "0123456789ABCDEF"
READ_SIZE = 4096


def open_files(directory: str | os.PathLike[str] = ".") -> list[int]:
    """Open ``0`` .. ``F`` in ``directory`` read-only and return their descriptors."""
    fds: list[int] = []
    try:
        for name in HEX_MAP:
            fds.append(os.open(os.path.join(directory, name), os.O_RDONLY))
    except OSError:
        for fd in fds:
            os.close(fd)
        raise
    return fds


def poll_once(fds: Sequence[int]) -> list[int | None]:
    """Wait until some files are readable and read from them.

    Returns, per descriptor, the number of bytes read or None if it was not ready.
    """
    try:
        ready, _, _ = select.select(list(fds), [], [])
    except OSError as exc:
        raise OSError(exc.errno, exc.strerror, "select") from exc
    ready_set = set(ready)
    results: list[int | None] = []
    for fd in fds:
        if fd not in ready_set:
            results.append(None)
            continue
        try:
            results.append(len(os.read(fd, READ_SIZE)))
        except OSError as exc:
            raise OSError(exc.errno, exc.strerror, "read") from exc
    return results


def format_line(results: Sequence[int | None]) -> str:
    """Render one report line (without the newline)."""
    return "".join(
        "_:   " if count is None else f"{index:X}:{count:02d} "
        for index, count in enumerate(results)
    )


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="fselclient", description="Watch the select-test files for data."
    )
    parser.add_argument("directory", nargs="?", default=".")
    parser.add_argument(
        "-n", "--count", type=int, default=None, help="stop after this many rounds"
    )
    args = parser.parse_args(argv)

    try:
        fds = open_files(args.directory)
    except OSError as exc:
        print(f"open: {exc.strerror}", file=sys.stderr)
        return 1
    try:
        rounds = 0
        while args.count is None or rounds < args.count:
            try:
                results = poll_once(fds)
            except OSError as exc:
                print(f"{exc.filename}: {exc.strerror}", file=sys.stderr)
                return 1
            print(format_line(results), flush=True)
            rounds += 1
        return 0
    finally:
        for fd in fds:
            os.close(fd)


if __name__ == "__main__":
    sys.exit(main())