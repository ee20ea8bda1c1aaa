"""Sixteen pipe-like files filled by a producer and drained by reads, with poll support."""

from __future__ import annotations

import errno
import os
import select
import stat
import sys
import threading
from typing import Callable, TextIO

from tpfs.fsbase import FileAttr, fs_error

FSEL_FILES = 16
FSEL_CNT_MAX = 10
HEX_MAP = "0123456789ABCDEF"
PRODUCER_INTERVAL = 0.25

PollHandle = Callable[[], None]


def path_index(path: str) -> int | None:
    """Return the file index for ``/0`` .. ``/F``, or None for any other path."""
    if len(path) != 2 or path[0] != "/":
        return None
    ch = path[1]
    if ch not in HEX_MAP:
        return None
    return HEX_MAP.index(ch)


class FselFilesystem:
    """Files ``/0`` .. ``/F``, each holding up to ten bytes of its own hex digit.

    Each file may be open only once at a time; its index is the file handle.
    Poll handles are callables invoked once when their file next gets data.
    """

    def __init__(self, out: TextIO | None = None) -> None:
        self._out = out
        self._lock = threading.Lock()
        self._open_mask = 0
        self._counts = [0] * FSEL_FILES
        self._poll_handles: dict[int, PollHandle] = {}
        self._polled_zero = 0
        self._next_index = 0
        self._fill_count = 1

    def _log(self, line: str) -> None:
        out = self._out if self._out is not None else sys.stdout
        out.write(line + "\n")

    def getattr(self, path: str) -> FileAttr:
        if path == "/":
            return FileAttr(mode=stat.S_IFDIR | 0o555, nlink=2)
        idx = path_index(path)
        if idx is None:
            raise fs_error(errno.ENOENT, path)
        return FileAttr(mode=stat.S_IFREG | 0o444, nlink=1, size=self._counts[idx])

    def readdir(self, path: str) -> list[str]:
        if path != "/":
            raise fs_error(errno.ENOENT, path)
        return list(HEX_MAP)

    def open(self, path: str, flags: int) -> int:
        """Open a file read-only and return its handle (the file index)."""
        idx = path_index(path)
        if idx is None:
            raise fs_error(errno.ENOENT, path)
        if flags & os.O_ACCMODE != os.O_RDONLY:
            raise fs_error(errno.EACCES, path)
        with self._lock:
            if self._open_mask & (1 << idx):
                raise fs_error(errno.EBUSY, path)
            self._open_mask |= 1 << idx
        return idx

    def release(self, fh: int) -> None:
        with self._lock:
            self._open_mask &= ~(1 << fh)

    def read(self, fh: int, size: int) -> bytes:
        """Consume up to ``size`` stored bytes of file ``fh``."""
        with self._lock:
            count = self._counts[fh]
            size = min(size, count)
            self._log(f"READ   {fh:X} transferred={size} cnt={count}")
            self._counts[fh] -= size
        return HEX_MAP[fh].encode() * size

    def poll(self, fh: int, handle: PollHandle | None = None) -> int:
        """Return POLLIN if file ``fh`` has data; register ``handle`` for notification."""
        revents = 0
        with self._lock:
            if handle is not None:
                self._poll_handles[fh] = handle
            count = self._counts[fh]
            if count:
                revents |= select.POLLIN
                self._log(f"POLL   {fh:X} cnt={count} polled_zero={self._polled_zero}")
                self._polled_zero = 0
            else:
                self._polled_zero += 1
        return revents

    def produce_step(self) -> list[int]:
        """Add one byte to 1, 2 or 4 files; return the indices that received one."""
        filled: list[int] = []
        to_notify: list[PollHandle] = []
        with self._lock:
            nr = self._fill_count
            stride = FSEL_FILES // nr
            for i in range(nr):
                t = (self._next_index + i * stride) % FSEL_FILES
                if self._counts[t] == FSEL_CNT_MAX:
                    continue
                self._counts[t] += 1
                filled.append(t)
                handle = self._poll_handles.pop(t, None)
                if handle is not None:
                    self._log(f"NOTIFY {t:X}")
                    to_notify.append(handle)
            self._next_index = (self._next_index + 1) % FSEL_FILES
            if self._next_index == 0:
                # cycles through 1, 2 and 4
                self._fill_count = (self._fill_count * 2) % 7
        for handle in to_notify:
            handle()
        return filled

    def run_producer(
        self, stop_event: threading.Event, interval: float = PRODUCER_INTERVAL
    ) -> None:
        """Run producer steps every ``interval`` seconds until ``stop_event`` is set."""
        while not stop_event.is_set():
            self.produce_step()
            stop_event.wait(interval)