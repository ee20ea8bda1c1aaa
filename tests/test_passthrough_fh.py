import errno
import fcntl
import os
import stat

import pytest

from tpfs.passthrough_fh import PassthroughFh


@pytest.fixture
def fs(tmp_path):
    return PassthroughFh(tmp_path)


@pytest.fixture
def fd(fs, tmp_path):
    (tmp_path / "a").write_bytes(b"")
    handle = fs.open("/a", os.O_RDWR)
    yield handle
    try:
        os.close(handle)
    except OSError:
        pass


def test_write_read_round_trip(fs, fd):
    data = b"passthrough data"
    assert fs.write_fh(fd, data, 0) == len(data)
    assert fs.read_fh(fd, len(data), 0) == data
    assert fs.fgetattr(fd).st_size == len(data)


def test_open_missing_raises(fs):
    with pytest.raises(FileNotFoundError):
        fs.open("/missing", os.O_RDONLY)


def test_create_exclusive(fs, tmp_path):
    flags = os.O_CREAT | os.O_EXCL | os.O_RDWR
    handle = fs.create("/new", flags, 0o600)
    try:
        assert stat.S_IMODE(fs.fgetattr(handle).st_mode) & 0o600 == 0o600
    finally:
        fs.release("/new", handle)
    with pytest.raises(FileExistsError):
        fs.create("/new", flags, 0o600)


def test_ftruncate(fs, fd):
    fs.write_fh(fd, b"0123456789", 0)
    fs.ftruncate(fd, 3)
    assert fs.read_fh(fd, 100, 0) == b"012"


def test_flush_keeps_descriptor_usable(fs, fd):
    fs.write_fh(fd, b"abc", 0)
    fs.flush(fd)
    assert fs.read_fh(fd, 3, 0) == b"abc"


def test_release_closes_descriptor(fs, fd):
    fs.release("/a", fd)
    with pytest.raises(OSError) as info:
        os.fstat(fd)
    assert info.value.errno == errno.EBADF


def test_fsync_on_closed_descriptor_raises(fs, fd):
    fs.release("/a", fd)
    with pytest.raises(OSError) as info:
        fs.fsync_fh(fd, True)
    assert info.value.errno == errno.EBADF


def test_readdir_handle_lists_and_resumes(fs, tmp_path):
    (tmp_path / "x").write_bytes(b"")
    (tmp_path / "y").mkdir()
    handle = fs.opendir("/")
    all_entries = list(fs.readdir_handle(handle, 0))
    assert {name for name, _, _ in all_entries} == {".", "..", "x", "y"}
    assert [off for _, _, off in all_entries] == list(range(1, len(all_entries) + 1))
    assert handle.offset == len(all_entries)

    first_next = all_entries[0][2]
    resumed = list(fs.readdir_handle(handle, first_next))
    assert [name for name, _, _ in resumed] == [name for name, _, _ in all_entries[1:]]


def test_readdir_handle_stops_where_consumer_stops(fs, tmp_path):
    (tmp_path / "x").write_bytes(b"")
    handle = fs.opendir("/")
    iterator = fs.readdir_handle(handle, 0)
    _, _, next_offset = next(iterator)
    assert handle.offset == next_offset


def test_readdir_handle_after_release_raises(fs):
    handle = fs.opendir("/")
    fs.releasedir(handle)
    with pytest.raises(OSError) as info:
        fs.readdir_handle(handle, 0)
    assert info.value.errno == errno.EBADF


def test_readdir_handle_negative_offset(fs):
    handle = fs.opendir("/")
    with pytest.raises(OSError) as info:
        fs.readdir_handle(handle, -1)
    assert info.value.errno == errno.EINVAL


def test_opendir_missing_raises(fs):
    with pytest.raises(FileNotFoundError):
        fs.opendir("/nowhere")


def test_mknod_fifo(fs, tmp_path):
    fs.mknod("/p", stat.S_IFIFO | 0o600)
    assert stat.S_ISFIFO(os.lstat(tmp_path / "p").st_mode)


def test_fallocate_fh_mode_not_supported(fs, fd):
    with pytest.raises(OSError) as info:
        fs.fallocate_fh(fd, 1, 0, 10)
    assert info.value.errno == errno.EOPNOTSUPP


def test_fallocate_fh_extends(fs, fd):
    fs.fallocate_fh(fd, 0, 0, 64)
    assert fs.fgetattr(fd).st_size == 64


def test_getlk_on_unlocked_file(fs, fd):
    result = fs.lock(fd, fcntl.F_GETLK, fcntl.F_WRLCK, 0, 0)
    assert result[0] == fcntl.F_UNLCK


def test_setlk_and_unlock(fs, fd):
    fs.write_fh(fd, b"data", 0)
    fs.lock(fd, fcntl.F_SETLK, fcntl.F_WRLCK, 0, 4)
    fs.lock(fd, fcntl.F_SETLK, fcntl.F_UNLCK, 0, 4)
    assert fs.lock(fd, fcntl.F_GETLK, fcntl.F_WRLCK, 0, 4)[0] == fcntl.F_UNLCK


def test_lock_unknown_command(fs, fd):
    with pytest.raises(OSError) as info:
        fs.lock(fd, -1, fcntl.F_WRLCK, 0, 0)
    assert info.value.errno == errno.EINVAL


def test_lock_unknown_type(fs, fd):
    with pytest.raises(OSError) as info:
        fs.lock(fd, fcntl.F_SETLK, -1, 0, 0)
    assert info.value.errno == errno.EINVAL


def test_flock_conflict_between_descriptors(fs, fd):
    other = fs.open("/a", os.O_RDONLY)
    try:
        fs.flock(fd, fcntl.LOCK_EX)
        with pytest.raises(BlockingIOError):
            fs.flock(other, fcntl.LOCK_EX | fcntl.LOCK_NB)
        fs.flock(fd, fcntl.LOCK_UN)
        fs.flock(other, fcntl.LOCK_EX | fcntl.LOCK_NB)
        with pytest.raises(BlockingIOError):
            fs.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
    finally:
        os.close(other)