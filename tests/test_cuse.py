import errno

import pytest

from tpfs.cuse import USAGE, CuseDevice, CuseParams, device_info, parse_cuse_args
from tpfs.fioc import (
    FIOC_GET_SIZE,
    FIOC_READ,
    FIOC_SET_SIZE,
    FIOC_WRITE,
    FUSE_IOCTL_COMPAT,
    FiocBuffer,
    RwArg,
)


def test_parse_separate_and_long_options():
    params = parse_cuse_args(["-M", "5", "--min=7", "-n", "mydev"])
    assert (params.major, params.minor, params.dev_name) == (5, 7, "mydev")
    assert params.extra_args == []
    assert params.is_help is False


def test_parse_joined_short_options():
    params = parse_cuse_args(["-M12", "-m3", "-nthing", "--maj=4"])
    assert (params.major, params.minor, params.dev_name) == (4, 3, "thing")


def test_parse_passes_unknown_arguments():
    params = parse_cuse_args(["-f", "--name=d", "-s", "--", "-M", "9"])
    assert params.extra_args == ["-f", "-s", "--", "-M", "9"]
    assert params.major == 0


def test_parse_help(capsys):
    params = parse_cuse_args(["--help"])
    assert params.is_help is True
    assert params.extra_args == ["-ho"]
    assert capsys.readouterr().err == USAGE


@pytest.mark.parametrize("argv", [["-M", "x"], ["--min=-1"], ["-M"], ["--maj="]])
def test_parse_rejects_bad_values(argv):
    with pytest.raises(ValueError):
        parse_cuse_args(argv)


def test_device_info():
    assert device_info(CuseParams(dev_name="fioc")) == ["DEVNAME=fioc"]
    assert device_info(CuseParams(is_help=True)) == ["DEVNAME="]
    with pytest.raises(ValueError):
        device_info(CuseParams())


def test_device_info_truncates_to_buffer():
    (info,) = device_info(CuseParams(dev_name="n" * 500))
    assert len(info) == 127
    assert info.startswith("DEVNAME=nnn")


def test_read_write():
    dev = CuseDevice()
    dev.open(0)
    assert dev.write(b"abc", 2) == 3
    assert dev.read(100, 0) == b"\0\0abc"
    assert dev.read(10, 99) == b""


def test_ioctl_sizes():
    dev = CuseDevice(FiocBuffer(b"abcdef"))
    assert dev.ioctl(FIOC_GET_SIZE, 0) == 6
    assert dev.ioctl(FIOC_SET_SIZE, 0, 2) == 0
    assert dev.read(10, 0) == b"ab"


def test_ioctl_read_reports_sizes():
    dev = CuseDevice(FiocBuffer(b"hello world"))
    count, reply = dev.ioctl(FIOC_READ, 0, RwArg(offset=6, size=100))
    assert reply.data == b"world"
    assert count == len(reply.data)
    assert reply.prev_size == reply.new_size == 11


def test_ioctl_write_grows_buffer():
    dev = CuseDevice(FiocBuffer(b"ab"))
    count, reply = dev.ioctl(FIOC_WRITE, 0, RwArg(offset=4, size=3, data=b"xyz"))
    assert count == 3
    assert reply.prev_size == 2
    assert reply.new_size == dev.buffer.size
    assert dev.read(10, 0) == b"ab\0\0xyz"


def test_ioctl_errors():
    dev = CuseDevice()
    with pytest.raises(OSError) as info:
        dev.ioctl(FIOC_GET_SIZE, FUSE_IOCTL_COMPAT)
    assert info.value.errno == errno.ENOSYS
    with pytest.raises(OSError) as info:
        dev.ioctl(0x1234, 0)
    assert info.value.errno == errno.EINVAL