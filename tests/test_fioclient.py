import os

import pytest

from tpfs.fioclient import (
    USAGE,
    Command,
    UsageError,
    get_size,
    main,
    parse_command,
    read_range,
    set_size,
    write_range,
)


@pytest.fixture
def plain_file(tmp_path):
    path = tmp_path / "plain"
    path.write_bytes(b"content")
    return path


def test_parse_get_size():
    cmd = parse_command(["f", "s"])
    assert cmd == Command("f", "s", ())
    assert cmd.param(0) == 0 and cmd.param(1) == 0


def test_parse_lowercases_command():
    assert parse_command(["f", "Read", "5"]).op == "r"


def test_parse_numbers_with_base_prefixes():
    cmd = parse_command(["f", "w", "0x10", "010"])
    assert cmd.params == (16, 8)


def test_parse_decimal():
    assert parse_command(["f", "r", "12", "3"]).params == (12, 3)


@pytest.mark.parametrize(
    "argv",
    [
        ["f"],
        [],
        ["f", "x"],
        ["f", "", "1"],
        ["f", "r", "12abc"],
        ["f", "r", ""],
        ["f", "r", "0x"],
        ["f", "r", "08"],
        ["f", "r", "1", "2", "3"],
    ],
)
def test_parse_rejects(argv):
    with pytest.raises(UsageError):
        parse_command(argv)


def test_main_without_arguments_prints_usage(capsys):
    assert main([]) == 1
    assert capsys.readouterr().err == USAGE


def test_main_missing_file(tmp_path, capsys):
    assert main([str(tmp_path / "missing"), "s"]) == 1
    assert capsys.readouterr().err.startswith("open:")


def test_main_unknown_command(plain_file, capsys):
    assert main([str(plain_file), "q"]) == 1
    assert capsys.readouterr().err == USAGE


def test_main_bad_parameter(plain_file, capsys):
    assert main([str(plain_file), "r", "zz"]) == 1
    assert capsys.readouterr().err == USAGE


def test_main_ioctl_failure(plain_file, capsys):
    assert main([str(plain_file), "s"]) == 1
    assert capsys.readouterr().err.startswith("ioctl:")


def test_ioctls_fail_on_plain_file(plain_file):
    fd = os.open(plain_file, os.O_RDWR)
    try:
        with pytest.raises(OSError):
            get_size(fd)
        with pytest.raises(OSError):
            set_size(fd, 3)
        with pytest.raises(OSError):
            read_range(fd, 4, 0)
        with pytest.raises(OSError):
            write_range(fd, b"abc", 0)
    finally:
        os.close(fd)
    assert plain_file.read_bytes() == b"content"