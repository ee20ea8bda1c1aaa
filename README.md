# tpfs

`tpfs` models a handful of small userspace filesystems as plain Python
objects, reads TOSFS disk images, and ships two command-line clients for files
that are driven by ioctls or by poll/select.

Each filesystem object answers the usual operations (`getattr`, `readdir`,
`open`, `read`, `write` and so on) with ordinary Python values. Failures are
raised as `OSError` carrying the matching errno (built by `tpfs.fsbase.fs_error`,
so `ENOENT` arrives as `FileNotFoundError`, `EACCES` as `PermissionError`, and
so on).

The package runs on Linux: several modules use `os.getuid`, `fcntl`, extended
attributes and `os.posix_fallocate`.

## Installing

```
pip install .
pip install .[test]   # adds pytest
```

## Modules

| Module                | Contents |
|-----------------------|----------|
| `tpfs.fsbase`         | `FileAttr` (stat-like attributes with `is_dir()` / `is_file()`) and `fs_error(code, path)` |
| `tpfs.tosfs`          | `parse_image`, `load_image`, `TosfsImage`, `Superblock`, `Inode`, `Dentry`, `TosfsError`, the `format_*` helpers and `format_binary` |
| `tpfs.hello`          | `HelloFilesystem` (path-based) and `HelloLowLevel` (inode-based): a root directory with one read-only file, `/hello` |
| `tpfs.nullfs`         | `NullFilesystem`: the root is a 4 GiB file that reads as zero bytes and accepts and discards writes |
| `tpfs.fioc`           | `FiocFilesystem` with its single file `/fioc`, the growable `FiocBuffer`, `RwArg`, the `ioc` request encoder and the `FIOC_*` request numbers |
| `tpfs.cuse`           | `CuseDevice`, a buffer-backed device answering read, write and the `FIOC_*` ioctls; `parse_cuse_args` and `device_info` for its options |
| `tpfs.fioclient`      | `get_size`, `set_size`, `read_range`, `write_range` on an open descriptor, `parse_command`, and the `fioclient` command |
| `tpfs.fsel`           | `FselFilesystem`: files `/0` to `/F`, each filled one byte at a time by a producer (`produce_step`, `run_producer`) up to ten bytes, drained by `read`, with `poll` notification callbacks |
| `tpfs.fselclient`     | `open_files`, `poll_once`, `format_line` and the `fselclient` command |
| `tpfs.passthrough`    | `Passthrough`: every operation is applied to the same path below a host directory, opening and closing files per call |
| `tpfs.passthrough_fh` | `PassthroughFh`: the same, but `open`/`create` return real descriptors used by `read_fh`, `write_fh`, `ftruncate`, `flush`, `fsync_fh`, `fallocate_fh`, `lock` and `flock`; directories are read through `opendir` / `readdir_handle` / `releasedir` |

## Examples

```python
from tpfs.hello import HelloFilesystem

fs = HelloFilesystem()
fs.readdir("/")              # ['.', '..', 'hello']
fs.read("/hello", 100, 0)    # b'Hello World!\n'
fs.getattr("/missing")       # raises FileNotFoundError
```

```python
from tpfs.fioc import FIOC_GET_SIZE, FIOC_SET_SIZE, FiocFilesystem

fs = FiocFilesystem()
fs.write("/fioc", b"abc", 2)
fs.read("/fioc", 10, 0)              # b'\x00\x00abc'
fs.ioctl("/fioc", FIOC_SET_SIZE, 8)
fs.ioctl("/fioc", FIOC_GET_SIZE)     # 8
```

```python
from tpfs.tosfs import format_superblock, load_image

image = load_image("test_tosfs_files")
print(format_superblock(image.superblock))
print(image.root_dentry.name, [d.name for d in image.root_entries])
```

## Commands

### tosfs-dump

Prints the superblock, the inode table and the first root directory entry of a
TOSFS image. The image defaults to `test_tosfs_files` in the current directory.

```
tosfs-dump [IMAGE]
```

### fioclient

Talks to a file that serves the `FIOC_GET_SIZE`, `FIOC_SET_SIZE`, `FIOC_READ`
and `FIOC_WRITE` ioctls:

```
fioclient FIOC_FILE s [SIZE]      # print the size, or set it to SIZE
fioclient FIOC_FILE r SIZE [OFF]  # read SIZE bytes at OFF (default 0) to stdout
fioclient FIOC_FILE w SIZE [OFF]  # write up to SIZE bytes at OFF (default 0) from stdin
```

Numbers may be decimal, octal (`0` prefix) or hexadecimal (`0x` prefix). Reads
and writes report `transferred N bytes (PREV -> NEW)` on stderr.

### fselclient

Opens the files `0` to `F` in a directory (default: the current one), waits
until some are readable, reads them, and prints one line per round: `X:NN` for
a file that delivered `NN` bytes and `_:` for one that was not ready.

```
fselclient [DIRECTORY] [-n COUNT]
```

Without `-n` it runs until interrupted.

## What the package does not do

The filesystem and device classes are in-process objects: nothing here mounts
them or registers a device with the kernel. `fioclient` and `fselclient`
therefore need files served by something else that answers the same ioctls or
poll behaviour; `FiocFilesystem`, `CuseDevice` and `FselFilesystem` only model
what such a server would do.

## Running the tests

```
pytest
```