"""
Tests for the ExecFileSystem core operations.
"""

import errno
import os
import stat
import time
import pytest

from execfs.core import NOOP_OPERATIONS, REJECTED_OPERATIONS, ExecFileSystem
from execfs.exceptions import InvariantError, OperationNotSupported
from execfs.handle import READ, WRITE

from .conftest import GROUP_MEMBER, MOUNT_GID, MOUNT_UID, OTHER, OWNER


def test_getattr_root(fs):
    """The root is a directory readable and searchable by everyone."""
    before = time.time()
    attrs = fs.getattr("/")
    assert stat.S_ISDIR(attrs["st_mode"])
    assert stat.S_IMODE(attrs["st_mode"]) == 0o555
    assert attrs["st_nlink"] == 1
    assert (attrs["st_uid"], attrs["st_gid"]) == (MOUNT_UID, MOUNT_GID)
    assert attrs["st_mtime"] >= before


def test_getattr_entry(fs, config):
    """Entries are regular files with their configured bits and size."""
    attrs = fs.getattr("/both")
    assert stat.S_ISREG(attrs["st_mode"])
    assert stat.S_IMODE(attrs["st_mode"]) == 0o752
    assert stat.S_IMODE(fs.getattr("/hello")["st_mode"]) == 0o440
    assert attrs["st_size"] == config.size
    assert attrs["st_nlink"] == 1
    assert (attrs["st_uid"], attrs["st_gid"]) == (MOUNT_UID, MOUNT_GID)


def test_getattr_not_found(fs):
    """Unknown paths fail with ENOENT."""
    with pytest.raises(FileNotFoundError) as excinfo:
        fs.getattr("/nope")
    assert excinfo.value.errno == errno.ENOENT


def test_readdir(fs):
    """Listing the root yields every entry once, in order, with resume offsets."""
    assert list(fs.readdir("/")) == [("hello", 1), ("sink", 2), ("both", 3)]
    assert list(fs.readdir("/", 1)) == [("sink", 2), ("both", 3)]
    assert list(fs.readdir("/", 3)) == []
    assert fs.listdir() == ["hello", "sink", "both"]


def test_readdir_resumes(fs):
    """A listing can be consumed in pages by passing back the last offset."""
    names = []
    offset = 0
    while True:
        page = list(fs.readdir("/", offset))[:1]
        if not page:
            break
        name, offset = page[0]
        names.append(name)
    assert names == ["hello", "sink", "both"]


def test_readdir_not_a_directory(fs):
    """Only the root can be listed."""
    with pytest.raises(NotADirectoryError) as excinfo:
        list(fs.readdir("/hello"))
    assert excinfo.value.errno == errno.ENOTDIR
    with pytest.raises(FileNotFoundError):
        list(fs.readdir("/nope"))


def test_read_command_output(fs):
    """Reading a read-only open returns the output and then end of stream."""
    handle = fs.open("/hello", os.O_RDONLY, OWNER)
    try:
        assert handle.direction == READ
        assert fs.read(handle, 4096) == b"hello\n"
        assert fs.read(handle, 4096) == b""
    finally:
        assert fs.release("/hello", handle) == 0


def test_read_in_small_chunks(fs):
    """Short reads are fine; the stream is consumed in order."""
    with fs.open("/hello", os.O_RDONLY, GROUP_MEMBER) as handle:
        chunks = [fs.read(handle, 2) for _ in range(4)]
    assert chunks == [b"he", b"ll", b"o\n", b""]


def test_write_delivered_by_release(fs, sink_path):
    """Written bytes have reached the command once release returns."""
    handle = fs.open("/sink", os.O_WRONLY, OWNER)
    assert handle.direction == WRITE
    assert fs.write(handle, b"first ") == 6
    assert fs.write(handle, b"second") == 6
    fs.flush("/sink", handle)
    fs.release("/sink", handle)

    with open(sink_path, "rb") as f:
        assert f.read() == b"first second"


def test_open_read_write_is_write_direction(fs, sink_path):
    """Read-write opens need both rights and pipe into the command."""
    handle = fs.open("/both", os.O_RDWR, OWNER)
    try:
        assert handle.direction == WRITE
        fs.write(handle, b"rw")
        with pytest.raises(OSError) as excinfo:
            fs.read(handle, 10)
        assert excinfo.value.errno == errno.EBADF
    finally:
        fs.release("/both", handle)

    with open(sink_path, "rb") as f:
        assert f.read() == b"rw"


@pytest.mark.parametrize(
    "path, flags, principal",
    [
        ("/hello", os.O_RDONLY, OTHER),
        ("/hello", os.O_WRONLY, OWNER),
        ("/sink", os.O_RDONLY, OWNER),
        ("/sink", os.O_WRONLY, GROUP_MEMBER),
        ("/both", os.O_RDWR, GROUP_MEMBER),
        ("/both", os.O_RDONLY, OTHER),
    ],
)
def test_open_denied(fs, path, flags, principal):
    """Opens beyond the caller's rights fail with EACCES and start nothing."""
    with pytest.raises(PermissionError) as excinfo:
        fs.open(path, flags, principal)
    assert excinfo.value.errno == errno.EACCES


def test_open_allowed_for_other(fs, sink_path):
    """Other bits apply to callers matching neither uid nor gid."""
    handle = fs.open("/both", os.O_WRONLY, OTHER)
    fs.release("/both", handle)


def test_open_not_found(fs):
    with pytest.raises(FileNotFoundError):
        fs.open("/nope", os.O_RDONLY, OWNER)
    with pytest.raises(FileNotFoundError):
        fs.open("hello", os.O_RDONLY, OWNER)


def test_open_root(fs):
    """The root is not an entry, so opening it as a file is not found."""
    with pytest.raises(FileNotFoundError) as excinfo:
        fs.open("/", os.O_RDONLY, OWNER)
    assert excinfo.value.errno == errno.ENOENT
    with pytest.raises(FileNotFoundError):
        fs.open("/", os.O_WRONLY, OWNER)


def test_flush_and_fsync(fs):
    """flush and fsync are no-ops on the root and ENOENT on unknown paths."""
    assert fs.flush("/", None) is None
    assert fs.fsync("/", 0, None) is None
    with pytest.raises(FileNotFoundError):
        fs.flush("/nope", None)
    with pytest.raises(FileNotFoundError):
        fs.fsync("/nope", 1, None)

    handle = fs.open("/sink", os.O_WRONLY, OWNER)
    try:
        fs.write(handle, b"x")
        fs.flush("/sink", handle)
        fs.fsync("/sink", 0, handle)
        fs.fsync("/sink", 1, handle)
    finally:
        fs.release("/sink", handle)


def test_null_handle(fs):
    """Operations on a missing handle report an invariant failure."""
    with pytest.raises(InvariantError) as excinfo:
        fs.read(None, 10)
    assert excinfo.value.errno == errno.EIO
    with pytest.raises(InvariantError):
        fs.flush("/hello", None)
    with pytest.raises(InvariantError):
        fs.release("/hello", None)


@pytest.mark.parametrize("operation", REJECTED_OPERATIONS)
@pytest.mark.parametrize("path", ["/", "/hello", "/nope"])
def test_rejected_operations(fs, config, operation, path):
    """Namespace changes are always refused and leave the entries alone."""
    entries = config.entries
    with pytest.raises(PermissionError) as excinfo:
        fs.reject(operation, path)
    assert excinfo.value.errno == errno.EACCES
    assert fs.config.entries is entries
    assert fs.listdir() == ["hello", "sink", "both"]


@pytest.mark.parametrize("operation", NOOP_OPERATIONS)
def test_noop_operations(fs, operation):
    """Speculative probes succeed on existing paths only."""
    assert fs.noop(operation, "/") == 0
    assert fs.noop(operation, "/hello") == 0
    with pytest.raises(FileNotFoundError):
        fs.noop(operation, "/nope")


def test_unsupported_operations(fs):
    with pytest.raises(OperationNotSupported) as excinfo:
        fs.unsupported("getxattr", "/hello")
    assert excinfo.value.errno == errno.ENOTSUP


def test_independent_handles(fs, sink_path):
    """Several handles on the same entry each get their own process."""
    first = fs.open("/hello", os.O_RDONLY, OWNER)
    second = fs.open("/hello", os.O_RDONLY, OWNER)
    try:
        assert first.pid != second.pid
        assert fs.read(second, 100) == b"hello\n"
        assert fs.read(first, 100) == b"hello\n"
    finally:
        fs.release("/hello", first)
        fs.release("/hello", second)


def test_empty_config():
    """A mount without entries lists nothing."""
    from execfs.config import MountConfig

    fs = ExecFileSystem(MountConfig())
    assert fs.listdir() == []
    assert stat.S_ISDIR(fs.getattr("/")["st_mode"])
