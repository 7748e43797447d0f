"""
Pytest fixtures for execfs tests.
"""

import shutil
import tempfile
import pytest

from execfs.access import Principal, Rights
from execfs.config import Entry, MountConfig
from execfs.core import ExecFileSystem

MOUNT_UID = 4242
MOUNT_GID = 4343

OWNER = Principal(MOUNT_UID, MOUNT_GID)
GROUP_MEMBER = Principal(MOUNT_UID + 1, MOUNT_GID)
OTHER = Principal(MOUNT_UID + 1, MOUNT_GID + 1)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def sink_path(temp_dir):
    """File the write-backed entry copies its input to."""
    return f"{temp_dir}/sink.out"


@pytest.fixture
def config(sink_path):
    """A mount with one readable, one writable and one read-write entry."""
    return MountConfig(
        entries=[
            Entry(
                "hello",
                "printf 'hello\\n'",
                owner=Rights(read=True),
                group=Rights(read=True),
                other=Rights(),
            ),
            Entry(
                "sink",
                f"cat > '{sink_path}'",
                owner=Rights(write=True),
                group=Rights(),
                other=Rights(),
            ),
            Entry(
                "both",
                f"cat > '{sink_path}'",
                owner=Rights(True, True, True),
                group=Rights(True, False, True),
                other=Rights(write=True),
            ),
        ],
        uid=MOUNT_UID,
        gid=MOUNT_GID,
        size=1234,
    )


@pytest.fixture
def fs(config):
    """Core filesystem over the sample config."""
    return ExecFileSystem(config)
