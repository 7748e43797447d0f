"""
FUSE transport for execfs.

``ExecOperations`` adapts fusepy's callback interface to ``ExecFileSystem``:
it takes the caller's identity from the FUSE context, keeps the table of
integer file handles the kernel refers to, and otherwise forwards every call.
"""

import itertools
import logging
import threading

from fuse import FUSE, LoggingMixIn, Operations, fuse_get_context

from .access import Principal
from .core import ExecFileSystem
from .exceptions import InvariantError

logger = logging.getLogger(__name__)


class ExecOperations(LoggingMixIn, Operations):
    """fusepy operations serving the entries of one ``MountConfig``."""

    def __init__(self, config, context=fuse_get_context):
        self.fs = ExecFileSystem(config)
        self._context = context
        self._handles = {}
        self._lock = threading.Lock()
        self._next_fh = itertools.count(1)

    def _principal(self):
        uid, gid, _pid = self._context()
        return Principal(uid, gid)

    def _handle(self, fh):
        with self._lock:
            handle = self._handles.get(fh)
        if handle is None:
            logger.error("Unknown file handle %r", fh)
            raise InvariantError(f"unknown file handle {fh}")
        return handle

    # Metadata

    def getattr(self, path, fh=None):
        return self.fs.getattr(path)

    def readdir(self, path, fh):
        # Offsets stay zero: fusepy does not pass the resume offset back in,
        # so libfuse pages the complete listing itself.
        return [".", ".."] + self.fs.listdir(path)

    def statfs(self, path):
        return {"f_bsize": 4096, "f_namemax": 255}

    # Handle life cycle

    def open(self, path, flags):
        handle = self.fs.open(path, flags, self._principal())
        with self._lock:
            fh = next(self._next_fh)
            self._handles[fh] = handle
        logger.debug("Handle %d is %r", fh, handle)
        return fh

    def read(self, path, size, offset, fh):
        return self.fs.read(self._handle(fh), size)

    def write(self, path, data, offset, fh):
        return self.fs.write(self._handle(fh), data)

    def flush(self, path, fh):
        return self.fs.flush(path, self._handle(fh) if fh else None) or 0

    def fsync(self, path, datasync, fh):
        return self.fs.fsync(path, datasync, self._handle(fh) if fh else None) or 0

    def release(self, path, fh):
        with self._lock:
            handle = self._handles.pop(fh, None)
        self.fs.release(path, handle)
        return 0

    # Speculative probes accepted on existing paths

    def access(self, path, amode):
        return self.fs.noop("access", path)

    def opendir(self, path):
        self.fs.noop("opendir", path)
        return 0

    def releasedir(self, path, fh):
        return self.fs.noop("releasedir", path)

    def fsyncdir(self, path, datasync, fh):
        return self.fs.noop("fsyncdir", path)

    def truncate(self, path, length, fh=None):
        return self.fs.noop("truncate", path)

    def utimens(self, path, times=None):
        return self.fs.noop("utimens", path)

    # Namespace changes are never allowed

    def bmap(self, path, blocksize, idx):
        return self.fs.reject("bmap", path)

    def chmod(self, path, mode):
        return self.fs.reject("chmod", path)

    def chown(self, path, uid, gid):
        return self.fs.reject("chown", path)

    def create(self, path, mode, fi=None):
        return self.fs.reject("create", path)

    def link(self, target, source):
        return self.fs.reject("link", target)

    def mkdir(self, path, mode):
        return self.fs.reject("mkdir", path)

    def mknod(self, path, mode, dev):
        return self.fs.reject("mknod", path)

    def readlink(self, path):
        return self.fs.reject("readlink", path)

    def rename(self, old, new):
        return self.fs.reject("rename", old)

    def rmdir(self, path):
        return self.fs.reject("rmdir", path)

    def symlink(self, target, source):
        return self.fs.reject("symlink", target)

    def unlink(self, path):
        return self.fs.reject("unlink", path)

    def setxattr(self, path, name, value, options, position=0):
        return self.fs.reject("setxattr", path)

    def removexattr(self, path, name):
        return self.fs.reject("removexattr", path)

    def getxattr(self, path, name, position=0):
        return self.fs.unsupported("getxattr", path)

    def listxattr(self, path):
        return self.fs.unsupported("listxattr", path)

    def destroy(self, path):
        with self._lock:
            leftover = len(self._handles)
        if leftover:
            logger.warning("Unmounting with %d open handles", leftover)
        logger.info("Unmounted")


def mount(config, mountpoint, foreground=True, allow_other=False, debug=False):
    """
    Mount ``config`` at ``mountpoint`` and serve requests until unmounted.

    Parameters
    ----------
    config : MountConfig
        Entries to expose
    mountpoint : str
        Existing, empty directory
    foreground : bool, default True
        Stay attached to the terminal instead of daemonizing
    allow_other : bool, default False
        Let users other than the mounter access the mount
    debug : bool, default False
        Enable libfuse's own request tracing
    """
    logger.info(
        "Mounting %d entries at %s (uid=%d gid=%d)",
        len(config.entries),
        mountpoint,
        config.uid,
        config.gid,
    )
    options = {"fsname": "execfs", "direct_io": True}
    if allow_other:
        options["allow_other"] = True
    return FUSE(
        ExecOperations(config),
        mountpoint,
        foreground=foreground,
        debug=debug,
        **options,
    )
