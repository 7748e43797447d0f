"""
Core operations of an execfs mount.

``ExecFileSystem`` answers the requests a transport receives: attributes and
listings of the flat namespace, the open/read/write/release life cycle of
command-backed files, and the policy for every operation that would change
the namespace.
"""

import logging
import stat
import time

from .access import open_check, requested_rights
from .exceptions import (
    InvariantError,
    OperationNotSupported,
    access_denied,
    not_a_directory,
    not_found,
)
from .handle import READ, WRITE, CommandHandle
from .mapping import ROOT, EntryMapping

logger = logging.getLogger(__name__)

ROOT_MODE = (
    stat.S_IFDIR
    | stat.S_IRUSR
    | stat.S_IXUSR
    | stat.S_IRGRP
    | stat.S_IXGRP
    | stat.S_IROTH
    | stat.S_IXOTH
)

# Operations that would change the namespace or metadata defined by the config.
REJECTED_OPERATIONS = (
    "bmap",
    "chmod",
    "chown",
    "create",
    "link",
    "mkdir",
    "mknod",
    "readlink",
    "removexattr",
    "rename",
    "rmdir",
    "setxattr",
    "symlink",
    "unlink",
)

# Operations generic tools probe speculatively; they succeed on existing paths.
NOOP_OPERATIONS = (
    "access",
    "fsyncdir",
    "opendir",
    "releasedir",
    "truncate",
    "utimens",
)

UNSUPPORTED_OPERATIONS = ("getxattr", "listxattr")


class ExecFileSystem:
    """
    The command-backed filesystem described by a ``MountConfig``.

    Every method takes the request path as the transport saw it. Methods that
    check permissions take the calling ``Principal`` explicitly; nothing here
    reads the caller's identity from ambient state.
    """

    def __init__(self, config):
        """
        Parameters
        ----------
        config : MountConfig
            Entries and mount identity; never modified after construction
        """
        self.config = config
        self.mapping = EntryMapping(config)

    def _resolve(self, path):
        target = self.mapping.resolve(path)
        if target is None:
            raise not_found(path)
        return target

    # Metadata

    def getattr(self, path):
        """
        Return ``stat``-style attributes for ``path`` as a dict.

        Timestamps are the current time on every call; sizes of entries are
        the configured constant since a command's output length is unknown
        until it runs.
        """
        target = self._resolve(path)
        now = time.time()
        attrs = {
            "st_uid": self.config.uid,
            "st_gid": self.config.gid,
            "st_nlink": 1,
            "st_atime": now,
            "st_mtime": now,
            "st_ctime": now,
        }
        if target is ROOT:
            attrs["st_mode"] = ROOT_MODE
            attrs["st_size"] = 0
        else:
            attrs["st_mode"] = target.mode
            attrs["st_size"] = self.config.size
        return attrs

    def readdir(self, path, start=0):
        """
        Yield ``(name, next_offset)`` for the entries of the root.

        Listing starts at index ``start`` so a transport can resume a paged
        listing by passing back the last ``next_offset`` it consumed.
        """
        if self._resolve(path) is not ROOT:
            raise not_a_directory(path)
        for index, entry in self.mapping.entries_from(start):
            yield entry.path, index + 1

    def listdir(self, path="/"):
        return [name for name, _ in self.readdir(path)]

    # Handle life cycle

    def open(self, path, flags, principal):
        """
        Open an entry and start its command.

        Parameters
        ----------
        path : str
            Request path of the entry
        flags : int
            ``open(2)`` flags; only the access mode is looked at
        principal : Principal
            The caller whose rights are checked

        Returns
        -------
        CommandHandle
            Reading for ``O_RDONLY``; writing for ``O_WRONLY`` and ``O_RDWR``.
            A read-write open needs both rights but is still backed by a
            single pipe into the command's input.
        """
        target = self._resolve(path)
        if target is ROOT:
            raise not_found(path)

        open_check(target, flags, principal, self.config)
        wanted = requested_rights(flags)
        direction = WRITE if wanted.write else READ
        logger.info(
            "Opening %s (%s) for %s",
            path,
            target.command,
            "read/write" if wanted.read and wanted.write else direction,
        )
        return CommandHandle.spawn(target, direction)

    def read(self, handle, size):
        return self._require_handle(handle).read(size)

    def write(self, handle, data):
        return self._require_handle(handle).write(data)

    def flush(self, path, handle):
        if self._resolve(path) is ROOT:
            return
        self._require_handle(handle).flush()

    def fsync(self, path, datasync, handle):
        if self._resolve(path) is ROOT:
            return
        self._require_handle(handle).fsync(bool(datasync))

    def release(self, path, handle):
        """Close the pipe of ``handle`` and reap its command."""
        if self.mapping.resolve(path) is None:
            logger.error("release called on unknown path %s", path)
        return self._require_handle(handle).release()

    def _require_handle(self, handle):
        if handle is None:
            logger.error("Operation on a null handle")
            raise InvariantError("null handle")
        return handle

    # Operations outside the read/write model

    def reject(self, operation, path):
        """Refuse an operation that would change the configured namespace."""
        logger.warning("Rejected %s on %s", operation, path)
        raise access_denied(path)

    def unsupported(self, operation, path):
        logger.debug("Unsupported %s on %s", operation, path)
        raise OperationNotSupported(operation, path)

    def noop(self, operation, path):
        """Accept a speculative operation as long as ``path`` exists."""
        logger.debug("No-op %s on %s", operation, path)
        self._resolve(path)
        return 0

