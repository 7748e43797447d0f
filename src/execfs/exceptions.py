"""
Exceptions raised by execfs.

Every error is an ``OSError`` carrying an errno so the FUSE layer can turn it
straight into a negative return code.
"""

import errno
import os


class ConfigError(ValueError):
    """Raised when a configuration file cannot be turned into a MountConfig."""

    def __init__(self, message, section=None):
        self.section = section
        if section is not None:
            message = f"[{section}] {message}"
        super().__init__(message)


class SpawnError(OSError):
    """Raised when the backing command of an entry could not be started."""

    def __init__(self, command, cause=None):
        self.command = command
        self.cause = cause
        super().__init__(
            errno.EBADF, f"Failed to start command {command!r}: {cause}"
        )


class OperationNotSupported(OSError):
    """Raised for operations that execfs never implements (extended attributes)."""

    def __init__(self, operation, path):
        self.operation = operation
        super().__init__(errno.ENOTSUP, os.strerror(errno.ENOTSUP), path)


class InvariantError(OSError):
    """Raised when internal state is inconsistent, e.g. a handle without a stream."""

    def __init__(self, message):
        super().__init__(errno.EIO, message)


def not_found(path):
    return FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), path)


def access_denied(path):
    return PermissionError(errno.EACCES, os.strerror(errno.EACCES), path)


def not_a_directory(path):
    return NotADirectoryError(errno.ENOTDIR, os.strerror(errno.ENOTDIR), path)
