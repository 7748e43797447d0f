"""
Process-backed file handles.

A ``CommandHandle`` owns the child process started for one open file and the
single pipe connecting it to execfs: the child's stdout when the file was
opened for reading, its stdin when opened for writing.
"""

import errno
import logging
import os
import subprocess

from .exceptions import InvariantError, SpawnError

logger = logging.getLogger(__name__)

READ = "read"
WRITE = "write"


def _io_error(e, path):
    """Give an OS failure during proxying an errno, defaulting to EIO."""
    if isinstance(e, OSError) and e.errno:
        return e
    return OSError(errno.EIO, f"{os.strerror(errno.EIO)}: {e}", path)


class CommandHandle:
    """
    Wrapper around a running command that exposes it as a one-way stream.

    Handles are created by ``CommandHandle.spawn`` and torn down by
    ``release`` (or by leaving a ``with`` block). Read-direction handles only
    read and write-direction handles only write; anything else fails with
    EBADF.
    """

    def __init__(self, entry, direction):
        self.entry = entry
        self.direction = direction
        self.process = None
        self.stream = None
        self.returncode = None

    @classmethod
    def spawn(cls, entry, direction):
        """
        Start the command of ``entry`` and return a handle on its pipe.

        Parameters
        ----------
        entry : Entry
            The entry whose command is run through the shell
        direction : str
            ``READ`` to capture the command's output, ``WRITE`` to feed its input

        Raises
        ------
        SpawnError
            If the process could not be created
        """
        handle = cls(entry, direction)
        if direction == READ:
            pipes = {"stdin": subprocess.DEVNULL, "stdout": subprocess.PIPE}
        else:
            pipes = {"stdin": subprocess.PIPE}

        try:
            handle.process = subprocess.Popen(entry.command, shell=True, **pipes)
        except (OSError, subprocess.SubprocessError) as e:
            logger.error("Failed to start %r: %s", entry.command, e)
            raise SpawnError(entry.command, e) from e

        if direction == READ:
            handle.stream = handle.process.stdout
        else:
            handle.stream = handle.process.stdin
        logger.debug("Started pid %d for %s", handle.process.pid, entry.path)
        return handle

    @property
    def path(self):
        return "/" + self.entry.path

    @property
    def pid(self):
        return self.process.pid if self.process is not None else None

    @property
    def closed(self):
        return self.stream is None

    def readable(self):
        return self.direction == READ

    def writable(self):
        return self.direction == WRITE

    def seekable(self):
        return False

    def _require_stream(self):
        if self.stream is None or self.process is None:
            logger.error("Handle for %s used without a backing stream", self.path)
            raise InvariantError(f"no backing stream for {self.path}")
        return self.stream

    def _require_direction(self, direction):
        if self.direction != direction:
            raise OSError(
                errno.EBADF,
                f"{self.path} is open for {self.direction}, not {direction}",
            )

    def read(self, size=-1):
        """
        Read up to ``size`` bytes of the command's output.

        Blocks until ``size`` bytes are available or the command closes its
        output. An empty result means end of stream.
        """
        self._require_direction(READ)
        stream = self._require_stream()
        try:
            data = stream.read(size)
        except (OSError, ValueError) as e:
            logger.debug("read from %s failed: %s", self.path, e)
            raise _io_error(e, self.path) from e
        logger.debug("read from %s returned %d bytes", self.path, len(data))
        return data

    def write(self, data):
        """Feed ``data`` to the command's input and return the count accepted."""
        self._require_direction(WRITE)
        stream = self._require_stream()
        try:
            count = stream.write(data)
        except (OSError, ValueError) as e:
            logger.debug("write to %s failed: %s", self.path, e)
            raise _io_error(e, self.path) from e
        logger.debug("write to %s of %d bytes", self.path, count)
        return count

    def flush(self):
        """Push buffered input through to the command."""
        stream = self._require_stream()
        try:
            stream.flush()
        except (OSError, ValueError) as e:
            raise _io_error(e, self.path) from e

    def fsync(self, datasync=False):
        """
        Flush and ask the OS to sync the pipe descriptor.

        Pipes cannot be synced; EINVAL from the OS is taken as success since
        the data has already been handed to the command.
        """
        self.flush()
        sync = os.fdatasync if datasync and hasattr(os, "fdatasync") else os.fsync
        try:
            sync(self.stream.fileno())
        except OSError as e:
            if e.errno != errno.EINVAL:
                raise

    def release(self):
        """
        Close the pipe and reap the command.

        Returns the command's exit status. Called exactly once per handle.
        """
        stream = self._require_stream()
        process = self.process
        try:
            stream.close()
        except OSError as e:
            # A command that exited early leaves unflushed input behind.
            logger.warning("Closing %s failed: %s", self.path, e)
        finally:
            self.stream = None
            self.returncode = process.wait()
        logger.debug(
            "Command for %s (pid %d) exited with %d",
            self.path,
            process.pid,
            self.returncode,
        )
        return self.returncode

    def close(self):
        if self.stream is not None:
            self.release()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def fileno(self):
        return self._require_stream().fileno()

    def __repr__(self):
        return f"CommandHandle({self.path!r}, {self.direction}, pid={self.pid})"
