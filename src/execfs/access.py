"""
Access rights of a calling principal against an entry.

Rights are decided by the first matching rule: owner bits when the caller's
uid is the mount uid, group bits when the caller's gid is the mount gid,
other bits otherwise. Only the one configured gid is compared; supplementary
groups of the caller are not expanded.
"""

import logging
import os
from typing import NamedTuple

from .exceptions import access_denied

logger = logging.getLogger(__name__)


class Rights(NamedTuple):
    read: bool = False
    write: bool = False
    execute: bool = False

    @classmethod
    def from_bits(cls, bits):
        """Build rights from the three low bits of a permission value (``0o7``)."""
        return cls(bool(bits & 0o4), bool(bits & 0o2), bool(bits & 0o1))

    def to_bits(self):
        return (4 if self.read else 0) | (2 if self.write else 0) | (1 if self.execute else 0)


class Principal(NamedTuple):
    """The identity of the process issuing one request."""

    uid: int
    gid: int

    @classmethod
    def current(cls):
        return cls(os.getuid(), os.getgid())


def rights_for(entry, principal, config):
    """
    Compute the effective rights of ``principal`` on ``entry``.

    Parameters
    ----------
    entry : Entry
        The configured file being accessed
    principal : Principal
        The caller of the request
    config : MountConfig
        Supplies the mount identity the principal is compared against

    Returns
    -------
    Rights
    """
    if principal.uid == config.uid:
        return entry.owner
    if principal.gid == config.gid:
        return entry.group
    return entry.other


def requested_rights(flags):
    """Translate ``open(2)`` flags into the rights they require."""
    accmode = flags & os.O_ACCMODE
    if accmode == os.O_RDONLY:
        return Rights(read=True)
    if accmode == os.O_WRONLY:
        return Rights(write=True)
    return Rights(read=True, write=True)


def open_check(entry, flags, principal, config):
    """
    Validate an open request against the caller's rights.

    The execute bit never takes part. Raises ``PermissionError`` (EACCES)
    when read or write is requested without the matching bit.
    """
    wanted = requested_rights(flags)
    granted = rights_for(entry, principal, config)
    if (wanted.read and not granted.read) or (wanted.write and not granted.write):
        logger.info(
            "Denied %s to uid=%d gid=%d (has %s)",
            entry.path,
            principal.uid,
            principal.gid,
            format_rights(granted),
        )
        raise access_denied("/" + entry.path)
    return granted


def format_rights(rights):
    return (
        ("r" if rights.read else "-")
        + ("w" if rights.write else "-")
        + ("x" if rights.execute else "-")
    )
