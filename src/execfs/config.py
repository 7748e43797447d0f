"""
Configuration for an execfs mount.

The configuration is read once at startup into a frozen ``MountConfig`` that
is shared, read-only, by every component for the lifetime of the mount.
"""

import configparser
import os
import re
import stat
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .access import Rights
from .exceptions import ConfigError

DEFAULT_SIZE = 4096
DEFAULT_ACCESS = "r--------"

MOUNT_SECTION = "mount"
ENTRY_PREFIX = "entry:"

_SYMBOLIC_ACCESS = re.compile(r"^([r-][w-][x-]){3}$")
_OCTAL_ACCESS = re.compile(r"^0?[0-7]{3}$")


@dataclass(frozen=True)
class Entry:
    """A virtual file: its name in the mount root, its command and its rights."""

    path: str
    command: str
    owner: Rights = Rights(read=True)
    group: Rights = Rights()
    other: Rights = Rights()

    @property
    def permissions(self):
        """The nine permission bits in the platform's ``st_mode`` layout."""
        return (
            (self.owner.to_bits() << 6)
            | (self.group.to_bits() << 3)
            | self.other.to_bits()
        )

    @property
    def mode(self):
        return stat.S_IFREG | self.permissions


@dataclass(frozen=True)
class MountConfig:
    """The immutable entry table plus the identity the mount reports."""

    entries: Tuple[Entry, ...] = ()
    uid: int = field(default_factory=os.getuid)
    gid: int = field(default_factory=os.getgid)
    size: int = DEFAULT_SIZE

    def __post_init__(self):
        # Accept any iterable of entries but always store a tuple.
        object.__setattr__(self, "entries", tuple(self.entries))


def parse_access(value, section=None):
    """
    Parse an access string into owner, group and other rights.

    Parameters
    ----------
    value : str
        Either a nine character symbolic string such as ``rwxr-x---`` or an
        octal value such as ``0644``
    section : str, optional
        Section name used in error messages

    Returns
    -------
    tuple of Rights
        ``(owner, group, other)``
    """
    value = value.strip()
    if _SYMBOLIC_ACCESS.match(value):
        triples = [value[i : i + 3] for i in (0, 3, 6)]
        return tuple(
            Rights(t[0] == "r", t[1] == "w", t[2] == "x") for t in triples
        )
    if _OCTAL_ACCESS.match(value):
        bits = int(value, 8)
        return (
            Rights.from_bits(bits >> 6),
            Rights.from_bits(bits >> 3),
            Rights.from_bits(bits),
        )
    raise ConfigError(f"invalid access {value!r}", section)


def _parse_int(parser, option, default):
    if not parser.has_option(MOUNT_SECTION, option):
        return default
    try:
        value = parser.getint(MOUNT_SECTION, option)
    except ValueError:
        raise ConfigError(
            f"{option} must be an integer", MOUNT_SECTION
        ) from None
    if value < 0:
        raise ConfigError(f"{option} must not be negative", MOUNT_SECTION)
    return value


def _parse_entry(parser, section):
    name = section[len(ENTRY_PREFIX) :].strip()
    if not name:
        raise ConfigError("entry name is empty", section)
    if "/" in name or name in (".", ".."):
        raise ConfigError(f"invalid entry name {name!r}", section)

    command = parser.get(section, "command", fallback="").strip()
    if not command:
        raise ConfigError("command is required", section)

    owner, group, other = parse_access(
        parser.get(section, "access", fallback=DEFAULT_ACCESS), section
    )
    return Entry(name, command, owner, group, other)


def config_from_parser(parser):
    """Build a MountConfig from an already populated ``ConfigParser``."""
    entries = []
    seen = set()
    for section in parser.sections():
        if section == MOUNT_SECTION:
            continue
        if not section.startswith(ENTRY_PREFIX):
            raise ConfigError("unknown section", section)
        entry = _parse_entry(parser, section)
        if entry.path in seen:
            raise ConfigError(f"duplicate entry {entry.path!r}", section)
        seen.add(entry.path)
        entries.append(entry)

    return MountConfig(
        entries=entries,
        uid=_parse_int(parser, "uid", os.getuid()),
        gid=_parse_int(parser, "gid", os.getgid()),
        size=_parse_int(parser, "size", DEFAULT_SIZE),
    )


def _new_parser():
    # Commands may legitimately contain '%', so no interpolation.
    return configparser.ConfigParser(interpolation=None)


def loads_config(text):
    """Parse configuration from a string."""
    parser = _new_parser()
    try:
        parser.read_string(text)
    except configparser.Error as e:
        raise ConfigError(str(e)) from e
    return config_from_parser(parser)


def load_config(path: str, encoding: Optional[str] = "utf-8") -> MountConfig:
    """Read the configuration file at ``path``."""
    parser = _new_parser()
    try:
        with open(path, "r", encoding=encoding) as f:
            parser.read_file(f)
    except (configparser.Error, UnicodeDecodeError) as e:
        raise ConfigError(str(e)) from e
    return config_from_parser(parser)
