"""
execfs: a filesystem of files backed by shell commands
======================================================

Each file in an execfs mount is a configured shell command. Reading the file
streams the command's output and writing to it streams into the command's
input, so command line tools can be used wherever a file path is expected.
"""

from .access import Principal, Rights, open_check, rights_for
from .config import Entry, MountConfig, load_config, loads_config
from .core import ExecFileSystem
from .exceptions import ConfigError, SpawnError
from .handle import CommandHandle
from .mapping import ROOT, EntryMapping
from .utils import create_command_fs, create_config_from_dict

__version__ = "0.1.0"

__all__ = [
    "CommandHandle",
    "ConfigError",
    "Entry",
    "EntryMapping",
    "ExecFileSystem",
    "MountConfig",
    "Principal",
    "ROOT",
    "Rights",
    "SpawnError",
    "create_command_fs",
    "create_config_from_dict",
    "load_config",
    "loads_config",
    "open_check",
    "rights_for",
]
