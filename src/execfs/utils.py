"""
Utility functions for execfs.

This module provides helpers for building configurations and filesystems
without writing a configuration file.
"""

from typing import Dict, Union

from .config import DEFAULT_ACCESS, Entry, MountConfig, load_config, parse_access


def create_config_from_dict(
    commands: Dict[str, Union[str, tuple]], **config_kwargs
) -> MountConfig:
    """
    Create a MountConfig from a dictionary.

    Parameters
    ----------
    commands : dict
        Maps entry names to either a command string, which gets the default
        access, or a ``(command, access)`` tuple
    **config_kwargs : dict
        ``uid``, ``gid`` or ``size`` for the MountConfig

    Returns
    -------
    MountConfig
    """
    entries = []
    for name, value in commands.items():
        if isinstance(value, str):
            command, access = value, DEFAULT_ACCESS
        else:
            command, access = value
        owner, group, other = parse_access(access, f"entry:{name}")
        entries.append(Entry(name.lstrip("/"), command, owner, group, other))
    return MountConfig(entries=entries, **config_kwargs)


def create_command_fs(config=None, principal=None, **config_kwargs):
    """
    Create a CommandFileSystem.

    Parameters
    ----------
    config : MountConfig, dict or str
        A ready configuration, a dict accepted by ``create_config_from_dict``,
        or the path of a configuration file
    principal : Principal, optional
        Identity for access checks; the running process by default
    **config_kwargs : dict
        Passed to ``create_config_from_dict`` when ``config`` is a dict

    Returns
    -------
    CommandFileSystem
    """
    from .commandfs import CommandFileSystem

    if config is None:
        config = MountConfig()
    elif isinstance(config, dict):
        config = create_config_from_dict(config, **config_kwargs)
    elif isinstance(config, str):
        config = load_config(config)

    return CommandFileSystem(config, principal=principal)
