"""
Mapping between request paths and configured entries.

This module resolves the paths handed in by the transport to either the
mount root or one of the configured entries.
"""

ROOT_PATH = "/"
SEP = "/"


class _Root:
    """Marker returned by ``resolve`` for the mount root."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "ROOT"


ROOT = _Root()


class EntryMapping:
    """
    Resolves request paths against the entry table of a mount.

    Lookup is a linear scan in registry order; the first entry whose path
    equals the request path minus its leading separator wins.
    """

    def __init__(self, config):
        """
        Parameters
        ----------
        config : MountConfig
            The immutable configuration whose entries are searched
        """
        self.config = config

    def resolve(self, path):
        """
        Resolve a request path.

        Parameters
        ----------
        path : str
            The path as received from the transport, e.g. ``"/hello"``

        Returns
        -------
        ROOT, Entry or None
            ``ROOT`` for ``"/"``, the matching entry, or None when nothing
            matches (including any path not starting with ``"/"``)
        """
        if path == ROOT_PATH:
            return ROOT
        if not isinstance(path, str) or not path.startswith(SEP):
            return None
        name = path[len(SEP) :]
        for entry in self.config.entries:
            if entry.path == name:
                return entry
        return None

    def entries_from(self, start=0):
        """Yield ``(index, entry)`` pairs from ``start`` onward in registry order."""
        entries = self.config.entries
        for index in range(max(start, 0), len(entries)):
            yield index, entries[index]
