"""
fsspec filesystem over execfs entries.

``CommandFileSystem`` exposes the same entries, permissions and process
semantics as a FUSE mount, but to Python code through the fsspec API::

    fs = CommandFileSystem(config)
    fs.cat_file("/hello")          # output of the hello command
    fs.pipe_file("/log", b"data")  # fed to the log command's input
"""

import datetime
import os

import fsspec
from fsspec.spec import AbstractFileSystem

from .access import Principal
from .core import ExecFileSystem

_OPEN_FLAGS = {
    "rb": os.O_RDONLY,
    "wb": os.O_WRONLY,
    "ab": os.O_WRONLY,
    "xb": os.O_WRONLY,
    "r+b": os.O_RDWR,
    "w+b": os.O_RDWR,
}


class CommandFileSystem(AbstractFileSystem):
    """
    Read-only namespace of command-backed files.

    Parameters
    ----------
    config : MountConfig
        The entries to expose
    principal : Principal, optional
        Identity used for access checks; the running process by default
    """

    protocol = "execfs"
    root_marker = "/"
    cachable = False

    def __init__(self, config, principal=None, **storage_options):
        super().__init__(**storage_options)
        self.core = ExecFileSystem(config)
        self.principal = principal or Principal.current()

    @classmethod
    def _strip_protocol(cls, path):
        if isinstance(path, list):
            return [cls._strip_protocol(p) for p in path]
        path = super()._strip_protocol(path)
        return "/" + path.lstrip("/")

    def _info_from_attrs(self, path, attrs):
        is_dir = path == "/"
        return {
            "name": path,
            "size": attrs["st_size"],
            "type": "directory" if is_dir else "file",
            "mode": attrs["st_mode"],
            "uid": attrs["st_uid"],
            "gid": attrs["st_gid"],
            "nlink": attrs["st_nlink"],
            "mtime": attrs["st_mtime"],
        }

    def info(self, path, **kwargs):
        path = self._strip_protocol(path)
        return self._info_from_attrs(path, self.core.getattr(path))

    def ls(self, path, detail=True, **kwargs):
        path = self._strip_protocol(path)
        info = self.info(path)
        if info["type"] == "file":
            entries = [info]
        else:
            entries = [self.info("/" + name) for name in self.core.listdir(path)]
        if detail:
            return entries
        return [e["name"] for e in entries]

    def _open(
        self,
        path,
        mode="rb",
        block_size=None,
        autocommit=True,
        cache_options=None,
        **kwargs,
    ):
        if mode not in _OPEN_FLAGS:
            raise ValueError(f"Unsupported mode {mode!r}")
        path = self._strip_protocol(path)
        return self.core.open(path, _OPEN_FLAGS[mode], self.principal)

    def modified(self, path):
        return datetime.datetime.fromtimestamp(self.info(path)["mtime"])

    def created(self, path):
        return self.modified(path)

    # Structural changes are rejected like they are on a mount.

    def touch(self, path, truncate=True, **kwargs):
        path = self._strip_protocol(path)
        if not self.exists(path):
            self.core.reject("touch", path)
        self.core.noop("utimens", path)

    def mkdir(self, path, create_parents=True, **kwargs):
        self.core.reject("mkdir", self._strip_protocol(path))

    def makedirs(self, path, exist_ok=False):
        path = self._strip_protocol(path)
        if exist_ok and self.isdir(path):
            return
        self.core.reject("mkdir", path)

    def rmdir(self, path):
        self.core.reject("rmdir", self._strip_protocol(path))

    def rm_file(self, path):
        self.core.reject("unlink", self._strip_protocol(path))

    def _rm(self, path):
        self.rm_file(path)

    def rm(self, path, recursive=False, maxdepth=None):
        paths = path if isinstance(path, list) else [path]
        for p in paths:
            self.rm_file(p)

    def cp_file(self, path1, path2, **kwargs):
        self.core.reject("copy", self._strip_protocol(path2))

    def mv(self, path1, path2, recursive=False, maxdepth=None, **kwargs):
        self.core.reject("rename", self._strip_protocol(path1))

    def chmod(self, path, mode):
        self.core.reject("chmod", self._strip_protocol(path))


fsspec.register_implementation("execfs", CommandFileSystem, clobber=True)
