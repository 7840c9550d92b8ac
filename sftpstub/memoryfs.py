"""
Volatile, process-local filesystem used as the storage behind a fixture.

Storage is delegated to fsspec's `MemoryFileSystem`.  Stock instances of that
class share one class-level store, so every `InMemoryFileSystem` gets a
private store instead: content of one fixture is never visible to another,
even when both are alive at the same time.
"""
import errno
import itertools
import os
import posixpath
import threading

from fsspec.implementations.memory import MemoryFileSystem

from sftpstub.paths import normpath
from sftpstub.util import ClosingContextManager, get_logger

ROOT = "/"

_sequence = itertools.count(1)
_sequence_lock = threading.Lock()


def _next_name(prefix):
    with _sequence_lock:
        return "{}-{}".format(prefix, next(_sequence))


def _error(cls, code, path):
    return cls(code, os.strerror(code), path)


class _IsolatedMemoryFileSystem(MemoryFileSystem):
    # never handed out from fsspec's instance cache
    cachable = False

    def __init__(self, *args, **storage_options):
        super().__init__(*args, **storage_options)
        self.store = {}
        self.pseudo_dirs = [""]


class InMemoryFileSystem(ClosingContextManager):
    """
    A hierarchical filesystem rooted at ``/`` that lives in process memory.

    All paths given to this class must be absolute POSIX paths; they are
    normalised with `posixpath.normpath`, so ``.`` and ``..`` components are
    allowed.  Operations are serialised with a re-entrant lock, which makes
    it safe to share one instance between the SFTP session threads and the
    test thread.

    Errors are reported with the built-in `OSError` subclasses, with
    ``errno`` and ``filename`` set.

    Instances of this class may be used as context managers.
    """

    def __init__(self, name):
        """
        :param str name: a name for log output; should be unique per process
        """
        self.name = name
        self._fs = _IsolatedMemoryFileSystem()
        self._lock = threading.RLock()
        self._closed = False
        self.logger = get_logger("sftpstub.memoryfs")

    def __repr__(self):
        status = "closed" if self._closed else "open"
        return "<sftpstub.InMemoryFileSystem {!r} ({})>".format(
            self.name, status
        )

    @property
    def root_directories(self):
        """The root directories of this filesystem (always just ``/``)."""
        return [ROOT]

    def is_open(self):
        return not self._closed

    def close(self):
        """
        Release all stored content.  Any further operation raises
        `ValueError`.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._fs.store.clear()
            self._fs.pseudo_dirs[:] = [""]
        self.logger.debug("Released filesystem %s", self.name)

    def normalize(self, path):
        """
        Normalise an absolute path; raises `ValueError` for relative paths.
        """
        if not path.startswith(ROOT):
            raise ValueError("Path must be absolute: {!r}".format(path))
        return normpath(path)

    def _check_open(self):
        if self._closed:
            raise ValueError("I/O operation on closed filesystem.")

    def exists(self, path):
        with self._lock:
            self._check_open()
            return self._fs.exists(self.normalize(path))

    def isdir(self, path):
        with self._lock:
            self._check_open()
            return self._fs.isdir(self.normalize(path))

    def isfile(self, path):
        with self._lock:
            self._check_open()
            return self._fs.isfile(self.normalize(path))

    def info(self, path):
        """
        Return ``{"name", "type", "size", "mtime"}`` for ``path``, where
        ``type`` is ``"file"`` or ``"directory"``.

        :raises: ``FileNotFoundError`` -- if nothing exists at ``path``
        """
        with self._lock:
            self._check_open()
            path = self.normalize(path)
            try:
                info = self._fs.info(path)
            except FileNotFoundError:
                raise _error(FileNotFoundError, errno.ENOENT, path)
            mtime = info.get("created")
            if hasattr(mtime, "timestamp"):
                mtime = mtime.timestamp()
            return {
                "name": path,
                "type": info["type"],
                "size": info.get("size") or 0,
                "mtime": mtime,
            }

    def listdir(self, path):
        """
        Return the `info` dicts of the entries directly inside directory
        ``path``, sorted by name.
        """
        with self._lock:
            self._check_open()
            path = self.normalize(path)
            self._require_directory(path)
            entries = []
            for entry in self._fs.ls(path, detail=True):
                name = self.normalize(entry["name"] or ROOT)
                if name == path:
                    continue
                entries.append(self.info(name))
            return sorted(entries, key=lambda e: e["name"])

    def mkdir(self, path):
        """
        Create a single directory.  The parent must exist.
        """
        with self._lock:
            self._check_open()
            path = self.normalize(path)
            if self._fs.exists(path):
                raise _error(FileExistsError, errno.EEXIST, path)
            self._require_directory(posixpath.dirname(path))
            self._fs.mkdir(path, create_parents=False)

    def makedirs(self, path):
        """
        Create a directory and all of its missing ancestors.  Does nothing if
        the directory already exists.
        """
        with self._lock:
            self._check_open()
            path = self.normalize(path)
            current = ROOT
            for part in path.split("/"):
                if not part:
                    continue
                current = posixpath.join(current, part)
                if self._fs.isfile(current):
                    raise _error(NotADirectoryError, errno.ENOTDIR, current)
                if not self._fs.isdir(current):
                    self._fs.mkdir(current, create_parents=False)
                elif current not in self._fs.pseudo_dirs:
                    # implied by deeper content only; make it explicit
                    self._fs.pseudo_dirs.append(current)

    def read_bytes(self, path, offset=0, length=None):
        """
        Read a file, or ``length`` bytes of it starting at ``offset``.
        """
        with self._lock:
            self._check_open()
            path = self.normalize(path)
            self._require_file(path)
            end = None if length is None else offset + length
            return self._fs.cat_file(path, start=offset, end=end)

    def write_bytes(self, path, data):
        """
        Replace the content of file ``path`` with ``data``, creating the file
        if needed.  The parent directory must exist.
        """
        with self._lock:
            self._check_open()
            path = self.normalize(path)
            if self._fs.isdir(path):
                raise _error(IsADirectoryError, errno.EISDIR, path)
            self._require_directory(posixpath.dirname(path))
            self._fs.pipe_file(path, bytes(data))

    def remove(self, path):
        """Delete a regular file."""
        with self._lock:
            self._check_open()
            path = self.normalize(path)
            self._require_file(path)
            self._fs.rm_file(path)

    def rmdir(self, path):
        """Delete an empty directory other than the root."""
        with self._lock:
            self._check_open()
            path = self.normalize(path)
            if path == ROOT:
                raise _error(PermissionError, errno.EACCES, path)
            self._require_directory(path)
            if self._fs.ls(path, detail=False):
                raise _error(OSError, errno.ENOTEMPTY, path)
            self._fs.rmdir(path)

    def rename(self, old_path, new_path, overwrite=False):
        """
        Move a file or a directory tree to ``new_path``.  Unless ``overwrite``
        is set, an existing target is an error; a directory is never
        replaced.
        """
        with self._lock:
            self._check_open()
            old_path = self.normalize(old_path)
            new_path = self.normalize(new_path)
            if not self._fs.exists(old_path):
                raise _error(FileNotFoundError, errno.ENOENT, old_path)
            if old_path == new_path:
                return
            if self._fs.isdir(new_path):
                raise _error(IsADirectoryError, errno.EISDIR, new_path)
            if self._fs.exists(new_path) and not overwrite:
                raise _error(FileExistsError, errno.EEXIST, new_path)
            self._require_directory(posixpath.dirname(new_path))
            if self._fs.isfile(old_path):
                self._fs.pipe_file(new_path, self._fs.cat_file(old_path))
                self._fs.rm_file(old_path)
                return
            if new_path.startswith(old_path + "/"):
                raise _error(OSError, errno.EINVAL, new_path)
            prefix = old_path + "/"
            for key in [k for k in self._fs.store if k.startswith(prefix)]:
                self._fs.store[new_path + key[len(old_path):]] = (
                    self._fs.store.pop(key)
                )
            self._fs.pseudo_dirs[:] = [
                new_path + d[len(old_path):]
                if d == old_path or d.startswith(prefix)
                else d
                for d in self._fs.pseudo_dirs
            ]
            if new_path not in self._fs.pseudo_dirs:
                self._fs.pseudo_dirs.append(new_path)

    def truncate(self, path, size):
        """Cut or zero-extend file ``path`` to ``size`` bytes."""
        with self._lock:
            data = self.read_bytes(path)
            if len(data) >= size:
                data = data[:size]
            else:
                data += b"\x00" * (size - len(data))
            self.write_bytes(path, data)

    def delete_all(self):
        """
        Delete every file and every directory except the root directories.
        """
        with self._lock:
            self._check_open()
            for root in self.root_directories:
                for top, dirs, files in self._fs.walk(root, topdown=False):
                    top = top or ROOT
                    for name in files:
                        self._fs.rm_file(posixpath.join(top, name))
                    for name in dirs:
                        directory = posixpath.join(top, name)
                        # directories only implied by files are gone already
                        if self._fs.exists(directory):
                            self._fs.rmdir(directory)
            self.logger.debug("Deleted all content of %s", self.name)

    def _require_directory(self, path):
        if self._fs.isdir(path):
            return
        if self._fs.exists(path):
            raise _error(NotADirectoryError, errno.ENOTDIR, path)
        raise _error(FileNotFoundError, errno.ENOENT, path)

    def _require_file(self, path):
        if self._fs.isfile(path):
            return
        if self._fs.isdir(path):
            raise _error(IsADirectoryError, errno.EISDIR, path)
        raise _error(FileNotFoundError, errno.ENOENT, path)


class NonClosingFileSystem:
    """
    Decorator that forwards every attribute to the wrapped filesystem except
    `close`, which does nothing.

    SFTP sessions close the filesystem they were given when they end.  Each
    session gets one of these, so the storage shared by all sessions (and by
    the fixture) outlives any single connection.
    """

    def __init__(self, filesystem):
        self._filesystem = filesystem

    def __getattr__(self, name):
        return getattr(self._filesystem, name)

    def __repr__(self):
        return "<sftpstub.NonClosingFileSystem {!r}>".format(self._filesystem)

    @property
    def wrapped(self):
        return self._filesystem

    def close(self):
        pass


def create_filesystem(prefix="sftpstub"):
    """
    Create a new, empty `InMemoryFileSystem` with a process-unique name.

    :param str prefix: prefix of the generated name
    """
    return InMemoryFileSystem(_next_name(prefix))
