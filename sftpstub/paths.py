"""
Path resolution and the path handle handed out by `get_path`.
"""
import fnmatch
import posixpath

from sftpstub.exceptions import InvalidConfigurationError

SEPARATOR = "/"


class PathResolver:
    """
    Maps user supplied path strings onto absolute filesystem paths.

    A path starting with ``/`` is absolute and used as is; anything else is
    relative to the initial directory, the way a real SFTP server starts a
    user in a home (or chroot) directory.
    """

    def __init__(self, initial_directory=SEPARATOR):
        """
        :param str initial_directory:
            the directory relative paths are resolved against; must be
            absolute

        :raises:
            `.InvalidConfigurationError` -- if ``initial_directory`` is not
            absolute
        """
        validate_initial_directory(initial_directory)
        self.initial_directory = normpath(initial_directory)

    def __repr__(self):
        return "<sftpstub.PathResolver initial_directory={!r}>".format(
            self.initial_directory
        )

    def is_absolute(self, path):
        return path.startswith(SEPARATOR)

    def resolve(self, path):
        """
        Return the absolute, normalised form of ``path``.

        :param str path: absolute or relative path
        :return: absolute path as a `str`
        """
        if not self.is_absolute(path):
            path = posixpath.join(self.initial_directory, path)
        return normpath(path)

    def join(self, first, *more):
        """
        Join path segments with ``/``, skipping empty ones, and resolve the
        result.
        """
        segments = [s for s in (first,) + more if s]
        if not segments:
            return self.initial_directory
        return self.resolve(SEPARATOR.join(segments))


def validate_initial_directory(path):
    """
    :raises:
        `.InvalidConfigurationError` -- if ``path`` is not an absolute path
    """
    if not isinstance(path, str) or not path.startswith(SEPARATOR):
        raise InvalidConfigurationError(
            "Initial directory must be absolute path.", path
        )


def normpath(path):
    """Normalise a POSIX path, collapsing a leading ``//`` as well."""
    path = posixpath.normpath(path)
    if path.startswith("//"):
        path = SEPARATOR + path.lstrip(SEPARATOR)
    return path


class StubPath:
    """
    A location inside a fixture's filesystem.

    Queries on a path go straight to the in-memory filesystem: no SFTP
    connection and no authentication are involved, which makes these
    objects handy for seeding and asserting fixture state.
    """

    def __init__(self, filesystem, path):
        self._filesystem = filesystem
        self._path = normpath(path)

    def __str__(self):
        return self._path

    def __repr__(self):
        return "StubPath({!r})".format(self._path)

    def __eq__(self, other):
        if not isinstance(other, StubPath):
            return NotImplemented
        return (
            self._filesystem is other._filesystem and self._path == other._path
        )

    def __hash__(self):
        return hash((id(self._filesystem), self._path))

    def __truediv__(self, segment):
        return self.joinpath(segment)

    @property
    def name(self):
        return posixpath.basename(self._path)

    @property
    def parent(self):
        return StubPath(self._filesystem, posixpath.dirname(self._path))

    def joinpath(self, *segments):
        path = self._path
        for segment in segments:
            path = posixpath.join(path, segment)
        return StubPath(self._filesystem, path)

    def exists(self):
        return self._filesystem.exists(self._path)

    def is_dir(self):
        return self._filesystem.isdir(self._path)

    def is_file(self):
        return self._filesystem.isfile(self._path)

    def stat(self):
        """
        Return the filesystem's info dict (``name``, ``type``, ``size``,
        ``mtime``) for this path.
        """
        return self._filesystem.info(self._path)

    def iterdir(self):
        """
        Yield the entries of this directory.
        """
        for entry in self._filesystem.listdir(self._path):
            yield StubPath(self._filesystem, entry["name"])

    def glob(self, pattern):
        """
        Yield the entries of this directory whose name matches ``pattern``
        (`fnmatch` syntax, case sensitive).  Only direct children are
        considered.
        """
        for child in self.iterdir():
            if fnmatch.fnmatchcase(child.name, pattern):
                yield child

    def read_bytes(self):
        return self._filesystem.read_bytes(self._path)

    def read_text(self, encoding="utf-8"):
        return self.read_bytes().decode(encoding)
