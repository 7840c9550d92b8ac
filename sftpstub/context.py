"""
The fixture: an in-memory SFTP server scoped to a block of test code.
"""
import contextlib
import posixpath

from sftpstub.auth import PasswordAuthenticator
from sftpstub.exceptions import ContextClosedError, InvalidConfigurationError
from sftpstub.listener import DEFAULT_HOST, SFTPListener
from sftpstub.memoryfs import create_filesystem
from sftpstub.paths import PathResolver, StubPath, validate_initial_directory
from sftpstub.util import ClosingContextManager, get_logger

MIN_PORT = 0
MAX_PORT = 65535
DEFAULT_ENCODING = "utf-8"


def validate_port(port):
    """
    :raises:
        `.InvalidConfigurationError` -- if ``port`` is not an int between
        0 and 65535
    """
    if (
        isinstance(port, bool)
        or not isinstance(port, int)
        or not MIN_PORT <= port <= MAX_PORT
    ):
        raise InvalidConfigurationError(
            "Port cannot be set to {} because only ports between {} and {} "
            "are valid.".format(port, MIN_PORT, MAX_PORT),
            port,
        )


class SFTPServerTestContext(ClosingContextManager):
    """
    A running stub SFTP server plus the in-memory filesystem it serves.

    Contexts are not created directly; `with_sftp_server` (or
    `run_with_sftp_server`) creates one, starts its server and closes it
    when the block ends::

        with with_sftp_server() as server:
            server.add_user("alice", "secret")
            server.put_file("/inbox/order.csv", "id,qty\\n1,3\\n")
            run_code_under_test(port=server.port)
            assert server.exists_file("/outbox/order.ack")

    Everything a client uploads over SFTP is visible through the file
    helpers of this class, and vice versa.  Once the context is closed all
    of them raise `.ContextClosedError`.

    Instances of this class may be used as context managers.
    """

    def __init__(self, filesystem, initial_directory="/", host=DEFAULT_HOST):
        """
        :param filesystem: the `.InMemoryFileSystem` to serve
        :param str initial_directory:
            directory relative paths are resolved against (absolute)
        :param str host: address the server binds

        :raises:
            `.InvalidConfigurationError` -- if ``initial_directory`` is not
            absolute
        """
        self._resolver = PathResolver(initial_directory)
        self._filesystem = filesystem
        self._authenticator = PasswordAuthenticator()
        self._host = host
        self._server = None
        self._closed = False
        self.logger = get_logger("sftpstub.context")

    def __repr__(self):
        return "<sftpstub.SFTPServerTestContext {!r} {!r}>".format(
            self._filesystem, self._server
        )

    def _check_not_closed(self, operation):
        if self._closed:
            raise ContextClosedError(operation)

    def start(self, port=0):
        """
        Start the SFTP server on ``port`` (``0`` picks a free port).  A
        server that is already running is stopped first.
        """
        self._check_not_closed("start server")
        validate_port(port)
        if self._server is not None:
            self._server.close()
            self._server = None
        server = SFTPListener(
            self._filesystem,
            self._authenticator,
            resolver=self._resolver,
            host=self._host,
            port=port,
        )
        server.start()
        self._server = server

    def close(self):
        """
        Stop the server and mark this context as closed.  Calling it again
        does nothing.
        """
        if self._closed:
            return
        self._closed = True
        if self._server is not None:
            self._server.close()
        self.logger.debug("Closed %r", self)

    @property
    def closed(self):
        return self._closed

    @property
    def port(self):
        """
        The port the SFTP server listens on.

        Assigning a new port restarts the server on that port; files and
        users are kept.  By the time the assignment returns the old port is
        released and the new one is accepting connections.
        """
        self._check_not_closed("get port")
        if self._server is None:
            return None
        return self._server.port

    @port.setter
    def port(self, port):
        self._check_not_closed("set port")
        old = self._server.port if self._server is not None else None
        self.start(port)
        self.logger.info(
            "Moved SFTP server from port %s to %d", old, self._server.port
        )

    @property
    def host(self):
        return self._host

    @property
    def initial_directory(self):
        return self._resolver.initial_directory

    def add_user(self, username, password):
        """
        Register a username with its password.  After registering a username
        it is only possible to connect to the server with one of the
        registered username/password pairs.

        If `add_user` is called multiple times with the same username but
        different passwords then the last password is effective.

        :param str username: the username
        :param str password: the password for ``username``
        :return: this context, so calls can be chained
        """
        self._check_not_closed("add user")
        self._authenticator.add(username, password)
        return self

    def put_file(self, path, content, encoding=DEFAULT_ENCODING):
        """
        Put a file into the server's filesystem.  Missing parent directories
        are created, an existing file is overwritten.

        :param str path: absolute, or relative to the initial directory
        :param content:
            the file's content: a `str` (encoded with ``encoding``), a
            bytes-like object, or a binary file-like object to read from
        :param str encoding: encoding of ``content`` if it is a `str`
        """
        self._check_not_closed("upload file")
        if isinstance(content, str):
            data = content.encode(encoding)
        elif hasattr(content, "read"):
            data = content.read()
        else:
            data = bytes(content)
        path = self._resolver.resolve(path)
        directory = posixpath.dirname(path)
        if directory not in self._filesystem.root_directories:
            self._filesystem.makedirs(directory)
        self._filesystem.write_bytes(path, data)

    def create_directory(self, path):
        """
        Create a directory and any missing parent directories.  Nothing
        happens if it exists already.

        :param str path: the directory's path
        """
        self._check_not_closed("create directory")
        self._filesystem.makedirs(self._resolver.resolve(path))

    def create_directories(self, *paths):
        """
        Create multiple directories, in the given order.

        :param str paths: the directories' paths
        """
        for path in paths:
            self.create_directory(path)

    def get_file_bytes(self, path):
        """
        Return the content of a file.

        :param str path: the path to the file
        :raises: ``FileNotFoundError`` -- if there is no such file
        :raises: ``IsADirectoryError`` -- if ``path`` is a directory
        """
        self._check_not_closed("download file")
        return self._filesystem.read_bytes(self._resolver.resolve(path))

    def get_file_text(self, path, encoding=DEFAULT_ENCODING):
        """
        Return the content of a text file, decoded with ``encoding``.

        :param str path: the path to the file
        :param str encoding: the file's encoding
        """
        return self.get_file_bytes(path).decode(encoding)

    def get_path(self, first, *more):
        """
        Return a `.StubPath` for the given path segments, which are joined
        with ``/``; empty segments are skipped.  For example
        ``get_path("/foo", "bar", "gus")`` refers to ``/foo/bar/gus``.

        The returned object queries the filesystem directly, without an
        SFTP connection.
        """
        self._check_not_closed("get path")
        return StubPath(self._filesystem, self._resolver.join(first, *more))

    def exists_file(self, path):
        """
        Return ``True`` if ``path`` exists and is a regular file (not a
        directory).
        """
        self._check_not_closed("check existence of file")
        return self._filesystem.isfile(self._resolver.resolve(path))

    def delete_all_files_and_directories(self):
        """
        Delete all files and directories.
        """
        self._check_not_closed("delete all files and directories")
        self._filesystem.delete_all()


@contextlib.contextmanager
def with_sftp_server(port=0, initial_directory="/", host=DEFAULT_HOST):
    """
    Run an in-memory SFTP server for the duration of a ``with`` block.

    The server is stopped and the context closed when the block is left,
    whether normally or by an exception (which then propagates).

    :param int port: port to listen on; ``0`` (the default) picks a free one
    :param str initial_directory:
        absolute directory that relative paths are resolved against, both in
        the fixture API and for SFTP clients
    :param str host: address to bind
    :return: a context manager yielding a `.SFTPServerTestContext`

    :raises:
        `.InvalidConfigurationError` -- for an invalid ``port`` or a relative
        ``initial_directory``; nothing is started in that case
    """
    validate_port(port)
    validate_initial_directory(initial_directory)
    context = SFTPServerTestContext(
        create_filesystem(), initial_directory=initial_directory, host=host
    )
    with context:
        context.start(port)
        yield context


def run_with_sftp_server(
    block, port=0, initial_directory="/", host=DEFAULT_HOST
):
    """
    Call ``block(context)`` with a running `.SFTPServerTestContext` and
    return its result.  See `with_sftp_server` for the parameters.
    """
    with with_sftp_server(
        port=port, initial_directory=initial_directory, host=host
    ) as context:
        return block(context)
