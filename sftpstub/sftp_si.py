"""
Server-mode SFTP request handling on top of the in-memory filesystem.
"""
import errno
import os
import posixpath

from paramiko import SFTPServer, SFTPServerInterface
from paramiko.sftp import SFTP_OK

from sftpstub.paths import PathResolver
from sftpstub.sftp_handle import StubSFTPHandle, to_attributes
from sftpstub.util import get_logger


class StubSFTPServer(SFTPServerInterface):
    """
    Answers the SFTP requests of one session from a shared
    `.InMemoryFileSystem`.

    Use it as the ``sftp_si`` of paramiko's `.SFTPServer`::

        transport.set_subsystem_handler(
            "sftp", SFTPServer, StubSFTPServer,
            filesystem=NonClosingFileSystem(filesystem),
            resolver=PathResolver("/home/user"),
        )

    Relative paths sent by the client are resolved against the resolver's
    initial directory.  When the session ends the filesystem is closed, so
    sessions sharing storage must be given a `.NonClosingFileSystem`.
    """

    def __init__(self, server, filesystem, resolver=None):
        """
        :param .ServerInterface server: the server object of this session
        :param filesystem: the filesystem to serve
        :param .PathResolver resolver:
            resolves client paths; defaults to one rooted at ``/``
        """
        super().__init__(server)
        self.filesystem = filesystem
        self.resolver = resolver if resolver is not None else PathResolver()
        self.logger = get_logger("sftpstub.sftp")

    def session_started(self):
        self.logger.debug("SFTP session started on %r", self.filesystem)

    def session_ended(self):
        self.logger.debug("SFTP session ended on %r", self.filesystem)
        self.filesystem.close()

    def _realpath(self, path):
        return self.resolver.resolve(path)

    def canonicalize(self, path):
        return self._realpath(path)

    def list_folder(self, path):
        path = self._realpath(path)
        try:
            return [
                to_attributes(info, posixpath.basename(info["name"]))
                for info in self.filesystem.listdir(path)
            ]
        except OSError as e:
            return SFTPServer.convert_errno(e.errno)

    def stat(self, path):
        path = self._realpath(path)
        try:
            return to_attributes(self.filesystem.info(path))
        except OSError as e:
            return SFTPServer.convert_errno(e.errno)

    def lstat(self, path):
        # no symlinks in the in-memory filesystem
        return self.stat(path)

    def open(self, path, flags, attr):
        path = self._realpath(path)
        self.logger.debug("open %s (flags=%#o)", path, flags)
        try:
            if self.filesystem.isdir(path):
                return SFTPServer.convert_errno(errno.EISDIR)
            exists = self.filesystem.isfile(path)
            if exists and (flags & os.O_CREAT) and (flags & os.O_EXCL):
                return SFTPServer.convert_errno(errno.EEXIST)
            if not exists:
                if not flags & os.O_CREAT:
                    return SFTPServer.convert_errno(errno.ENOENT)
                self.filesystem.write_bytes(path, b"")
            return StubSFTPHandle(self.filesystem, path, flags)
        except OSError as e:
            return SFTPServer.convert_errno(e.errno)

    def remove(self, path):
        path = self._realpath(path)
        try:
            self.filesystem.remove(path)
        except OSError as e:
            return SFTPServer.convert_errno(e.errno)
        return SFTP_OK

    def rename(self, oldpath, newpath):
        return self._rename(oldpath, newpath, overwrite=False)

    def posix_rename(self, oldpath, newpath):
        return self._rename(oldpath, newpath, overwrite=True)

    def _rename(self, oldpath, newpath, overwrite):
        oldpath = self._realpath(oldpath)
        newpath = self._realpath(newpath)
        try:
            self.filesystem.rename(oldpath, newpath, overwrite=overwrite)
        except OSError as e:
            return SFTPServer.convert_errno(e.errno)
        return SFTP_OK

    def mkdir(self, path, attr):
        path = self._realpath(path)
        try:
            self.filesystem.mkdir(path)
        except OSError as e:
            return SFTPServer.convert_errno(e.errno)
        return SFTP_OK

    def rmdir(self, path):
        path = self._realpath(path)
        try:
            self.filesystem.rmdir(path)
        except OSError as e:
            return SFTPServer.convert_errno(e.errno)
        return SFTP_OK

    def chattr(self, path, attr):
        """
        Only a size change (truncation) has an effect; permissions, owners
        and times are accepted and ignored.
        """
        path = self._realpath(path)
        try:
            if attr.st_size is not None:
                self.filesystem.truncate(path, attr.st_size)
            elif not self.filesystem.exists(path):
                return SFTPServer.convert_errno(errno.ENOENT)
        except OSError as e:
            return SFTPServer.convert_errno(e.errno)
        return SFTP_OK
