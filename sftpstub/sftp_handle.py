"""
SFTP file handle backed by the in-memory filesystem (for server mode).
"""
import errno
import os
import stat

from paramiko import SFTPAttributes, SFTPHandle, SFTPServer
from paramiko.sftp import SFTP_OK

FILE_MODE = stat.S_IFREG | 0o644
DIRECTORY_MODE = stat.S_IFDIR | 0o755


def to_attributes(info, filename=None):
    """
    Build an `.SFTPAttributes` from an `.InMemoryFileSystem` info dict.

    :param dict info: as returned by `.InMemoryFileSystem.info`
    :param str filename: the name to report in directory listings
    """
    attr = SFTPAttributes()
    attr.st_size = info["size"]
    attr.st_uid = 0
    attr.st_gid = 0
    if info["type"] == "directory":
        attr.st_mode = DIRECTORY_MODE
    else:
        attr.st_mode = FILE_MODE
    if info.get("mtime") is not None:
        attr.st_atime = attr.st_mtime = int(info["mtime"])
    if filename is not None:
        attr.filename = filename
    return attr


class StubSFTPHandle(SFTPHandle):
    """
    Handle to an open file of an `.InMemoryFileSystem`.

    Read-only handles read straight from the filesystem, so they always see
    the current content.  Writable handles work on a private buffer that is
    stored back into the filesystem when the handle is closed; once a client
    has closed its file, the data is visible to every other session and to
    the fixture.

    Instances of this class may be used as context managers.
    """

    def __init__(self, filesystem, path, flags=0):
        """
        :param filesystem: the `.InMemoryFileSystem` the file lives in
        :param str path: absolute path of the file
        :param int flags:
            ``os.O_*`` flags as passed to `.SFTPServerInterface.open`
        """
        super().__init__(flags)
        self.filesystem = filesystem
        self.filename = path
        self.writable = bool(flags & (os.O_WRONLY | os.O_RDWR))
        self.append = bool(flags & os.O_APPEND)
        self._buffer = None
        self._dirty = False
        if self.writable:
            if flags & os.O_TRUNC:
                self._buffer = bytearray()
                self._dirty = True
            else:
                self._buffer = bytearray(filesystem.read_bytes(path))

    def close(self):
        """
        Store buffered writes into the filesystem.  Closing twice is
        harmless.
        """
        if self._dirty:
            self._dirty = False
            self.filesystem.write_bytes(self.filename, self._buffer)

    def read(self, offset, length):
        if self._buffer is not None:
            return bytes(self._buffer[offset:offset + length])
        try:
            return self.filesystem.read_bytes(self.filename, offset, length)
        except OSError as e:
            return SFTPServer.convert_errno(e.errno)

    def write(self, offset, data):
        if not self.writable:
            return SFTPServer.convert_errno(errno.EBADF)
        if self.append:
            offset = len(self._buffer)
        elif offset > len(self._buffer):
            self._buffer.extend(bytes(offset - len(self._buffer)))
        self._buffer[offset:offset + len(data)] = data
        self._dirty = True
        return SFTP_OK

    def stat(self):
        if self._buffer is not None:
            return to_attributes({"type": "file", "size": len(self._buffer)})
        try:
            return to_attributes(self.filesystem.info(self.filename))
        except OSError as e:
            return SFTPServer.convert_errno(e.errno)

    def chattr(self, attr):
        if attr.st_size is None:
            return SFTP_OK
        if self._buffer is None:
            return SFTPServer.convert_errno(errno.EBADF)
        size = attr.st_size
        del self._buffer[size:]
        self._buffer.extend(bytes(size - len(self._buffer)))
        self._dirty = True
        return SFTP_OK
