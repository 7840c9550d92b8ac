"""
An embeddable, in-memory SFTP server for automated tests.
"""
from sftpstub._version import __version__, __version_info__
from sftpstub.auth import PasswordAuthenticator
from sftpstub.context import (
    SFTPServerTestContext,
    run_with_sftp_server,
    with_sftp_server,
)
from sftpstub.exceptions import (
    ContextClosedError,
    InvalidConfigurationError,
    StubException,
)
from sftpstub.listener import SFTPListener
from sftpstub.memoryfs import (
    InMemoryFileSystem,
    NonClosingFileSystem,
    create_filesystem,
)
from sftpstub.paths import PathResolver, StubPath
from sftpstub.server import StubServer
from sftpstub.sftp_handle import StubSFTPHandle
from sftpstub.sftp_si import StubSFTPServer

__license__ = "GNU Lesser General Public License (LGPL)"

__all__ = [
    "ContextClosedError",
    "InMemoryFileSystem",
    "InvalidConfigurationError",
    "NonClosingFileSystem",
    "PasswordAuthenticator",
    "PathResolver",
    "SFTPListener",
    "SFTPServerTestContext",
    "StubException",
    "StubPath",
    "StubSFTPHandle",
    "StubSFTPServer",
    "StubServer",
    "create_filesystem",
    "run_with_sftp_server",
    "with_sftp_server",
    "__version__",
    "__version_info__",
]
