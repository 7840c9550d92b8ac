import pytest

from sftpstub import create_filesystem, with_sftp_server

# also provided by the pytest11 entry point once the package is installed
from sftpstub.pytest_plugin import sftp_server  # noqa: F401


@pytest.fixture
def server():
    with with_sftp_server() as context:
        yield context


@pytest.fixture
def filesystem():
    with create_filesystem() as fs:
        yield fs
