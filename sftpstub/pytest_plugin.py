"""
pytest integration: the ``sftp_server`` fixture.

Registered through the ``pytest11`` entry point, so installing the package
is enough::

    @pytest.mark.sftp_server(initial_directory="/home/test")
    def test_upload(sftp_server):
        sftp_server.add_user("test", "secret")
        upload_report(port=sftp_server.port)
        assert sftp_server.exists_file("reports/latest.pdf")

Keyword arguments of the optional ``sftp_server`` marker are passed to
`.with_sftp_server`.
"""
import pytest

from sftpstub.context import with_sftp_server


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "sftp_server(port=0, initial_directory='/', host='127.0.0.1'): "
        "options of the sftp_server fixture",
    )


@pytest.fixture
def sftp_server(request):
    """
    A running `.SFTPServerTestContext`, closed after the test.
    """
    marker = request.node.get_closest_marker("sftp_server")
    options = dict(marker.kwargs) if marker is not None else {}
    with with_sftp_server(**options) as context:
        yield context
