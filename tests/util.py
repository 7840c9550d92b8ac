"""
Helpers shared by the test modules: free ports and paramiko clients.
"""
import posixpath
import socket
from contextlib import contextmanager

import paramiko
import pytest

HOST = "127.0.0.1"
TIMEOUT = 5
DUMMY_CONTENT = bytes([1, 4, 2, 4, 2, 4])
DUMMY_USER = "dummy user"
DUMMY_PASSWORD = "dummy password"


def free_port():
    """Return a TCP port that nothing listens on right now."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((HOST, 0))
        return sock.getsockname()[1]


def connect(port, username=DUMMY_USER, password=DUMMY_PASSWORD):
    client = paramiko.SSHClient()
    client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
    client.connect(
        HOST,
        port=port,
        username=username,
        password=password,
        allow_agent=False,
        look_for_keys=False,
        timeout=TIMEOUT,
        banner_timeout=TIMEOUT,
        auth_timeout=TIMEOUT,
    )
    return client


@contextmanager
def sftp_session(port, username=DUMMY_USER, password=DUMMY_PASSWORD):
    client = connect(port, username=username, password=password)
    try:
        sftp = client.open_sftp()
        try:
            yield sftp
        finally:
            sftp.close()
    finally:
        client.close()


def _make_parents(sftp, path):
    current = "/"
    for part in posixpath.dirname(path).split("/"):
        if not part:
            continue
        current = posixpath.join(current, part)
        try:
            sftp.stat(current)
        except FileNotFoundError:
            sftp.mkdir(current)


def upload(port, path, data):
    with sftp_session(port) as sftp:
        _make_parents(sftp, path)
        with sftp.open(path, "wb") as f:
            f.write(data)


def download(port, path):
    with sftp_session(port) as sftp:
        with sftp.open(path, "rb") as f:
            return f.read()


def assert_connection_refused(port):
    with pytest.raises(ConnectionRefusedError):
        socket.create_connection((HOST, port), timeout=TIMEOUT).close()
