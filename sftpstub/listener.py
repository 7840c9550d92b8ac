"""
TCP listener that hands every accepted connection to a paramiko transport.
"""
import socket
import threading
from logging import DEBUG, INFO, WARNING

from paramiko import ECDSAKey, SFTPServer, Transport

from sftpstub.memoryfs import NonClosingFileSystem
from sftpstub.paths import PathResolver
from sftpstub.server import StubServer
from sftpstub.sftp_si import StubSFTPServer
from sftpstub.util import ClosingContextManager, get_logger

DEFAULT_HOST = "127.0.0.1"


class SFTPListener(threading.Thread, ClosingContextManager):
    """
    An SFTP server bound to one TCP port.

    `start` binds the socket in the calling thread, so the port is known
    (and bind errors are raised) as soon as it returns; connections are then
    accepted on this thread.  Each client gets its own paramiko `.Transport`
    (and thread) with the ``"sftp"`` subsystem serving ``filesystem``.

    A fresh host key is generated for every listener; it is never stored.

    Instances of this class may be used as context managers.
    """

    _accept_timeout = 0.1
    _backlog = 16

    def __init__(
        self,
        filesystem,
        authenticator,
        resolver=None,
        host=DEFAULT_HOST,
        port=0,
    ):
        """
        :param filesystem: the `.InMemoryFileSystem` to serve
        :param .PasswordAuthenticator authenticator: login policy
        :param .PathResolver resolver: resolves relative client paths
        :param str host: address to bind
        :param int port: port to bind; ``0`` lets the OS pick one
        """
        threading.Thread.__init__(self, name="sftpstub-listener")
        self.daemon = True
        self.filesystem = filesystem
        self.authenticator = authenticator
        self.resolver = resolver if resolver is not None else PathResolver()
        self.host = host
        self.requested_port = port
        self.port = None
        self.host_key = None
        self._socket = None
        self._stopped = threading.Event()
        self._transports = []
        self._lock = threading.Lock()
        self.logger = get_logger("sftpstub.listener")

    def __repr__(self):
        if self.port is None:
            where = "unbound"
        else:
            where = "{}:{}".format(self.host, self.port)
        if self._stopped.is_set():
            where += " (stopped)"
        return "<sftpstub.SFTPListener {}>".format(where)

    def _log(self, level, msg, *args):
        self.logger.log(level, msg, *args)

    def start(self):
        """
        Bind and listen, then start accepting connections in the background.

        :raises: ``OSError`` -- if the address cannot be bound
        """
        self.host_key = ECDSAKey.generate()
        family = socket.AF_INET6 if ":" in self.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.requested_port))
            sock.listen(self._backlog)
            sock.settimeout(self._accept_timeout)
        except OSError:
            sock.close()
            raise
        self._socket = sock
        self.port = sock.getsockname()[1]
        threading.Thread.start(self)
        self._log(INFO, "SFTP server listening on %s:%d", self.host, self.port)

    def run(self):
        try:
            while not self._stopped.is_set():
                try:
                    conn, addr = self._socket.accept()
                except socket.timeout:
                    continue
                except OSError as e:
                    if not self._stopped.is_set():
                        self._log(WARNING, "Accept failed: %s", e)
                    break
                self._serve(conn, addr)
        finally:
            self._socket.close()

    def _serve(self, conn, addr):
        self._log(DEBUG, "Connection from %s:%d", addr[0], addr[1])
        transport = Transport(conn)
        transport.add_server_key(self.host_key)
        transport.set_subsystem_handler(
            "sftp",
            SFTPServer,
            StubSFTPServer,
            filesystem=NonClosingFileSystem(self.filesystem),
            resolver=self.resolver,
        )
        with self._lock:
            self._transports = [
                t for t in self._transports if t.is_active()
            ]
            self._transports.append(transport)
        # passing an event keeps the handshake off the accept loop
        transport.start_server(
            event=threading.Event(), server=StubServer(self.authenticator)
        )

    def get_transports(self):
        """
        Return the client transports that are still connected.
        """
        with self._lock:
            return [t for t in self._transports if t.is_active()]

    def close(self):
        """
        Stop accepting, close the listening socket and disconnect every
        client.  Returns once the port is free again.
        """
        if self._stopped.is_set():
            return
        self._stopped.set()
        if self.is_alive():
            self.join()
        elif self._socket is not None:
            self._socket.close()
        with self._lock:
            transports, self._transports = self._transports, []
        for transport in transports:
            transport.close()
        if self.port is not None:
            self._log(
                INFO, "SFTP server on %s:%d stopped", self.host, self.port
            )
