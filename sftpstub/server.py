"""
`.ServerInterface` of the stub: password logins and SFTP sessions only.
"""
from paramiko import (
    AUTH_FAILED,
    AUTH_SUCCESSFUL,
    OPEN_FAILED_ADMINISTRATIVELY_PROHIBITED,
    OPEN_SUCCEEDED,
    ServerInterface,
)


class StubServer(ServerInterface):
    """
    Server policy of one client connection.  Password authentication is
    decided by a `.PasswordAuthenticator`; only ``"session"`` channels may be
    opened (the ``"sftp"`` subsystem is registered on the transport).
    """

    def __init__(self, authenticator):
        """
        :param .PasswordAuthenticator authenticator:
            the credentials to check logins against; consulted on every
            attempt, so users added later are honoured
        """
        self.authenticator = authenticator

    def get_allowed_auths(self, username):
        return "password"

    def check_auth_password(self, username, password):
        if self.authenticator.authenticate(username, password):
            return AUTH_SUCCESSFUL
        return AUTH_FAILED

    def check_channel_request(self, kind, chanid):
        if kind == "session":
            return OPEN_SUCCEEDED
        return OPEN_FAILED_ADMINISTRATIVELY_PROHIBITED
