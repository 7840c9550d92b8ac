"""
Password authentication policy of the stub server.
"""
from collections.abc import MutableMapping

from sftpstub.util import b, constant_time_bytes_eq, get_logger


class PasswordAuthenticator(MutableMapping):
    """
    A table of usernames and their (plaintext) passwords.

    While the table is empty every username/password pair is accepted.  As
    soon as one user is registered, only registered pairs are.

    A `.PasswordAuthenticator` can be treated like a dict from username to
    password.  Setting a username that is already present replaces its
    password.
    """

    def __init__(self):
        self._passwords = {}
        self.logger = get_logger("sftpstub.auth")

    def add(self, username, password):
        """
        Register ``username`` with ``password``, replacing any earlier
        password for that username.

        :param str username: the username
        :param str password: the password for ``username``
        """
        self[username] = password

    def authenticate(self, username, password):
        """
        Check a login attempt.

        :param str username: the username sent by the client
        :param str password: the password sent by the client
        :return:
            ``True`` if no users are registered, or if ``username`` is
            registered with exactly ``password``; else ``False``
        """
        if not self._passwords:
            return True
        expected = self._passwords.get(username)
        if expected is None:
            self.logger.warning("Rejected login of unknown user %r", username)
            return False
        if constant_time_bytes_eq(b(expected), b(password)):
            return True
        self.logger.warning("Rejected wrong password for user %r", username)
        return False

    def __iter__(self):
        return iter(self._passwords)

    def __len__(self):
        return len(self._passwords)

    def __getitem__(self, username):
        return self._passwords[username]

    def __setitem__(self, username, password):
        self._passwords[username] = password

    def __delitem__(self, username):
        del self._passwords[username]
