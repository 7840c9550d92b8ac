"""
Exceptions raised by the fixture layer.

I/O problems are not wrapped: they surface as the built-in `OSError`
subclasses (`FileNotFoundError`, `IsADirectoryError`, ...) raised by the
in-memory filesystem.
"""


class StubException(Exception):
    """
    Base class for errors raised by sftpstub itself.
    """

    pass


class InvalidConfigurationError(StubException, ValueError):
    """
    A fixture option is out of range or malformed.  Raised before any
    listener or filesystem has been created.

    :param str explanation: human readable description of the problem
    :param value: the rejected value

    .. versionadded:: 1.0
    """

    def __init__(self, explanation, value=None):
        StubException.__init__(self, explanation, value)
        self.explanation = explanation
        self.value = value

    def __str__(self):
        return self.explanation


class ContextClosedError(StubException, RuntimeError):
    """
    An operation was attempted on a fixture context whose scope has already
    ended.

    :param str operation: what was attempted, e.g. ``"upload file"``
    """

    def __init__(self, operation):
        StubException.__init__(self, operation)
        self.operation = operation

    def __str__(self):
        return "Failed to {} because with_sftp_server is closed.".format(
            self.operation
        )
