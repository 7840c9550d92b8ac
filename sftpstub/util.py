"""
Useful functions used by the rest of sftpstub.
"""
import logging
import threading
from logging import DEBUG

_g_thread_data = threading.local()
_g_thread_counter = 0
_g_thread_lock = threading.Lock()


def get_thread_id():
    """Return a small, stable id for the calling thread (for log lines)."""
    global _g_thread_counter
    try:
        return _g_thread_data.id
    except AttributeError:
        with _g_thread_lock:
            _g_thread_counter += 1
            _g_thread_data.id = _g_thread_counter
        return _g_thread_data.id


def log_to_file(filename, level=DEBUG):
    """send sftpstub logs to a logfile,
    if they're not already going somewhere"""
    logger = logging.getLogger("sftpstub")
    if len(logger.handlers) > 0:
        return
    logger.setLevel(level)
    f = open(filename, "a")
    handler = logging.StreamHandler(f)
    frm = "%(levelname)-.3s [%(asctime)s.%(msecs)03d] thr=%(_threadid)-3d"
    frm += " %(name)s: %(message)s"
    handler.setFormatter(logging.Formatter(frm, "%Y%m%d-%H:%M:%S"))
    logger.addHandler(handler)


class PFilter:
    def filter(self, record):
        record._threadid = get_thread_id()
        return True


_pfilter = PFilter()


def get_logger(name):
    """Get a logger with the specified name.

    The logger carries the thread-id filter used by `log_to_file`; no
    handlers are installed, that is left to the application.
    """
    logger = logging.getLogger(name)
    logger.addFilter(_pfilter)
    return logger


class ClosingContextManager:
    def __enter__(self):
        return self

    def __exit__(self, type, value, traceback):
        self.close()


def b(s, encoding="utf8"):
    """cast unicode or bytes to bytes"""
    if isinstance(s, bytes):
        return s
    elif isinstance(s, str):
        return s.encode(encoding)
    else:
        raise TypeError(f"Expected unicode or bytes, got {type(s)}")


def constant_time_bytes_eq(a, b):
    """Compare two byte strings in constant time.

    :param bytes a: first byte string
    :param bytes b: second byte string
    :return: True if the strings are equal, False otherwise
    """
    if len(a) != len(b):
        return False
    result = 0
    for x, y in zip(a, b):
        result |= x ^ y
    return result == 0
