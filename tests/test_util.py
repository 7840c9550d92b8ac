"""
Some unit tests for utility functions.
"""
import logging
import threading

import pytest

from sftpstub import util


class TestUtil:
    def test_get_logger_adds_thread_filter(self):
        logger = util.get_logger("sftpstub.test")
        assert util._pfilter in logger.filters
        # adding it again does not duplicate it
        util.get_logger("sftpstub.test")
        assert logger.filters.count(util._pfilter) == 1

    def test_thread_id_is_stable_per_thread(self):
        ids = []
        thread = threading.Thread(target=lambda: ids.append(util.get_thread_id()))
        thread.start()
        thread.join()
        assert util.get_thread_id() == util.get_thread_id()
        assert ids[0] != util.get_thread_id()

    def test_log_to_file(self, tmp_path):
        logger = logging.getLogger("sftpstub")
        if logger.handlers:
            pytest.skip("sftpstub logging already configured")
        path = tmp_path / "sftpstub.log"
        old_level = logger.level
        util.log_to_file(str(path))
        try:
            util.get_logger("sftpstub.test").info("hello %s", "log")
        finally:
            for handler in list(logger.handlers):
                handler.close()
                logger.removeHandler(handler)
            logger.setLevel(old_level)
        line = path.read_text()
        assert line.startswith("INF [")
        assert "sftpstub.test: hello log" in line

    def test_b(self):
        assert util.b(b"abc") == b"abc"
        assert util.b("ü") == b"\xc3\xbc"
        assert util.b("ü", "latin-1") == b"\xfc"
        with pytest.raises(TypeError):
            util.b(42)

    def test_constant_time_bytes_eq(self):
        assert util.constant_time_bytes_eq(b"", b"")
        assert util.constant_time_bytes_eq(b"secret", b"secret")
        assert not util.constant_time_bytes_eq(b"secret", b"secreT")
        assert not util.constant_time_bytes_eq(b"secret", b"secret!")

    def test_closing_context_manager(self):
        class Resource(util.ClosingContextManager):
            closed = False

            def close(self):
                self.closed = True

        with Resource() as resource:
            assert not resource.closed
        assert resource.closed
