"""Tests for patching log output.
"""

import io
import logging

import pytest

from patchkit.log import LogPatcher, replace_handlers, set_log_output
from patchkit.specs import Patch, UnwritableSinkError


class TestLogPatcher:

    def setup_method(self):
        self.logger = logging.getLogger('patchkit.tests.target')
        self.logger.propagate = False
        self.logger.setLevel(logging.INFO)
        self.original = logging.StreamHandler(io.StringIO())
        replace_handlers(self.logger, [self.original])

    def teardown_method(self):
        replace_handlers(self.logger, [])
        self.logger.propagate = True
        self.logger.setLevel(logging.NOTSET)

    def test_implements_patch(self):
        assert isinstance(set_log_output(io.StringIO()), Patch)

    def test_set_log_output(self):
        stream = io.StringIO()

        lp = set_log_output(stream, logger=self.logger)

        assert lp.sink is stream
        assert lp.logger is self.logger
        assert isinstance(lp.handler, logging.StreamHandler)
        assert lp.handler.stream is stream
        assert lp._original == []
        assert not lp._applied

    def test_default_logger_is_root(self):
        assert set_log_output(io.StringIO()).logger is logging.getLogger()

    def test_handler_sink(self):
        handler = logging.NullHandler()
        assert set_log_output(handler).handler is handler

    def test_unwritable_sink(self):
        with pytest.raises(UnwritableSinkError, match='without a write'):
            set_log_output(12345)

    def test_install(self):
        stream = io.StringIO()
        lp = set_log_output(stream, logger=self.logger)

        before = list(self.logger.handlers)

        result = lp.install()
        self.logger.info('Error reading file')

        assert result is lp
        assert self.logger.handlers == [lp.handler]
        assert self.original in lp._original
        assert lp._original == before
        assert lp._applied
        assert stream.getvalue() == 'Error reading file\n'
        assert self.original.stream.getvalue() == ''

    def test_install_idempotent(self):
        lp = set_log_output(io.StringIO(), logger=self.logger)
        lp._applied = True
        before = list(self.logger.handlers)

        result = lp.install()

        assert result is lp
        assert self.logger.handlers == before
        assert lp.handler not in self.logger.handlers
        assert lp._original == []

    def test_restore(self):
        stream = io.StringIO()
        before = list(self.logger.handlers)
        lp = set_log_output(stream, logger=self.logger).install()

        result = lp.restore()
        self.logger.info('after restore')

        assert result is lp
        assert self.logger.handlers == before
        assert self.original in self.logger.handlers
        assert not lp._applied
        assert stream.getvalue() == ''
        assert self.original.stream.getvalue() == 'after restore\n'

    def test_restore_idempotent(self):
        lp = set_log_output(io.StringIO(), logger=self.logger)
        before = list(self.logger.handlers)

        result = lp.restore()

        assert result is lp
        assert self.logger.handlers == before

    def test_restore_keeps_sink_open(self):
        stream = io.StringIO()
        with set_log_output(stream, logger=self.logger):
            self.logger.info('message')
        assert not stream.closed
        assert stream.getvalue() == 'message\n'

    def test_format(self):
        stream = io.StringIO()
        with set_log_output(stream, logger=self.logger,
                            fmt='%(levelname)s:%(message)s'):
            self.logger.warning('careful')
        assert stream.getvalue() == 'WARNING:careful\n'

    def test_several_original_handlers(self):
        second = logging.NullHandler()
        self.logger.addHandler(second)
        before = list(self.logger.handlers)
        with set_log_output(io.StringIO(), logger=self.logger) as lp:
            assert self.logger.handlers == [lp.handler]
        assert self.logger.handlers == before
        mine = [handler for handler in self.logger.handlers
                if handler in (self.original, second)]
        assert mine == [self.original, second]

    def test_direct_construction(self):
        stream = io.StringIO()
        lp = LogPatcher(sink=stream, logger=self.logger, fmt='%(name)s')
        with lp:
            self.logger.info('ignored')
        assert stream.getvalue() == 'patchkit.tests.target\n'

    def test_level(self):
        stream = io.StringIO()
        lp = set_log_output(stream, logger=self.logger, level=logging.DEBUG)

        with lp:
            assert self.logger.level == logging.DEBUG
            self.logger.debug('detail')

        assert lp.level == logging.DEBUG
        assert self.logger.level == logging.INFO
        assert stream.getvalue() == 'detail\n'

    def test_level_left_alone(self):
        stream = io.StringIO()

        with set_log_output(stream, logger=self.logger) as lp:
            self.logger.debug('dropped')
            self.logger.info('kept')

        assert lp.level is None
        assert self.logger.level == logging.INFO
        assert stream.getvalue() == 'kept\n'

    def test_level_restore_idempotent(self):
        lp = set_log_output(io.StringIO(), logger=self.logger,
                            level=logging.ERROR).install()
        self.logger.setLevel(logging.WARNING)

        lp.restore()
        lp.restore()

        assert self.logger.level == logging.INFO


class TestRootLogger:

    def test_round_trip(self):
        root = logging.getLogger()
        before = list(root.handlers)
        stream = io.StringIO()

        lp = set_log_output(stream).install()
        root.warning('Error reading file')
        lp.restore()

        assert root.handlers == before
        assert 'Error reading file' in stream.getvalue()

    def test_root_level(self):
        root = logging.getLogger()
        level = root.level
        stream = io.StringIO()

        with set_log_output(stream, level=logging.INFO):
            logging.info('File read')

        assert root.level == level
        assert stream.getvalue() == 'File read\n'
