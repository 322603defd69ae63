"""Tests for the mock patch used to test patch handling code.
"""

from unittest import mock

import pytest

from patchkit.specs import Patch
from patchkit.test_tools.mock_patcher import MockPatcher


class TestMockPatcher:

    def test_implements_patch(self):
        assert isinstance(MockPatcher(), Patch)

    def test_install(self):
        m = MockPatcher()

        result = m.install()

        assert result is m
        m.mock.install.assert_called_once_with()
        m.mock.restore.assert_not_called()

    def test_restore(self):
        m = MockPatcher()

        result = m.restore()

        assert result is m
        m.mock.restore.assert_called_once_with()
        m.mock.install.assert_not_called()

    def test_side_effects(self):
        seen = []
        m = MockPatcher(install_effect=lambda: seen.append('install'),
                        restore_effect=ValueError('no restore'))

        m.install()
        with pytest.raises(ValueError, match='no restore'):
            m.restore()

        assert seen == ['install']

    def test_attach_to(self):
        parent = mock.Mock()
        first = MockPatcher('first')
        second = MockPatcher('second')

        assert first.attach_to(parent) is parent
        second.attach_to(parent, 'other')
        second.install()
        first.restore()

        assert parent.mock_calls == [mock.call.other.install(),
                                     mock.call.first.restore()]
