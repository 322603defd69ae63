"""Mock patch for testing code which manipulates patches.

Most users of patchkit will not need this; it exists to check how
something like PatchMaster drives the patches it holds.
"""

from unittest import mock


class MockPatcher:
    """Patch recording every call to install and restore.

    Calls are recorded on ``self.mock`` (a unittest.mock.Mock), so the
    usual assertions work:

        patch = MockPatcher()
        patch.install()
        patch.mock.install.assert_called_once_with()

    To check ordering across several patches, attach their mocks to one
    parent and compare ``parent.mock_calls``.  Side effects given to the
    constructor run on each call; an exception as side effect is raised.
    """

    def __init__(self, name=None, install_effect=None, restore_effect=None):
        self.name = name
        self.mock = mock.Mock(name=name)
        self.mock.install.side_effect = install_effect
        self.mock.restore.side_effect = restore_effect

    def install(self):
        self.mock.install()
        return self

    def restore(self):
        self.mock.restore()
        return self

    def attach_to(self, parent: mock.Mock, name=None):
        """Attach our mock to parent under name (default self.name).

        Returns parent to help in chaining.
        """
        parent.attach_mock(self.mock, name or self.name)
        return parent

    def __repr__(self):
        return f'<{self.__class__.__name__} {self.name}>'
