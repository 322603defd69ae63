"""In-memory environment for testing environment patches.
"""

from patchkit.env import EnvironmentStore


class FakeEnvironment(EnvironmentStore):
    """Environment store kept in a dict instead of the process.

    Every operation is appended to ``calls`` as ``(operation, name)``.
    Names in ``fail_on`` make set and unset raise OSError, imitating an
    operating system which refuses the change.
    """

    def __init__(self, variables=None, fail_on=()):
        self.variables = dict(variables or {})
        self.fail_on = set(fail_on)
        self.calls = []

    def lookup(self, name):
        self.calls.append(('lookup', name))
        return self.variables.get(name, None)

    def set(self, name, value):
        self.calls.append(('set', name))
        self._maybe_fail(name)
        self.variables[name] = value

    def unset(self, name):
        self.calls.append(('unset', name))
        self._maybe_fail(name)
        del self.variables[name]

    def _maybe_fail(self, name):
        if name in self.fail_on:
            raise OSError(f'refusing to change {name}')
