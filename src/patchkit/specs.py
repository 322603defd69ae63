"""Basic specifications and common classes for patchkit.
"""

from contextlib import ContextDecorator
import os
from typing import Protocol, runtime_checkable

FALSE_STRINGS = ('0', 'false', 'no', 'off')

DEFAULT_LOG_FORMAT = '%(message)s'


def default_strict() -> bool:
    "Whether assignability checks are on (see PATCHKIT_STRICT)."
    value = os.environ.get('PATCHKIT_STRICT', '1')
    return value.strip().lower() not in FALSE_STRINGS


def default_log_format() -> str:
    "Format used for log sinks (see PATCHKIT_LOG_FORMAT)."
    return os.environ.get('PATCHKIT_LOG_FORMAT', DEFAULT_LOG_FORMAT)


class PatcherError(Exception):
    """Base exception for patchkit errors."""


class UnsettableVariableError(PatcherError, TypeError):
    """Exception raised when a patch target is not a writable cell."""


class UnassignableValueError(PatcherError, TypeError):
    """Exception raised when a value cannot be stored in the target."""


class UnwritableSinkError(PatcherError, TypeError):
    """Exception raised when a log sink cannot be written to."""


class EnvironmentPatchError(PatcherError, RuntimeError):
    """Exception raised when the environment could not be changed."""


@runtime_checkable
class Patch(Protocol):
    """Something which can be installed and later restored.

    Both methods must be idempotent and return the patch itself so
    that callers can write ``patch = SomePatcher(...).install()`` and
    later ``patch.restore()``.
    """

    def install(self) -> 'Patch':
        """Install the patch.

        Stores metadata sufficient to allow restore to put back the
        original data.  Calling this on an installed patch does nothing.
        """

    def restore(self) -> 'Patch':
        """Use the metadata stored by install to undo the patch.

        Calling this on a patch which is not installed does nothing.
        """


class PatchContext(ContextDecorator):
    """Mixin making a patch usable as context manager and decorator.

    Entering installs the patch, leaving restores it; exceptions from
    the body are never suppressed.
    """

    def __enter__(self):
        return self.install()

    def __exit__(self, exc_type, exc_value, traceback):
        self.restore()
        return False
