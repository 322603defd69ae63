"""Tools for patching environment variables.

The environment itself is reached through an `EnvironmentStore` so
that patchers can be pointed at something other than the real process
environment (see `patchkit.test_tools.fake_env`).
"""

import logging
import os
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from patchkit.specs import EnvironmentPatchError, PatchContext

LOGGER = logging.getLogger(__name__)


class EnvironmentStore:
    """Interface to a set of environment variables.

    Sub-classes should override lookup, set and unset.
    """

    def lookup(self, name: str) -> Optional[str]:
        "Return value of variable `name` or None if it is not set."
        raise NotImplementedError

    def set(self, name: str, value: str):
        "Set variable `name` to `value`."
        raise NotImplementedError

    def unset(self, name: str):
        "Remove variable `name`; it must currently be set."
        raise NotImplementedError


class OsEnvironment(EnvironmentStore):
    """The environment of the current process (os.environ).
    """

    def lookup(self, name):
        return os.environ.get(name, None)

    def set(self, name, value):
        os.environ[name] = value

    def unset(self, name):
        del os.environ[name]


def lookup_env(env: EnvironmentStore, name: str) -> Optional[str]:
    """Return value of variable `name` in env, None if it is not set.

    Raises:
        EnvironmentPatchError: If env could not be read.
    """
    try:
        return env.lookup(name)
    except (OSError, ValueError) as problem:
        raise EnvironmentPatchError(
            f'Unable to read environment variable {name!r}: {problem}'
        ) from problem


def apply_env(env: EnvironmentStore, name: str, value: Optional[str]):
    """Set variable `name` in env to value, or unset it if value is None.

    Unsetting a variable which is not set does nothing.

    Raises:
        EnvironmentPatchError: If env refused the change.
    """
    try:
        if value is None:
            if env.lookup(name) is not None:
                env.unset(name)
        else:
            env.set(name, value)
    except (KeyError, OSError, ValueError) as problem:
        action = 'unset' if value is None else 'set'
        raise EnvironmentPatchError(
            f'Unable to {action} environment variable {name!r}: {problem}'
        ) from problem


class EnvPatcher(PatchContext, BaseModel):
    """Patch which sets or unsets an environment variable.

    Use `set_env` or `unset_env` to make one.  A `value` of None means
    the variable is unset while the patch is installed; likewise an
    original of None means the variable was not set to begin with and
    restore removes it again.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: Annotated[str, Field(min_length=1, description=(
        'Name of the environment variable to patch.'))]

    value: Annotated[Optional[str], Field(default=None, description=(
        'Value while installed, or None to unset the variable.'))]

    env: Annotated[EnvironmentStore, Field(
        default_factory=OsEnvironment, exclude=True, description=(
            'Environment the variable lives in.'))]

    _original: Optional[str] = PrivateAttr(default=None)
    _applied: bool = PrivateAttr(default=False)

    def install(self):
        """Remember the current state of the variable and patch it.
        """
        if self._applied:
            return self

        LOGGER.debug('Patching environment variable %s', self.name)
        self._original = lookup_env(self.env, self.name)
        apply_env(self.env, self.name, self.value)
        self._applied = True

        return self

    def restore(self):
        """Put the variable back the way install found it.
        """
        if not self._applied:
            return self

        LOGGER.debug('Restoring environment variable %s', self.name)
        apply_env(self.env, self.name, self._original)
        self._original = None
        self._applied = False

        return self


def set_env(name: str, value: str,
            env: Optional[EnvironmentStore] = None) -> EnvPatcher:
    """Make a patch setting environment variable `name` to `value`.

    For example:

        with set_env('VARNAME', 'value'):
            do_something()
    """
    if env is None:
        return EnvPatcher(name=name, value=value)
    return EnvPatcher(name=name, value=value, env=env)


def unset_env(name: str, env: Optional[EnvironmentStore] = None
              ) -> EnvPatcher:
    """Make a patch removing environment variable `name`.
    """
    if env is None:
        return EnvPatcher(name=name)
    return EnvPatcher(name=name, env=env)
