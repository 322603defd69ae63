"""pytest fixtures for patchkit.

Enable in a conftest.py with:

    pytest_plugins = ['patchkit.pytest_plugin']
"""

import io

import pytest

from patchkit.env import EnvPatcher
from patchkit.log import set_log_output
from patchkit.master import PatchMaster


@pytest.fixture
def patch_master():
    """PatchMaster restored when the test finishes.

    Patches added to it still need installing, e.g.
    ``patch_master.add(set_env('NAME', 'value')).install()``.
    """
    master = PatchMaster()
    yield master
    master.restore()


@pytest.fixture
def patch_env(patch_master):
    """Factory setting (or with None unsetting) an environment variable.

    The change is undone when the test finishes.
    """
    def _patch_env(name, value):
        return patch_master.add(EnvPatcher(name=name, value=value)).install()
    return _patch_env


@pytest.fixture
def patch_log(patch_master):
    "Send root logger output to a StringIO for the test and yield it."
    stream = io.StringIO()
    patch_master.add(set_log_output(stream)).install()
    yield stream
