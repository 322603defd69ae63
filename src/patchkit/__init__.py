"""patchkit - temporarily override variables, environment and logging in tests."""

from patchkit.specs import (
    EnvironmentPatchError,
    Patch,
    PatcherError,
    UnassignableValueError,
    UnsettableVariableError,
    UnwritableSinkError,
)
from patchkit.setvar import AttrRef, ItemRef, Ref, VariableSetter, set_variable
from patchkit.env import EnvPatcher, set_env, unset_env
from patchkit.log import LogPatcher, set_log_output
from patchkit.master import PatchMaster, new_patch_master

__version__ = "0.1.0"

__all__ = [
    "AttrRef",
    "EnvPatcher",
    "EnvironmentPatchError",
    "ItemRef",
    "LogPatcher",
    "Patch",
    "PatchMaster",
    "PatcherError",
    "Ref",
    "UnassignableValueError",
    "UnsettableVariableError",
    "UnwritableSinkError",
    "VariableSetter",
    "new_patch_master",
    "set_env",
    "set_log_output",
    "set_variable",
    "unset_env",
]
