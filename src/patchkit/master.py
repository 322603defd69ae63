"""Grouping of several patches into one.
"""

import logging
from typing import Annotated, Any, List

from pydantic import BaseModel, Field, field_validator

from patchkit.specs import Patch, PatchContext

LOGGER = logging.getLogger(__name__)


class PatchMaster(PatchContext, BaseModel):
    """Patch which installs and restores several other patches.

    Patches are installed in the order given and restored in reverse,
    so a patch relying on an earlier one is undone first.  More patches
    can be added with `add`:

        pm = PatchMaster(
            set_variable((config, 'var1'), 'value1'),
            set_variable((config, 'var2'), 'value2'),
        )
        with pm:
            ...  # do some tests
            pm.add(set_env('VAR3', 'value3')).install()
            ...  # do some more tests

    The master has no applied state of its own; each patch keeps track
    of whether it is installed.
    """

    patches: Annotated[List[Any], Field(default_factory=list, description=(
        'Patches in installation order.'))]

    def __init__(self, *patches, **data):
        if patches:
            data['patches'] = list(patches)
        super().__init__(**data)

    @field_validator('patches')
    @classmethod
    def check_patches(cls, patches):
        for patch in patches:
            if not isinstance(patch, Patch):
                raise TypeError(f'{patch!r} is not a patch')
        return patches

    def install(self):
        """Install every patch, first added first.
        """
        LOGGER.debug('Installing %d patches', len(self.patches))
        for patch in self.patches:
            patch.install()

        return self

    def restore(self):
        """Restore every patch, last added first.
        """
        LOGGER.debug('Restoring %d patches', len(self.patches))
        for patch in reversed(self.patches):
            patch.restore()

        return self

    def add(self, patch):
        """Append patch without installing it; return patch.
        """
        if not isinstance(patch, Patch):
            raise TypeError(f'{patch!r} is not a patch')
        self.patches.append(patch)

        return patch


def new_patch_master(*patches) -> PatchMaster:
    "Make a PatchMaster holding patches."
    return PatchMaster(*patches)
