"""Patching of where the default logger writes to.

The default logger is the root logger of the logging package; its
output is whatever its handlers write to.  A LogPatcher swaps those
handlers for one writing to a given sink:

    >>> import io, logging
    >>> from patchkit.log import set_log_output
    >>> stream = io.StringIO()
    >>> with set_log_output(stream):
    ...     logging.getLogger().warning('Error reading file')
    >>> stream.getvalue()
    'Error reading file\\n'
"""

import logging
from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from patchkit.specs import PatchContext, UnwritableSinkError, default_log_format

LOGGER = logging.getLogger(__name__)


def replace_handlers(logger: logging.Logger, handlers):
    "Make handlers the only handlers of logger."
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    for handler in handlers:
        logger.addHandler(handler)


class LogPatcher(PatchContext, BaseModel):
    """Patch which redirects the output of a logger.

    Use `set_log_output` to make one.  The sink is either a
    logging.Handler or anything with a ``write`` method, which then gets
    wrapped in a logging.StreamHandler.  The sink is never closed.

    Records below the level of the logger never reach the sink; the
    root logger passes WARNING and above.  Give `level` to change the
    level of the logger while installed.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    sink: Annotated[Any, Field(description=(
        'Handler or writable stream receiving log output while installed.'))]

    logger: Annotated[logging.Logger, Field(
        default_factory=lambda: logging.getLogger(), exclude=True,
        description=(
            'Logger to redirect; the root logger by default.'))]

    fmt: Annotated[str, Field(default_factory=default_log_format,
                              description=(
        'Format for records written to a stream sink.'))]

    level: Annotated[Optional[int], Field(default=None, description=(
        'Level of the logger while installed; left alone if None.'))]

    _handler: Optional[logging.Handler] = PrivateAttr(default=None)
    _original: List[logging.Handler] = PrivateAttr(default_factory=list)
    _original_level: int = PrivateAttr(default=logging.NOTSET)
    _applied: bool = PrivateAttr(default=False)

    def model_post_init(self, __context):
        if isinstance(self.sink, logging.Handler):
            self._handler = self.sink
        elif callable(getattr(self.sink, 'write', None)):
            self._handler = logging.StreamHandler(self.sink)
            self._handler.setFormatter(logging.Formatter(self.fmt))
        else:
            raise UnwritableSinkError(
                f'cannot send log output to {type(self.sink).__name__} '
                'object without a write method')

    @property
    def handler(self) -> logging.Handler:
        "Handler installed on the logger by this patch."
        return self._handler

    def install(self):
        """Remember the logger's handlers and replace them with the sink.
        """
        if self._applied:
            return self

        LOGGER.debug('Redirecting output of logger %s', self.logger.name)
        self._original = list(self.logger.handlers)
        if self.level is not None:
            self._original_level = self.logger.level
            self.logger.setLevel(self.level)
        replace_handlers(self.logger, [self._handler])
        self._applied = True

        return self

    def restore(self):
        """Put back the handlers the logger had when installed.
        """
        if not self._applied:
            return self

        self._handler.flush()
        replace_handlers(self.logger, self._original)
        if self.level is not None:
            self.logger.setLevel(self._original_level)
        self._original = []
        self._applied = False
        LOGGER.debug('Restored output of logger %s', self.logger.name)

        return self


def set_log_output(sink, logger: Optional[logging.Logger] = None,
                   fmt: Optional[str] = None,
                   level: Optional[int] = None) -> LogPatcher:
    """Make a patch sending output of logger (default root) to sink.

    For example:

        stream = io.StringIO()
        with set_log_output(stream):
            do_something()
        assert 'Error reading file' in stream.getvalue()

    Pass level, for example logging.DEBUG, to also capture records the
    logger would otherwise drop.
    """
    kwargs = {}
    if logger is not None:
        kwargs['logger'] = logger
    if fmt is not None:
        kwargs['fmt'] = fmt
    if level is not None:
        kwargs['level'] = level
    return LogPatcher(sink=sink, **kwargs)
