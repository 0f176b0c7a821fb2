"""Bridge from the stdlib logging module into a FluentLogger."""

import logging

from fluent_tagged_logger.severity import rank_of_logging_level

_PACKAGE = __name__.split(".")[0]


class FluentHandler(logging.Handler):
    """Forwards formatted log records into the current unit of work.

    Records from this package's own loggers are skipped so sender failures
    are never fed back into the sender.
    """

    def __init__(self, fluent_logger, level=logging.NOTSET):
        super().__init__(level)
        self._fluent_logger = fluent_logger

    def emit(self, record: logging.LogRecord):
        if record.name == _PACKAGE or record.name.startswith(_PACKAGE + "."):
            return
        try:
            message = self.format(record)
            self._fluent_logger.add(rank_of_logging_level(record.levelno), message)
        except Exception:
            self.handleError(record)
