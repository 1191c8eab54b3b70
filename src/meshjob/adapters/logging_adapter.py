import logging

from meshjob.core.interfaces.logging import LoggingPort
from meshjob.core.logging_config import coerce_level


class LoggingAdapter(LoggingPort):
    """LoggingPort backed by a stdlib logger.

    Installs no handlers: records propagate to the root sinks set up by
    `configure_logging`, which also stamps the correlation id.
    """

    def __init__(self, name: str = "meshjob", log_level: int | str = logging.INFO):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(coerce_level(log_level))
        self.logger.propagate = True

    def log(self, level: int, msg: str, *args) -> None:
        # stacklevel points records at the caller of debug()/info()/..., not this adapter
        self.logger.log(level, msg, *args, stacklevel=3)

    def is_enabled(self, level: int | str) -> bool:
        return self.logger.isEnabledFor(coerce_level(level))
