import logging
from abc import ABC, abstractmethod


class LoggingPort(ABC):
    """Logging seam for core code.

    Adapters implement `log`; the level helpers are shared. Messages are
    %-style format strings, args are interpolated lazily by the backend.
    """

    @abstractmethod
    def log(self, level: int, msg: str, *args) -> None:
        pass

    def debug(self, msg: str, *args) -> None:
        self.log(logging.DEBUG, msg, *args)

    def info(self, msg: str, *args) -> None:
        self.log(logging.INFO, msg, *args)

    def warning(self, msg: str, *args) -> None:
        self.log(logging.WARNING, msg, *args)

    def error(self, msg: str, *args) -> None:
        self.log(logging.ERROR, msg, *args)
