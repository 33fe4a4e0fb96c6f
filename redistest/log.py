import logging
from enum import Enum

from colorama import Fore, Style, init


class LogColor(Enum):
    WHITE = Fore.WHITE
    GREEN = Fore.GREEN
    BLUE = Fore.BLUE
    YELLOW = Fore.YELLOW
    RED = Fore.RED


DEFAULT_COLORS = {
    logging.DEBUG: LogColor.GREEN,
    logging.INFO: LogColor.BLUE,
    logging.WARNING: LogColor.YELLOW,
    logging.ERROR: LogColor.RED,
    logging.CRITICAL: LogColor.RED,
}

DEFAULT_FORMAT = "%(levelname)s %(name)s - %(message)s"


init(autoreset=True)


class ColorFormatter(logging.Formatter):
    def __init__(
        self,
        colors: dict[int, LogColor] | None = None,
        **kwargs,
    ):
        kwargs.setdefault("fmt", DEFAULT_FORMAT)
        super().__init__(**kwargs)
        self._colors = colors if colors is not None else DEFAULT_COLORS

    def formatMessage(self, record: logging.LogRecord):
        color: LogColor = self._colors.get(record.levelno, LogColor.WHITE)
        # Colorize a copy, other handlers share the record
        rd = dict(record.__dict__)
        rd["levelname"] = (
            color.value + Style.BRIGHT + record.levelname + Style.RESET_ALL + Fore.RESET
        )
        return self._style.format(logging.makeLogRecord(rd))


def stream_handler(level: int = logging.DEBUG) -> logging.Handler:
    ch = logging.StreamHandler()
    ch.setLevel(level)
    ch.setFormatter(ColorFormatter())
    return ch
