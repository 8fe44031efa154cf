import logging
import os
import sys

_LOG_LEVEL = os.getenv("ALLSCREENSHOTS_LOG_LEVEL", "WARNING").upper()

_configured = False


class _TextFormatter(logging.Formatter):
    _COLORS = {
        logging.DEBUG: "\033[36m",  # cyan
        logging.INFO: "\033[32m",  # green
        logging.WARNING: "\033[33m",  # yellow
        logging.ERROR: "\033[31m",  # red
        logging.CRITICAL: "\033[35m",  # magenta
    }
    _RESET = "\033[0m"

    FMT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
    DATETIMEFMT = "%Y-%m-%d %H:%M:%S"

    def __init__(self, use_colors: bool = False) -> None:
        super().__init__(fmt=self.FMT, datefmt=self.DATETIMEFMT)
        self._use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        if self._use_colors:
            color = self._COLORS.get(record.levelno, "")
            return f"{color}{formatted}{self._RESET}"
        return formatted


def configure_logging(verbose: bool = False, use_colors: bool = True) -> None:
    """Install a single stderr handler on the root logger.

    Screenshots and summaries are written through the rich console, so logging
    stays quiet (WARNING) unless ``--verbose`` is passed.
    """
    global _configured

    root = logging.getLogger()
    if _configured:
        for handler in root.handlers[:]:
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_TextFormatter(use_colors=use_colors and sys.stderr.isatty()))

    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else _LOG_LEVEL)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)

    _configured = True
