import logging
import sys
from typing import Optional

from . import config


class _ThirdPartyFilter(logging.Filter):
    """Keep taskapi records, let everything else through only at WARNING+."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith("taskapi"):
            return True
        return record.levelno >= logging.WARNING


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """
    Configure the root logger once at startup.
    Console goes to stderr; a file handler is added when a log file is configured.
    """
    level = level or config.LOG_LEVEL
    log_file = log_file or config.LOG_FILE

    root = logging.getLogger()
    root.setLevel(level)

    # Reloads (uvicorn --reload) would otherwise stack handlers
    for handler in list(root.handlers):
        root.removeHandler(handler)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(fmt)
    console.addFilter(_ThirdPartyFilter())
    root.addHandler(console)

    if log_file:
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setFormatter(fmt)
        root.addHandler(fh)

    logging.captureWarnings(True)
