from __future__ import annotations
import logging

from proctorflow.config import LOG_LEVEL


def setup_console_logging(level: int | str = LOG_LEVEL) -> None:
    """
    Call once at app start. Prints service logs to console.
    """
    root = logging.getLogger()
    if root.handlers:
        # already configured (avoid duplicates)
        root.setLevel(level)
        return

    root.setLevel(level)
    h = logging.StreamHandler()
    fmt = logging.Formatter(
        "[%(asctime)s] %(levelname)s %(name)s [%(threadName)s]: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    h.setFormatter(fmt)
    root.addHandler(h)
