"""Logging setup shared by the API process and the reminder worker."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a single console handler on the root logger."""

    root = logging.getLogger()
    root.setLevel(level.upper())

    if any(getattr(handler, "_medibook", False) for handler in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._medibook = True  # type: ignore[attr-defined]
    root.addHandler(handler)
