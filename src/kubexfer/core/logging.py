"""Logging setup for library consumers."""

import logging

from rich.logging import RichHandler

from kubexfer.core.config import Settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(settings: Settings) -> None:
    """Configure root logging according to the display mode.

    Fancy display routes records through rich so they interleave cleanly with
    the progress bar; any other display uses a plain stream handler.

    Args:
        settings: Library settings
    """
    level = logging.DEBUG if settings.debug else settings.log_level.upper()

    if settings.fancy_display:
        handler: logging.Handler = RichHandler(show_path=False, markup=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))

    logging.basicConfig(level=level, handlers=[handler], force=True)
