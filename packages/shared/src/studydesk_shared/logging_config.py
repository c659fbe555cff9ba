"""Process-wide logging setup for scripts and embedding applications.

Library modules only ever call ``logging.getLogger(__name__)``; the entry
point decides handlers and level.
"""

import logging
import os

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging from an explicit level or STUDYDESK_LOG_LEVEL."""
    resolved = (level or os.environ.get("STUDYDESK_LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(level=resolved, format=DEFAULT_LOG_FORMAT)
