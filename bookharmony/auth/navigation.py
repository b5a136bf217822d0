"""Navigation seam used when the backend forces the user back to the sign-in entry point."""

from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class Navigator(Protocol):
    def redirect(self, location: str) -> None: ...


class LoggingNavigator:
    """Records redirects and logs them; the CLI reads `last_location` to hint the user."""

    def __init__(self) -> None:
        self.last_location: str | None = None

    def redirect(self, location: str) -> None:
        self.last_location = location
        logger.info("redirect location=%s", location)
