"""
User-visible export status signaling.

The orchestrator decides when to signal; a Notifier decides how. Notifiers
are fire-and-forget: nothing they return is used.
"""
import logging
from abc import ABC, abstractmethod


logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Export status surface"""

    @abstractmethod
    def show_in_progress(self) -> None:
        """Signal that an export is running"""
        pass

    @abstractmethod
    def show_failure(self, message: str) -> None:
        """Replace the in-progress signal with a failure carrying ``message``"""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove the in-progress signal after a successful export"""
        pass


class LoggingNotifier(Notifier):
    """Notifier that writes status changes to a logger"""

    def __init__(self, log: logging.Logger = logger):
        self.log = log

    def show_in_progress(self) -> None:
        self.log.info("📤 Exporting health data")

    def show_failure(self, message: str) -> None:
        self.log.error(f"❌ Export failed: {message}")

    def clear(self) -> None:
        self.log.info("✅ Export finished")


class NullNotifier(Notifier):
    """Notifier that shows nothing"""

    def show_in_progress(self) -> None:
        pass

    def show_failure(self, message: str) -> None:
        pass

    def clear(self) -> None:
        pass
