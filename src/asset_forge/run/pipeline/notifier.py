"""Build result notifications: always logged, optionally sent to the desktop."""

import logging
import subprocess
from typing import List, Optional

logger = logging.getLogger(__name__)


class Notifier:
    """Reports build outcomes.

    With ``enabled`` set, each report is also sent through ``notify-send``.
    A missing notifier binary disables desktop notifications for the rest of
    the session.
    """

    def __init__(self, enabled: bool = False, executable: str = 'notify-send', title: str = 'asset-forge'):
        self.enabled = enabled
        self.executable = executable
        self.title = title

    def _command(self, message: str, error: bool) -> List[str]:
        return [self.executable, '--urgency', 'critical' if error else 'normal', self.title, message]

    def _send(self, message: str, error: bool) -> None:
        if not self.enabled:
            return
        try:
            subprocess.run(self._command(message, error), check=False, capture_output=True, timeout=5)
        except FileNotFoundError:
            logger.warning(f"'{self.executable}' not found; desktop notifications disabled")
            self.enabled = False
        except subprocess.TimeoutExpired:
            logger.debug("Desktop notification timed out")

    def notify(self, report) -> Optional[str]:
        """Log a BuildReport summary and forward it to the desktop if enabled."""
        if not report.built and not report.failed:
            return None
        message = report.summary()
        if report.failed:
            logger.error(message)
        else:
            logger.info(message)
        self._send(message, error=bool(report.failed))
        return message
