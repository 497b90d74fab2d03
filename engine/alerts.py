"""Alert dispatching for finished countdown timers.

The engine only issues "play" and "cancel" commands; how an alert is rendered
is up to the dispatcher implementation.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

from common.timer_models import TIMER_NAME_PLACEHOLDER, AlertConfig

logger = logging.getLogger(__name__)
alert_logger = logging.getLogger("alerts")


def build_utterance(label: str, template: str) -> str:
    """Fill every timer name placeholder of an alert template with the label."""
    return template.replace(TIMER_NAME_PLACEHOLDER, label)


class AlertDispatcher(ABC):
    """Receives alert commands from the timer engine."""

    @abstractmethod
    def play_alert(self, label: str, config: AlertConfig):
        """Start alerting that the timer with this label finished."""

    @abstractmethod
    def cancel_alert(self):
        """Stop the alert currently playing, if any."""


class NullAlertDispatcher(AlertDispatcher):
    """Dispatcher that ignores every command."""

    def play_alert(self, label: str, config: AlertConfig):
        pass

    def cancel_alert(self):
        pass


def _log_announcement(message: str):
    alert_logger.warning(message)


class RepeatingAlertDispatcher(AlertDispatcher):
    """Announces alerts and repeats them on an asyncio loop.

    The first announcement happens immediately. Further repeats are scheduled
    ``wait_between_repeat`` seconds apart until ``repeat_count`` announcements
    were made, or until cancelled for an infinite repeat count. Without a
    running loop only the first announcement is made.
    """

    def __init__(
        self,
        announce: Optional[Callable[[str], None]] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        """Initialize the dispatcher.

        Args:
            announce: Called with the utterance of every announcement; logs to
                the ``alerts`` logger by default
            loop: Event loop used for repeats; defaults to the running loop
        """
        self.announce = announce or _log_announcement
        self._loop = loop
        self._pending: Optional[asyncio.TimerHandle] = None
        self.announcement_count = 0

    def _get_loop(self) -> Optional[asyncio.AbstractEventLoop]:
        if self._loop is not None:
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    @property
    def is_alerting(self) -> bool:
        return self._pending is not None

    def play_alert(self, label: str, config: AlertConfig):
        if config is None or not config.enabled:
            return

        self.cancel_alert()
        message = build_utterance(label, config.utterance_template)
        logger.info(f"Playing alert for '{label}'")
        self._speak(message, config, 0)

    def _speak(self, message: str, config: AlertConfig, repetition: int):
        self._pending = None
        try:
            self.announce(message)
            self.announcement_count += 1
        except Exception as e:
            logger.error(f"Failed to announce alert '{message}': {e}")

        if config.repeat_count != "infinite" and repetition + 1 >= config.repeat_count:
            return

        loop = self._get_loop()
        if loop is None:
            logger.debug("No running event loop, alert will not repeat")
            return
        self._pending = loop.call_later(
            config.wait_between_repeat, self._speak, message, config, repetition + 1
        )

    def cancel_alert(self):
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
            logger.info("Cancelled alert")
