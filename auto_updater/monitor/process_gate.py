"""Waiting for the target application to exit.

Presence is a case-sensitive substring match of the configured name
against the names of running processes, as reported by psutil. It is
deliberately approximate: ``MyApp.exe`` also matches ``MyApp.exe.old``.
"""

import logging
import threading
import time
from typing import Callable

import psutil

from auto_updater.errors import ProcessQueryFailed
from auto_updater.notify.notifier import Notifier
from auto_updater.update.update_config import PROCESS_POLL_SECONDS

logger = logging.getLogger(__name__)


def list_process_names() -> list[str]:
    """Return the names of all running processes.

    Processes that exit or deny access during the walk are skipped.
    Raises ProcessQueryFailed if the process table cannot be read at all.
    """
    names: list[str] = []
    try:
        # process_iter fills in None for processes it cannot inspect
        for proc in psutil.process_iter(["name"]):
            name = proc.info.get("name")
            if name:
                names.append(name)
    except (psutil.Error, OSError) as exc:
        raise ProcessQueryFailed(f"Unable to list running processes: {exc}") from exc
    return names


def is_process_running(process_name: str,
                       lister: Callable[[], list[str]] = list_process_names) -> bool:
    """True if any running process name contains ``process_name``."""
    return any(process_name in name for name in lister())


class ProcessGate:
    """Blocks until a named process is no longer running.

    Parameters
    ----------
    notifier:
        Receives one "update waiting" notice per waiting episode.
    presence_checker:
        ``f(process_name) -> bool``; defaults to ``is_process_running``.
    sleep:
        Called with ``poll_interval`` between polls.
    stop_event:
        When set, the wait is abandoned and ``wait_until_absent`` returns
        False. Only used for graceful shutdown.
    """

    def __init__(
        self,
        notifier: Notifier,
        presence_checker: Callable[[str], bool] = None,
        sleep: Callable[[float], None] = time.sleep,
        poll_interval: float = PROCESS_POLL_SECONDS,
        stop_event: threading.Event | None = None,
    ):
        self.notifier = notifier
        self.presence_checker = presence_checker or is_process_running
        self.sleep = sleep
        self.poll_interval = poll_interval
        self.stop_event = stop_event

    def wait_until_absent(self, process_name: str) -> bool:
        """Return True once ``process_name`` is not running.

        There is no timeout. ProcessQueryFailed propagates to the caller.
        """
        notified = False
        while True:
            if self.stop_event is not None and self.stop_event.is_set():
                logger.info("Stopped while waiting for %s to exit", process_name)
                return False
            if not self.presence_checker(process_name):
                if notified:
                    logger.info("%s has exited, continuing with update", process_name)
                return True
            if not notified:
                notified = True
                logger.info("Update waiting for %s to exit", process_name)
                self.notifier.update_waiting(process_name)
            self.sleep(self.poll_interval)
