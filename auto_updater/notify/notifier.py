"""User notifications.

The updater talks to the user at two points: when an update is waiting
for the application to be closed, and when a cycle has applied at least
one update. Notices are always logged; desktop delivery is attempted on
supported platforms and never blocks the update loop.
"""

import logging
import platform
import subprocess
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime

logger = logging.getLogger(__name__)

NOTICE_WAITING = "WAITING"
NOTICE_COMPLETED = "COMPLETED"
NOTICE_ERROR = "ERROR"

ERROR_TITLE = "Error"

# Recent notices kept for inspection; older ones are dropped
NOTICE_HISTORY_SIZE = 100

WAITING_TITLE = "Update available"
COMPLETED_TITLE = "Update completed"
COMPLETED_MESSAGE = (
    "Software has been successfully updated\n"
    "You can start the software now"
)


def waiting_message(process_name: str) -> str:
    return (
        "A new update is ready\n"
        f"Please close {process_name} and wait for the update to be finished"
    )


@dataclass
class Notice:
    """Record of a notice shown to the user."""
    timestamp: str
    kind: str
    title: str
    message: str
    delivered: bool


class Notifier:
    """Non-blocking user notifier.

    Failures of the desktop mechanism are logged at debug level and
    reported through ``Notice.delivered``; they never raise.
    """

    def __init__(self, enable_desktop: bool = True):
        self.enable_desktop = enable_desktop
        self._notices: deque[Notice] = deque(maxlen=NOTICE_HISTORY_SIZE)
        self._system = platform.system()

    def send(self, kind: str, title: str, message: str) -> Notice:
        notice = Notice(
            timestamp=datetime.now().isoformat(),
            kind=kind,
            title=title,
            message=message,
            delivered=False,
        )
        logger.info("NOTICE [%s] %s: %s", kind, title, message.replace("\n", " "))

        if self.enable_desktop:
            notice.delivered = self._desktop_notify(title, message)
        else:
            notice.delivered = True  # log-only counts as delivered

        self._notices.append(notice)
        return notice

    def update_waiting(self, process_name: str) -> Notice:
        return self.send(NOTICE_WAITING, WAITING_TITLE, waiting_message(process_name))

    def update_completed(self) -> Notice:
        return self.send(NOTICE_COMPLETED, COMPLETED_TITLE, COMPLETED_MESSAGE)

    def startup_failed(self, message: str) -> Notice:
        return self.send(NOTICE_ERROR, ERROR_TITLE, message)

    def _desktop_notify(self, title: str, message: str) -> bool:
        """Try platform-specific desktop notification. Returns success."""
        try:
            if self._system == "Linux":
                subprocess.Popen(
                    ["notify-send", "-u", "normal", title, message],
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                )
                return True
            elif self._system == "Darwin":
                script = (
                    f'display notification "{_applescript_escape(message)}" '
                    f'with title "{_applescript_escape(title)}"'
                )
                subprocess.Popen(
                    ["osascript", "-e", script],
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                )
                return True
            elif self._system == "Windows":
                threading.Thread(
                    target=_windows_message_box,
                    args=(title, message),
                    daemon=True,
                    name="notice-box",
                ).start()
                return True
            return True
        except (FileNotFoundError, OSError) as exc:
            logger.debug("Desktop notification failed: %s", exc)
            return False

    @property
    def notices(self) -> list[Notice]:
        return list(self._notices)

    def get_notices_by_kind(self, kind: str) -> list[Notice]:
        return [n for n in self._notices if n.kind == kind]


def _windows_message_box(title: str, message: str):
    import ctypes

    # MB_OK | MB_ICONWARNING | MB_SYSTEMMODAL
    flags = 0x0 | 0x30 | 0x1000
    ctypes.windll.user32.MessageBoxW(None, message, title, flags)


def _applescript_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')
