"""Desktop notifications (macOS only)."""

import logging
import subprocess
import sys
from typing import Optional

log = logging.getLogger("claudectl.notifications")

DEFAULT_TITLE = "claudectl"
DEFAULT_SOUND = "Glass"


def _quote(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


class NotificationSender:
    """Sends notifications through osascript.

    Args:
        platform: Platform name to check against (default: sys.platform)
    """

    def __init__(self, platform: str = sys.platform) -> None:
        self.platform = platform

    @property
    def supported(self) -> bool:
        return self.platform == "darwin"

    def notify(
        self,
        message: str,
        title: str = DEFAULT_TITLE,
        sound: Optional[str] = DEFAULT_SOUND,
    ) -> bool:
        """Show a notification.

        Failures are logged and otherwise ignored.

        Returns:
            True if the notification was sent
        """
        if not self.supported:
            log.debug("Notifications not supported on %s", self.platform)
            return False

        script = f'display notification "{_quote(message)}" with title "{_quote(title)}"'
        if sound:
            script += f' sound name "{_quote(sound)}"'

        try:
            subprocess.run(["osascript", "-e", script], check=True, capture_output=True)
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            log.warning("Failed to send notification: %s", e)
            return False
        return True

    def notify_spawn_complete(self, count: int) -> bool:
        return self.notify(f"Spawned {count} Claude agent{'' if count == 1 else 's'}")
