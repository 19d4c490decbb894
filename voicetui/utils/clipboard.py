"""Copy text to the system clipboard with the platform's command-line tool."""

import sys
import logging
import subprocess
from typing import List, Optional

logger = logging.getLogger(__name__)


def clipboard_command(platform: Optional[str] = None) -> Optional[List[str]]:
    platform = platform or sys.platform
    if platform == "darwin":
        return ["pbcopy"]
    if platform.startswith("linux"):
        return ["xclip", "-selection", "clipboard"]
    if platform == "win32":
        return ["clip"]
    return None


def copy_to_clipboard(text: str) -> bool:
    """Copy text to the clipboard. Returns False if no clipboard tool worked."""
    cmd = clipboard_command()
    if cmd is None:
        logger.error(f"Unsupported platform for clipboard: {sys.platform}")
        return False

    try:
        subprocess.run(cmd, input=text.encode("utf-8"), check=True, capture_output=True, timeout=5)
        return True
    except (OSError, subprocess.SubprocessError) as e:
        logger.error(f"Clipboard copy error: {e}")
        return False
