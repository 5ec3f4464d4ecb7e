"""Open the authorization URL in the user's default browser."""

import logging
import os
import subprocess
import webbrowser

logger = logging.getLogger(__name__)


def is_wsl() -> bool:
    """Check if running inside WSL."""
    if os.environ.get("WSL_DISTRO_NAME"):
        return True
    try:
        with open("/proc/version", "r") as f:
            version = f.read().lower()
    except OSError:
        return False
    return "microsoft" in version or "wsl" in version


def open_browser(url: str) -> bool:
    """Open URL in browser, handling WSL gracefully.

    Returns True if some opener accepted the URL. The caller should print
    the URL either way so the user can copy it by hand.
    """
    if is_wsl():
        # wslview comes from the wslu package; cmd.exe reaches the Windows browser
        for command in (["wslview", url], ["cmd.exe", "/c", "start", url.replace("&", "^&")]):
            try:
                result = subprocess.run(command, capture_output=True, timeout=5)
            except (FileNotFoundError, subprocess.TimeoutExpired):
                continue
            if result.returncode == 0:
                return True

    try:
        return webbrowser.open(url)
    except webbrowser.Error as e:
        logger.warning(f"[OAUTH] Could not open browser: {e}")
        return False
