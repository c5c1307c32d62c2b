"""
Open bookmark targets in the user's web browser.
"""
import logging
import webbrowser
from typing import Optional

logger = logging.getLogger(__name__)


def open_external(target: str, browser: Optional[str] = None) -> bool:
    """
    Hand a target to the system web browser.

    Args:
        target: URL (or anything the browser understands)
        browser: Name of a registered webbrowser controller; the system
            default is used when None

    Returns:
        True if the browser accepted the target, False otherwise
    """
    try:
        controller = webbrowser.get(browser) if browser else webbrowser
        opened = controller.open(target)
    except webbrowser.Error as e:
        logger.error(f"Could not open {target}: {e}")
        return False

    if not opened:
        logger.error(f"Browser refused to open {target}")
    else:
        logger.debug(f"Opened {target}")
    return bool(opened)
