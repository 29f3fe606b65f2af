"""
Kill switches.

Two independent out-of-band signals stop all publishing:
1. A stop file: its mere existence means STOP_ALL.
2. The publish flag (PUBLISH_ENABLED by default) set to "false": PUBLISH_DISABLED.

Both are read fresh on every call so an operator can halt publishing
without restarting anything.
"""
import getpass
import logging
import socket
from pathlib import Path
from typing import Optional

from publish_gate.config import PolicyConfig
from publish_gate.schemas import ReasonCode, utcnow

logger = logging.getLogger(__name__)


def is_publish_disabled(config: PolicyConfig) -> bool:
    value = config.environ.get(config.publish_flag_var)
    return value is not None and value.strip().lower() == "false"


def check_kill_switches(config: PolicyConfig) -> Optional[ReasonCode]:
    """Return the reason code of the first engaged kill switch, or None."""
    if Path(config.kill_switch_path).exists():
        return ReasonCode.STOP_ALL
    if is_publish_disabled(config):
        return ReasonCode.PUBLISH_DISABLED
    return None


def engage(path: str, reason: str = "Manual pause", paused_by: Optional[str] = None) -> Path:
    """
    Create the stop file. Publishing halts on the next evaluation.

    Args:
        path: Stop file location (PolicyConfig.kill_switch_path)
        reason: Free-text reason written into the file
        paused_by: Who paused; defaults to user@host

    Returns:
        Path of the stop file
    """
    stop_file = Path(path)
    stop_file.parent.mkdir(parents=True, exist_ok=True)
    if paused_by is None:
        paused_by = f"{getpass.getuser()}@{socket.gethostname()}"
    stamp = utcnow().strftime("%Y-%m-%dT%H:%M:%SZ")
    stop_file.write_text(f"{stamp}\nPaused by: {paused_by}\nReason: {reason}\n", encoding="utf-8")
    logger.warning("Publishing paused via %s (%s)", stop_file, reason)
    return stop_file


def release(path: str) -> bool:
    """Remove the stop file. Returns False if it was not there."""
    stop_file = Path(path)
    try:
        stop_file.unlink()
    except FileNotFoundError:
        return False
    logger.warning("Publishing resumed, removed %s", stop_file)
    return True
