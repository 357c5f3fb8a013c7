"""
Utility functions for the datagram link:
    - peer address formatting
    - fault injection (packet drop)
"""

import random
import logging
from typing import Optional, Tuple

log = logging.getLogger(__name__)


# ---------- Address Helpers ----------
def format_peer(addr: Optional[Tuple[str, int]]) -> str:
    """
    Render a socket address as ``host:port`` for log lines.

    Args:
        addr (Optional[Tuple[str, int]]): Address as returned by ``recvfrom``.

    Returns:
        str: Printable address, or ``'-'`` when no peer is known.
    """
    if not addr:
        return "-"
    return f"{addr[0]}:{addr[1]}"


# ---------- Fault / Packet Helpers ----------
def maybe_drop(drop_rate: float) -> bool:
    """
    Decide whether to randomly drop a packet based on the drop rate.

    Args:
        drop_rate (float): Probability (0.0–1.0) that the packet will be dropped.

    Returns:
        bool: True if the packet should be dropped, False otherwise.
    """
    if drop_rate <= 0.0:
        return False
    result = random.random() < drop_rate
    if result:
        log.debug("Packet dropped by utils.maybe_drop")
    return result
