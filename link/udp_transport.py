"""
DatagramTransport: Non-blocking UDP endpoint for the agent link.

Supports:
    - Binding a local address / port (with address reuse enabled)
    - Receiving one request at a time, waiting on socket readiness with a
      timeout instead of spinning
    - Replying to the most recent sender
    - Optional packet-drop simulation

There is no retransmission, sequencing or duplicate detection at this
layer.  A lost datagram is recovered only by the agent resending its
request.
"""

import socket
import logging
import selectors
from typing import Optional, Tuple

from config import MAX_DATAGRAM_BYTES
from .metrics import LinkMetrics
from .utils import format_peer, maybe_drop

log = logging.getLogger(__name__)


class DatagramTransport:
    """
    UDP request/response transport.

    Attributes:
        max_datagram_bytes (int): Largest payload accepted or sent.
        drop_rate (float): Probability of discarding a received datagram.
        metrics (LinkMetrics): Traffic counters.
    """

    def __init__(self, max_datagram_bytes: int = MAX_DATAGRAM_BYTES, drop_rate: float = 0.0):
        """
        Create an unbound transport.

        Args:
            max_datagram_bytes (int): Maximum datagram payload in bytes.
            drop_rate (float): Chance of randomly dropping a received datagram (0.0 to 1.0).
        """
        self.max_datagram_bytes = max_datagram_bytes
        self.drop_rate = drop_rate
        self.metrics = LinkMetrics()
        self._sock: Optional[socket.socket] = None
        self._selector: Optional[selectors.BaseSelector] = None
        self._peer: Optional[Tuple[str, int]] = None

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def bind(self, address: str, port: int) -> bool:
        """
        Open the socket and bind it.

        Args:
            address (str): Local address to bind (e.g. ``'127.0.0.1'``).
            port (int): Local port, ``0`` for an ephemeral port.

        Returns:
            bool: True on success, False if the socket could not be bound.
        """
        self.close()
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.setblocking(False)
            sock.bind((address, port))
        except OSError as exc:
            log.error("bind_failed addr=%s:%s err=%s", address, port, exc)
            sock.close()
            return False

        self._sock = sock
        self._selector = selectors.DefaultSelector()
        self._selector.register(sock, selectors.EVENT_READ)
        log.info("bound addr=%s", format_peer(self.address))
        return True

    def close(self) -> None:
        """Release the socket.  Safe to call more than once."""
        if self._selector is not None:
            self._selector.close()
            self._selector = None
        if self._sock is not None:
            self._sock.close()
            self._sock = None
        self._peer = None

    def __enter__(self) -> "DatagramTransport":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_bound(self) -> bool:
        return self._sock is not None

    @property
    def address(self) -> Optional[Tuple[str, int]]:
        """Locally bound ``(host, port)``, or None when unbound."""
        if self._sock is None:
            return None
        return self._sock.getsockname()

    @property
    def peer(self) -> Optional[Tuple[str, int]]:
        """Address of the most recently received datagram."""
        return self._peer

    # ── I/O ───────────────────────────────────────────────────────────────────

    def try_receive(self, timeout: Optional[float] = 0.0) -> Optional[bytes]:
        """
        Receive one datagram if one is available.

        Args:
            timeout (Optional[float]): Seconds to wait for readiness.  ``0``
                polls without waiting; ``None`` waits indefinitely.

        Returns:
            Optional[bytes]: The payload, or None when nothing usable arrived.
                A None result is not an error; callers simply try again.

        Side Effects:
            Updates :attr:`peer` on every accepted datagram.
        """
        if self._sock is None or self._selector is None:
            raise RuntimeError("transport is not bound")

        if not self._selector.select(timeout):
            return None
        try:
            data, addr = self._sock.recvfrom(self.max_datagram_bytes + 1)
        except (BlockingIOError, InterruptedError):
            return None
        except ConnectionResetError:
            # ICMP port-unreachable from a previous send on some platforms
            log.debug("recv_reset peer=%s", format_peer(self._peer))
            return None

        if len(data) > self.max_datagram_bytes:
            self.metrics.oversized += 1
            log.warning("datagram_oversized size>%d from=%s", self.max_datagram_bytes, format_peer(addr))
            return None
        if maybe_drop(self.drop_rate):
            self.metrics.dropped += 1
            log.warning("packet_dropped from=%s", format_peer(addr))
            return None

        self._peer = addr
        self.metrics.received += 1
        return data

    def send(self, data: bytes) -> bool:
        """
        Send one datagram to the most recent sender.

        Args:
            data (bytes): Encoded payload.

        Returns:
            bool: True if the datagram was handed to the socket.
        """
        if self._sock is None:
            raise RuntimeError("transport is not bound")
        if self._peer is None:
            self.metrics.send_failures += 1
            log.warning("send_skipped reason=no_peer size=%d", len(data))
            return False
        try:
            self._sock.sendto(data, self._peer)
        except OSError as exc:
            self.metrics.send_failures += 1
            log.warning("send_failed to=%s err=%s", format_peer(self._peer), exc)
            return False
        self.metrics.sent += 1
        return True
