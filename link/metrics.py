"""
LinkMetrics: Tracks simple statistics for datagram traffic.
"""


class LinkMetrics:
    """
    Tracks counters for received, sent, dropped and rejected datagrams.

    Attributes:
        received (int): Datagrams accepted by the transport.
        sent (int): State datagrams successfully handed to the socket.
        dropped (int): Datagrams discarded by simulated packet loss.
        oversized (int): Datagrams larger than the maximum payload.
        malformed (int): Datagrams the codec rejected.
        send_failures (int): Sends that failed or had no peer to go to.
    """

    def __init__(self):
        """Initialize all counters to zero."""
        self.received = 0
        self.sent = 0
        self.dropped = 0
        self.oversized = 0
        self.malformed = 0
        self.send_failures = 0

    def report(self) -> dict:
        """
        Return a snapshot of current metrics.

        Returns:
            dict: Counter name to value.
        """
        return {
            "received": self.received,
            "sent": self.sent,
            "dropped": self.dropped,
            "oversized": self.oversized,
            "malformed": self.malformed,
            "send_failures": self.send_failures,
        }
