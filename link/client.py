"""
AgentClient: Agent-side counterpart of the bridge link.

Sends one :class:`Action` per cycle and waits for the matching
:class:`State`.  Loss is handled here, by resending the request on
timeout; the bridge itself never retransmits.
"""

import socket
import logging
from typing import Optional, Sequence

from config import DEFAULT_BIND_ADDRESS, DEFAULT_PORT, MAX_DATAGRAM_BYTES
from errors import MalformedMessage
from .codec import decode_state, encode_action
from .message import Action, ControlCode, State

log = logging.getLogger(__name__)


class AgentClient:
    """
    Blocking request/response client.

    Args:
        host (str): Bridge address.
        port (int): Bridge port.
        timeout_s (float): Seconds to wait for each response.
        retries (int): Extra attempts after the first timeout.
    """

    def __init__(
        self,
        host: str = DEFAULT_BIND_ADDRESS,
        port: int = DEFAULT_PORT,
        timeout_s: float = 1.0,
        retries: int = 0,
        max_datagram_bytes: int = MAX_DATAGRAM_BYTES,
    ):
        self._addr = (host, port)
        self.timeout_s = timeout_s
        self.retries = retries
        self.max_datagram_bytes = max_datagram_bytes
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)

    def close(self) -> None:
        self._sock.close()

    def __enter__(self) -> "AgentClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def step(self, motor: Sequence[float]) -> State:
        """Advance the simulation one tick with the given motor commands."""
        return self.request(Action(motor=list(motor), control=ControlCode.STEP))

    def reset(self) -> State:
        """Start a new episode and return the flushed baseline State."""
        return self.request(Action(control=ControlCode.RESET))

    def request(self, action: Action, timeout_s: Optional[float] = None) -> State:
        """
        Send an Action and wait for the State it produces.

        Args:
            action (Action): Message to send.
            timeout_s (Optional[float]): Per-attempt timeout, defaults to :attr:`timeout_s`.

        Returns:
            State: The bridge's response.

        Raises:
            TimeoutError: If no valid response arrived after all attempts.
        """
        payload = encode_action(action, self.max_datagram_bytes)
        self._sock.settimeout(self.timeout_s if timeout_s is None else timeout_s)

        for attempt in range(self.retries + 1):
            self._sock.sendto(payload, self._addr)
            try:
                return self._await_state()
            except socket.timeout:
                log.warning(
                    "response_timeout attempt=%d/%d control=%s",
                    attempt + 1, self.retries + 1, action.control.name,
                )
        raise TimeoutError(
            f"no State from {self._addr[0]}:{self._addr[1]} after {self.retries + 1} attempt(s)"
        )

    def _await_state(self) -> State:
        while True:
            data, _ = self._sock.recvfrom(self.max_datagram_bytes)
            try:
                return decode_state(data)
            except MalformedMessage as exc:
                log.warning("bad_state_datagram err=%s", exc)
