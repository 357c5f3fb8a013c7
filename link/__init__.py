"""
link — Agent-facing datagram link
=================================

Binary Action / State messages carried over a best-effort UDP
request/response channel.

Modules
-------
message
    :class:`Action` and :class:`State` dataclasses, control / status codes.
codec
    ``struct``-based encode / decode for both message kinds.
udp_transport
    :class:`DatagramTransport` bind / receive / reply endpoint.
metrics
    :class:`LinkMetrics` counter snapshot.
client
    :class:`AgentClient` agent-side request/response helper.
utils
    Peer formatting, fault injection.
"""

from .message import Action, State, ControlCode, StatusCode, initial_state
from .codec import encode_action, decode_action, encode_state, decode_state
from .udp_transport import DatagramTransport
from .metrics import LinkMetrics
from .client import AgentClient

__all__ = [
    "Action",
    "State",
    "ControlCode",
    "StatusCode",
    "initial_state",
    "encode_action",
    "decode_action",
    "encode_state",
    "decode_state",
    "DatagramTransport",
    "LinkMetrics",
    "AgentClient",
]
