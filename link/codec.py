"""
Binary codec for the Action / State wire messages.

Every frame starts with a little-endian ``<BBH`` header:

    kind (1 byte)   : ``KIND_ACTION`` or ``KIND_STATE``
    code (1 byte)   : ControlCode for actions, StatusCode for states
    count (2 bytes) : motor / ESC vector length

followed by float64 payload values.  Decoding validates the exact frame
length and raises :class:`errors.MalformedMessage` on anything else.
"""

import math
import struct
from typing import Optional, Tuple

from config import MAX_DATAGRAM_BYTES
from errors import MalformedMessage, MessageTooLarge
from .message import Action, ControlCode, State, StatusCode

KIND_ACTION = 0x01
KIND_STATE = 0x02

_HEADER = struct.Struct("<BBH")
# sim_time, angular velocity (3), orientation (4), linear acceleration (3)
_STATE_FIXED = struct.Struct("<d3d4d3d")
_DOUBLE_SIZE = 8
_MAX_COUNT = 0xFFFF


def action_size(num_actuators: int) -> int:
    """Encoded size in bytes of an Action carrying ``num_actuators`` commands."""
    return _HEADER.size + _DOUBLE_SIZE * num_actuators


def state_size(num_actuators: int) -> int:
    """Encoded size in bytes of a State reporting ``num_actuators`` ESCs."""
    return _HEADER.size + _STATE_FIXED.size + 4 * _DOUBLE_SIZE * num_actuators


def _check_size(kind: str, size: int, max_size: Optional[int]) -> None:
    if max_size is not None and size > max_size:
        raise MessageTooLarge(
            f"{kind} needs {size} bytes, maximum datagram payload is {max_size}"
        )


def _check_count(kind: str, count: int) -> None:
    if count > _MAX_COUNT:
        raise MessageTooLarge(f"{kind} vector of {count} entries exceeds {_MAX_COUNT}")


# ---------- Action ----------
def encode_action(action: Action, max_size: Optional[int] = MAX_DATAGRAM_BYTES) -> bytes:
    """
    Serialize an Action.

    Args:
        action (Action): Message to encode.
        max_size (Optional[int]): Maximum datagram payload, ``None`` to disable the check.

    Returns:
        bytes: Encoded frame.

    Raises:
        MessageTooLarge: If the frame would not fit ``max_size``.
    """
    count = len(action.motor)
    _check_count("Action", count)
    _check_size("Action", action_size(count), max_size)
    header = _HEADER.pack(KIND_ACTION, int(action.control), count)
    return header + struct.pack(f"<{count}d", *action.motor)


def decode_action(data: bytes, num_actuators: Optional[int] = None) -> Action:
    """
    Parse an Action frame.

    Args:
        data (bytes): Raw datagram payload.
        num_actuators (Optional[int]): When given, STEP actions must carry
            exactly this many motor commands.  RESET actions are not checked.

    Returns:
        Action: The decoded message.

    Raises:
        MalformedMessage: On truncated, oversized or otherwise invalid frames.
    """
    kind, code, count = _unpack_header(data)
    if kind != KIND_ACTION:
        raise MalformedMessage(f"expected action frame, got kind=0x{kind:02x}")
    try:
        control = ControlCode(code)
    except ValueError:
        raise MalformedMessage(f"unknown control code {code}") from None

    expected = action_size(count)
    if len(data) != expected:
        raise MalformedMessage(
            f"action frame is {len(data)} bytes, header announces {expected}"
        )
    motor = list(struct.unpack_from(f"<{count}d", data, _HEADER.size))

    if control is ControlCode.STEP:
        if num_actuators is not None and count != num_actuators:
            raise MalformedMessage(
                f"STEP carries {count} motor commands, {num_actuators} actuators configured"
            )
        if not all(math.isfinite(m) for m in motor):
            raise MalformedMessage("STEP carries non-finite motor commands")
    return Action(motor=motor, control=control)


# ---------- State ----------
def encode_state(state: State, max_size: Optional[int] = MAX_DATAGRAM_BYTES) -> bytes:
    """
    Serialize a State.

    Raises:
        ValueError: If the IMU vectors have the wrong arity or the ESC
            vectors disagree in length.
        MessageTooLarge: If the frame would not fit ``max_size``.
    """
    if (
        len(state.imu_angular_velocity_rpy) != 3
        or len(state.imu_orientation_quat) != 4
        or len(state.imu_linear_acceleration_xyz) != 3
    ):
        raise ValueError("IMU vectors must have 3, 4 and 3 entries")

    count = len(state.esc_motor_angular_velocity)
    esc = (
        state.esc_motor_angular_velocity,
        state.esc_temperature,
        state.esc_current,
        state.esc_voltage,
    )
    if any(len(seq) != count for seq in esc):
        raise ValueError("ESC vectors must all have the same length")
    _check_count("State", count)
    _check_size("State", state_size(count), max_size)

    parts = [
        _HEADER.pack(KIND_STATE, int(state.status_code), count),
        _STATE_FIXED.pack(
            state.sim_time,
            *state.imu_angular_velocity_rpy,
            *state.imu_orientation_quat,
            *state.imu_linear_acceleration_xyz,
        ),
    ]
    for seq in esc:
        parts.append(struct.pack(f"<{count}d", *seq))
    return b"".join(parts)


def decode_state(data: bytes) -> State:
    """
    Parse a State frame.

    Raises:
        MalformedMessage: On truncated or otherwise invalid frames.
    """
    kind, code, count = _unpack_header(data)
    if kind != KIND_STATE:
        raise MalformedMessage(f"expected state frame, got kind=0x{kind:02x}")
    try:
        status = StatusCode(code)
    except ValueError:
        raise MalformedMessage(f"unknown status code {code}") from None

    expected = state_size(count)
    if len(data) != expected:
        raise MalformedMessage(
            f"state frame is {len(data)} bytes, header announces {expected}"
        )

    fixed = _STATE_FIXED.unpack_from(data, _HEADER.size)
    offset = _HEADER.size + _STATE_FIXED.size
    esc = []
    for _ in range(4):
        esc.append(list(struct.unpack_from(f"<{count}d", data, offset)))
        offset += _DOUBLE_SIZE * count

    return State(
        sim_time=fixed[0],
        status_code=status,
        imu_angular_velocity_rpy=list(fixed[1:4]),
        imu_orientation_quat=list(fixed[4:8]),
        imu_linear_acceleration_xyz=list(fixed[8:11]),
        esc_motor_angular_velocity=esc[0],
        esc_temperature=esc[1],
        esc_current=esc[2],
        esc_voltage=esc[3],
    )


def _unpack_header(data: bytes) -> Tuple[int, int, int]:
    if len(data) < _HEADER.size:
        raise MalformedMessage(f"frame of {len(data)} bytes is shorter than the header")
    return _HEADER.unpack_from(data, 0)
