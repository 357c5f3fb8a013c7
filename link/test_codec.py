#!/usr/bin/env python3
"""
Codec tests: symmetric round trips, malformed frames and size limits.
"""

from __future__ import annotations

import struct
import unittest

from errors import MalformedMessage, MessageTooLarge
from link.codec import (
    KIND_ACTION,
    action_size,
    decode_action,
    decode_state,
    encode_action,
    encode_state,
    state_size,
)
from link.message import Action, ControlCode, State, StatusCode, initial_state


def _sample_state(num_actuators: int) -> State:
    return State(
        sim_time=12.345,
        status_code=StatusCode.SENSOR_TIMEOUT,
        imu_angular_velocity_rpy=[0.01, -0.02, 0.3],
        imu_orientation_quat=[0.99, 0.01, -0.02, 0.1],
        imu_linear_acceleration_xyz=[0.0, 0.1, 9.81],
        esc_motor_angular_velocity=[100.0 + i for i in range(num_actuators)],
        esc_temperature=[30.0 + i for i in range(num_actuators)],
        esc_current=[1.5 * i for i in range(num_actuators)],
        esc_voltage=[16.8 - 0.1 * i for i in range(num_actuators)],
    )


class ActionCodecTests(unittest.TestCase):
    def test_step_round_trip(self) -> None:
        action = Action(motor=[0.1, 0.2, 0.3, 0.4], control=ControlCode.STEP)
        self.assertEqual(decode_action(encode_action(action), num_actuators=4), action)

    def test_reset_round_trip_without_motor(self) -> None:
        action = Action(control=ControlCode.RESET)
        self.assertEqual(decode_action(encode_action(action)), action)

    def test_encoded_length(self) -> None:
        self.assertEqual(len(encode_action(Action(motor=[0.0] * 6))), action_size(6))

    def test_step_with_wrong_motor_count_is_malformed(self) -> None:
        data = encode_action(Action(motor=[0.1, 0.1, 0.1]))
        with self.assertRaises(MalformedMessage):
            decode_action(data, num_actuators=4)

    def test_reset_ignores_motor_count(self) -> None:
        data = encode_action(Action(motor=[0.5], control=ControlCode.RESET))
        action = decode_action(data, num_actuators=4)
        self.assertIs(action.control, ControlCode.RESET)

    def test_truncated_frame_is_malformed(self) -> None:
        data = encode_action(Action(motor=[0.1, 0.1, 0.1, 0.1]))
        for cut in (0, 1, 3, len(data) - 1):
            with self.subTest(cut=cut), self.assertRaises(MalformedMessage):
                decode_action(data[:cut], num_actuators=4)

    def test_trailing_bytes_are_malformed(self) -> None:
        data = encode_action(Action(motor=[0.1, 0.1])) + b"\x00"
        with self.assertRaises(MalformedMessage):
            decode_action(data)

    def test_garbage_is_malformed(self) -> None:
        with self.assertRaises(MalformedMessage):
            decode_action(b"\xde\xad\xbe\xef garbage")

    def test_unknown_control_code_is_malformed(self) -> None:
        data = struct.pack("<BBH", KIND_ACTION, 7, 0)
        with self.assertRaises(MalformedMessage):
            decode_action(data)

    def test_state_frame_is_not_an_action(self) -> None:
        with self.assertRaises(MalformedMessage):
            decode_action(encode_state(initial_state(0)))

    def test_non_finite_step_command_is_malformed(self) -> None:
        data = encode_action(Action(motor=[0.1, float("nan")]))
        with self.assertRaises(MalformedMessage):
            decode_action(data, num_actuators=2)


class StateCodecTests(unittest.TestCase):
    def test_round_trip(self) -> None:
        state = _sample_state(4)
        self.assertEqual(decode_state(encode_state(state)), state)

    def test_round_trip_without_escs(self) -> None:
        state = _sample_state(0)
        self.assertEqual(decode_state(encode_state(state)), state)

    def test_initial_state_round_trip(self) -> None:
        state = initial_state(8)
        self.assertEqual(decode_state(encode_state(state)), state)

    def test_encoded_length(self) -> None:
        self.assertEqual(len(encode_state(_sample_state(4))), state_size(4))

    def test_largest_state_fitting_1024_bytes(self) -> None:
        fits = (1024 - state_size(0)) // (state_size(1) - state_size(0))
        self.assertLessEqual(len(encode_state(_sample_state(fits))), 1024)
        with self.assertRaises(MessageTooLarge):
            encode_state(_sample_state(fits + 1))

    def test_size_check_can_be_disabled(self) -> None:
        state = _sample_state(64)
        self.assertEqual(decode_state(encode_state(state, max_size=None)), state)

    def test_mismatched_esc_lengths_rejected(self) -> None:
        state = _sample_state(4)
        state.esc_voltage.pop()
        with self.assertRaises(ValueError):
            encode_state(state)

    def test_truncated_state_is_malformed(self) -> None:
        data = encode_state(_sample_state(4))
        with self.assertRaises(MalformedMessage):
            decode_state(data[:-8])


if __name__ == "__main__":
    unittest.main()
