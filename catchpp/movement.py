# Difficulty calculation algorithm: Copyright (c) ppy Pty Ltd <contact@ppy.sh>. Licensed under the MIT Licence.
import logging
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Tuple

import numpy as np

from catchpp.features import NORMALIZED_HITOBJECT_RADIUS, GameplayObjectFeature

logger = logging.getLogger(__name__)

ABSOLUTE_PLAYER_POSITIONING_ERROR = np.float32(12.0)
POSITIONING_WINDOW = NORMALIZED_HITOBJECT_RADIUS - ABSOLUTE_PLAYER_POSITIONING_ERROR
EDGE_DASH_THRESHOLD = np.float32(20.0)
LOG_TAP_DASH_BASE = np.log(1.3)


def _sign(x) -> int:
    return int(x > 0) - int(x < 0)


@dataclass(frozen=True)
class TapDash:
    """An armed tap-dash boost: a tap right after a hyperdash landing."""
    direction: int
    strain_time: float = 0.0
    distance: float = 0.0


@dataclass(frozen=True)
class MovementState:
    last_player_position: Optional[np.float32] = None
    last_distance_moved: np.float32 = np.float32(0.0)
    last_strain_time: float = 0.0
    last_exact_distance_moved: float = 0.0
    previous_last_object_was_hyper_dash: bool = False
    tap_dash: Optional[TapDash] = None
    buzz_triggered: bool = False
    direction_change_count: int = 0


@dataclass(frozen=True)
class MovementResult:
    strains: List[float]
    direction_change_count: int


def strain_of(state: MovementState, current: GameplayObjectFeature,
              half_catcher_width, clock_rate: float) -> Tuple[MovementState, float]:
    """
    One step of the movement recurrence. Returns the next state and the
    movement value of `current`.
    """
    last_player_position = state.last_player_position
    if last_player_position is None:
        last_player_position = np.float32(current.last_normalized_position)

    position = np.float32(current.normalized_position)
    player_position = min(max(last_player_position, position - POSITIONING_WINDOW), position + POSITIONING_WINDOW)

    distance_moved = player_position - last_player_position
    exact_distance_moved = float(position - last_player_position)
    abs_distance = abs(float(distance_moved))

    # In catch, clock rate adjustments also change the catcher's speed
    weighted_strain_time = current.strain_time / clock_rate ** 0.15
    is_same_direction = _sign(exact_distance_moved) == _sign(state.last_exact_distance_moved)

    last_sign = _sign(state.last_distance_moved)
    reversed_direction = _sign(distance_moved) != last_sign and last_sign != 0

    direction_change_count = state.direction_change_count
    if reversed_direction and abs_distance > ABSOLUTE_PLAYER_POSITIONING_ERROR:
        direction_change_count += 1

    last_object = current.previous
    if not last_object.hyper_dash:
        # The base value is a ratio between distance moved and strain time
        movement_value = 0.125 * (abs_distance ** 0.76 / weighted_strain_time) ** 1.3

        if abs_distance > 0.1 and reversed_direction:
            # Shorter movements upon direction change are buffed
            movement_value *= 1.2 + 40 / abs(exact_distance_moved) ** 0.7
        else:
            movement_value *= 0.65
    else:
        # Both strain time and distance moved are scaled down for hyperdashes
        movement_value = 0.092 * (abs_distance / weighted_strain_time) ** 0.5

        # Hyperdash chains
        if is_same_direction:
            movement_value *= abs_distance ** 0.5 / 36
        else:
            # A reversal the catcher never had to move for is 0 * inf, so NaN
            with np.errstate(divide="ignore", invalid="ignore"):
                movement_value *= np.float64(1.29) / np.float64(abs_distance) ** 0.2

    # Tap-dashes ending with hyperdashes (stacks that require tapping in the same direction)
    tap_dash = state.tap_dash
    if last_object.hyper_dash and abs_distance > half_catcher_width and tap_dash is not None:
        if tap_dash.direction == _sign(distance_moved):
            # Stacks of 33ms or less give -inf or NaN, and NaN carries through the max
            with np.errstate(divide="ignore", invalid="ignore"):
                scaling_factor = np.log(np.float64(tap_dash.strain_time - 33)) / LOG_TAP_DASH_BASE \
                    - 0.07 * tap_dash.strain_time - 7.7
                # Nerfed when the stack is not straight
                tap_dash_bonus = scaling_factor * max(0.0, -0.03 * abs(tap_dash.distance) + 1)
                movement_value *= 1 + np.maximum(0.0, tap_dash_bonus)
        tap_dash = None

    if state.previous_last_object_was_hyper_dash and abs(state.last_distance_moved) > 0 and distance_moved == 0:
        tap_dash = TapDash(direction=_sign(state.last_distance_moved))

    if tap_dash is not None:
        tap_dash = TapDash(
            direction=tap_dash.direction,
            strain_time=tap_dash.strain_time + weighted_strain_time,
            distance=tap_dash.distance + exact_distance_moved,
        )

    # Edge dashes
    distance_to_hyper_dash = np.float32(last_object.distance_to_hyper_dash)
    if distance_to_hyper_dash <= EDGE_DASH_THRESHOLD:
        edge_dash_bonus = 0.0
        if not last_object.hyper_dash:
            edge_dash_bonus += 10
        else:
            # A hyperdash always lands the catcher exactly on the object
            player_position = position

        # Edge dashes are easier at lower ms values
        edge_scale = float((EDGE_DASH_THRESHOLD - distance_to_hyper_dash) / np.float32(45))
        movement_value *= 1.0 + edge_dash_bonus * edge_scale * (min(current.strain_time, 265) / 265) ** 2

    buzz_triggered = state.buzz_triggered
    if (abs_distance <= ABSOLUTE_PLAYER_POSITIONING_ERROR
            and abs(exact_distance_moved) == abs(state.last_exact_distance_moved)
            and current.strain_time == state.last_strain_time):
        if buzz_triggered:
            movement_value = 0.0
        else:
            buzz_triggered = True
    else:
        buzz_triggered = False

    next_state = replace(
        state,
        last_player_position=player_position,
        last_distance_moved=distance_moved,
        last_strain_time=current.strain_time,
        last_exact_distance_moved=exact_distance_moved,
        previous_last_object_was_hyper_dash=last_object.hyper_dash,
        tap_dash=tap_dash,
        buzz_triggered=buzz_triggered,
        direction_change_count=direction_change_count,
    )
    return next_state, float(movement_value)


class Movement:
    """
    Aim difficulty of moving the catcher between objects. One instance owns
    the recurrence state of one run and must see objects in time order.
    """
    SKILL_MULTIPLIER = 610
    STRAIN_DECAY_BASE = 0.2
    DECAY_WEIGHT = 0.94
    SECTION_LENGTH = 750

    def __init__(self, half_catcher_width, clock_rate: float = 1.0):
        self.half_catcher_width = np.float32(half_catcher_width)
        self.clock_rate = clock_rate
        self.state = MovementState()

    @property
    def direction_change_count(self) -> int:
        return self.state.direction_change_count

    def process(self, current: GameplayObjectFeature) -> float:
        self.state, value = strain_of(self.state, current, self.half_catcher_width, self.clock_rate)
        return value


def evaluate(features: Iterable[GameplayObjectFeature], half_catcher_width, clock_rate: float = 1.0) -> MovementResult:
    movement = Movement(half_catcher_width, clock_rate)
    strains = [movement.process(f) for f in features]
    logger.debug(f"Evaluated {len(strains)} objects, {movement.direction_change_count} direction changes")
    return MovementResult(strains=strains, direction_change_count=movement.direction_change_count)
