from dataclasses import replace
from math import log

import numpy as np
import pytest

from catchpp.movement import Movement, MovementState, TapDash, evaluate, strain_of
from tests.conftest import make_feature

HALF_WIDTH = np.float32(50.0)


def run(features, clock_rate=1.0):
    state = MovementState()
    states, values = [], []
    for f in features:
        state, value = strain_of(state, f, HALF_WIDTH, clock_rate)
        states.append(state)
        values.append(value)
    return states, values


def test_first_object_starts_from_last_position():
    state, value = strain_of(MovementState(), make_feature(100, last_position=0), HALF_WIDTH, 1.0)

    # The catcher only needs to reach the edge of the object's window
    assert state.last_player_position == np.float32(71)
    assert state.last_distance_moved == np.float32(71)
    assert state.last_exact_distance_moved == 100.0
    assert value == pytest.approx(0.125 * (71 ** 0.76 / 100) ** 1.3 * 0.65, rel=1e-12)


def test_constant_position_has_no_strain_or_direction_changes():
    features = [make_feature(200, last_position=200, start_time=1000 + 100 * i) for i in range(10)]
    result = evaluate(features, HALF_WIDTH)

    assert result.strains == [0.0] * 10
    assert result.direction_change_count == 0


def test_direction_change_is_counted_and_buffed():
    features = [make_feature(100, last_position=0), make_feature(0, last_position=100)]
    states, values = run(features)

    assert states[0].direction_change_count == 0
    assert states[1].direction_change_count == 1
    assert states[1].last_player_position == np.float32(29)
    expected = 0.125 * (42 ** 0.76 / 100) ** 1.3 * (1.2 + 40 / 71 ** 0.7)
    assert values[1] == pytest.approx(expected, rel=1e-12)


def test_small_reversal_is_not_a_direction_change():
    # Catcher at 71, object at 32: only 10 units of movement are required
    features = [make_feature(100, last_position=0), make_feature(32, last_position=100)]
    states, values = run(features)

    assert states[1].last_distance_moved == np.float32(-10)
    assert states[1].direction_change_count == 0
    assert values[1] > 0


def test_direction_change_count_never_decreases():
    positions = [0, 200, 0, 210, 190, 400, 0, 0, 150]
    features = [make_feature(p, last_position=positions[i - 1] if i else 0) for i, p in enumerate(positions)]
    states, _ = run(features)
    counts = [s.direction_change_count for s in states]

    assert counts == sorted(counts)


def test_hyper_dash_chain_in_same_direction():
    features = [
        make_feature(100, last_position=0),
        make_feature(300, last_position=100, hyper_dash=True),
    ]
    _, values = run(features)

    expected = 0.092 * (200 / 100) ** 0.5 * 200 ** 0.5 / 36
    assert values[1] == pytest.approx(expected, rel=1e-12)


def test_hyper_dash_after_direction_change():
    features = [
        make_feature(100, last_position=0),
        make_feature(-200, last_position=100, hyper_dash=True),
    ]
    _, values = run(features)

    # Catcher moves from 71 to -171
    expected = 0.092 * (242 / 100) ** 0.5 * 1.29 / 242 ** 0.2
    assert values[1] == pytest.approx(expected, rel=1e-12)


def tap_dash_stack():
    return [
        make_feature(100, last_position=0),
        # Hyperdash from the first object lands the catcher at 271
        make_feature(300, last_position=100, hyper_dash=True),
        # Tap on a stacked object right after the landing
        make_feature(300, last_position=300),
    ]


def test_tap_after_hyper_dash_arms_boost():
    states, values = run(tap_dash_stack())

    assert states[1].tap_dash is None
    assert states[2].tap_dash == TapDash(direction=1, strain_time=100.0, distance=29.0)
    # Arming does not change the strain of the tap itself
    assert values[2] == 0.0


def test_armed_boost_applies_to_hyper_dash_in_same_direction():
    states, _ = run(tap_dash_stack())
    follow_up = make_feature(600, last_position=300, hyper_dash=True)

    boosted_state, boosted = strain_of(states[2], follow_up, HALF_WIDTH, 1.0)
    _, plain = strain_of(replace(states[2], tap_dash=None), follow_up, HALF_WIDTH, 1.0)

    scaling_factor = log(100.0 - 33, 1.3) - 0.07 * 100.0 - 7.7
    assert boosted == pytest.approx(plain * (1 + max(0.0, scaling_factor * (1 - 0.03 * 29))), rel=1e-12)
    assert boosted > plain
    assert boosted_state.tap_dash is None


def test_armed_boost_is_dropped_on_opposite_direction():
    states, _ = run(tap_dash_stack())
    follow_up = make_feature(0, last_position=300, hyper_dash=True)

    boosted_state, boosted = strain_of(states[2], follow_up, HALF_WIDTH, 1.0)
    _, plain = strain_of(replace(states[2], tap_dash=None), follow_up, HALF_WIDTH, 1.0)

    assert boosted == plain
    assert boosted_state.tap_dash is None


def test_armed_boost_accumulates_until_resolved():
    states, _ = run(tap_dash_stack())
    # A small non-hyperdash step keeps the boost armed
    state, _ = strain_of(states[2], make_feature(305, last_position=300, strain_time=80), HALF_WIDTH, 1.0)

    assert state.tap_dash.direction == 1
    assert state.tap_dash.strain_time == pytest.approx(180.0)
    assert state.tap_dash.distance == pytest.approx(29.0 + 34.0)


def test_edge_dash_bonus():
    plain_feature = make_feature(100, last_position=0, strain_time=265)
    edge_feature = make_feature(100, last_position=0, strain_time=265, distance_to_hyper_dash=11.0)

    _, plain = strain_of(MovementState(), plain_feature, HALF_WIDTH, 1.0)
    _, edge = strain_of(MovementState(), edge_feature, HALF_WIDTH, 1.0)

    assert edge == pytest.approx(plain * (1 + 10 * (9 / 45)), rel=1e-6)


def test_edge_dash_bonus_scales_down_with_short_strain_time():
    plain_feature = make_feature(100, last_position=0, strain_time=132.5)
    edge_feature = make_feature(100, last_position=0, strain_time=132.5, distance_to_hyper_dash=11.0)

    _, plain = strain_of(MovementState(), plain_feature, HALF_WIDTH, 1.0)
    _, edge = strain_of(MovementState(), edge_feature, HALF_WIDTH, 1.0)

    assert edge == pytest.approx(plain * (1 + 10 * (9 / 45) * 0.25), rel=1e-6)


def test_hyper_dash_landing_snaps_catcher_to_object():
    feature = make_feature(100, last_position=0, hyper_dash=True, distance_to_hyper_dash=5.0)
    reference = make_feature(100, last_position=0, hyper_dash=True)

    state, value = strain_of(MovementState(), feature, HALF_WIDTH, 1.0)
    _, reference_value = strain_of(MovementState(), reference, HALF_WIDTH, 1.0)

    assert state.last_player_position == np.float32(100)
    # The distance moved is still the clamped one
    assert state.last_distance_moved == np.float32(71)
    assert value == reference_value


def buzz_features(count):
    # Catcher alternates between 0 and 10 while objects alternate between 39 and -29
    return [make_feature(39 if i % 2 == 0 else -29, last_position=0, strain_time=100)
            for i in range(count)]


def test_repeated_identical_movement_is_zeroed():
    states, values = run(buzz_features(4))

    assert [s.last_player_position for s in states] == [np.float32(10), np.float32(0), np.float32(10), np.float32(0)]
    assert values[0] > 0
    # First repetition only raises the flag
    assert values[1] > 0
    assert states[1].buzz_triggered
    assert values[2] == 0.0
    assert values[3] == 0.0
    assert states[3].direction_change_count == 0


def test_buzz_flag_clears_on_different_timing():
    features = buzz_features(3) + [make_feature(-29, strain_time=150)]
    states, values = run(features)

    assert values[2] == 0.0
    assert not states[3].buzz_triggered
    assert values[3] > 0


def test_clock_rate_weights_strain_time():
    feature = make_feature(100, last_position=0)
    _, normal = strain_of(MovementState(), feature, HALF_WIDTH, 1.0)
    _, fast = strain_of(MovementState(), feature, HALF_WIDTH, 1.5)

    assert fast == pytest.approx(normal * (1.5 ** 0.15) ** 1.3, rel=1e-12)


def test_runs_are_independent():
    def build():
        positions = [0, 150, 20, 300, 300, 80, 400, 10]
        return [make_feature(p, last_position=positions[i - 1] if i else 0, strain_time=90 + 10 * (i % 3),
                             hyper_dash=i == 3, distance_to_hyper_dash=15.0 if i == 5 else float("inf"))
                for i, p in enumerate(positions)]

    first = evaluate(build(), HALF_WIDTH, 1.5)
    second = evaluate(build(), HALF_WIDTH, 1.5)

    assert first.strains == second.strains
    assert first.direction_change_count == second.direction_change_count


def test_movement_exposes_aggregation_constants():
    movement = Movement(HALF_WIDTH)
    assert (movement.SKILL_MULTIPLIER, movement.STRAIN_DECAY_BASE, movement.DECAY_WEIGHT, movement.SECTION_LENGTH) == \
        (610, 0.2, 0.94, 750)

    movement.process(make_feature(100, last_position=0))
    movement.process(make_feature(0, last_position=100))
    assert movement.direction_change_count == 1


def test_hyper_dash_reversal_without_movement_is_nan():
    # Catcher at 100 already covers an object at 90, yet the step reverses direction
    state = MovementState(last_player_position=np.float32(100), last_exact_distance_moved=50.0)
    next_state, value = strain_of(state, make_feature(90, last_position=100, hyper_dash=True), HALF_WIDTH, 1.0)

    assert np.isnan(value)
    assert next_state.last_player_position == np.float32(100)
    assert next_state.direction_change_count == 0


def test_short_tap_dash_stack_is_nan():
    state = MovementState(last_player_position=np.float32(0), tap_dash=TapDash(direction=1, strain_time=20.0))
    next_state, value = strain_of(state, make_feature(200, hyper_dash=True, strain_time=20), HALF_WIDTH, 1.0)

    assert np.isnan(value)
    assert next_state.tap_dash is None


def test_tap_dash_stack_of_33ms_gets_no_boost():
    # log(0) is -inf, which the max clamps back to no bonus
    state = MovementState(last_player_position=np.float32(0), tap_dash=TapDash(direction=1, strain_time=33.0))
    feature = make_feature(200, hyper_dash=True, strain_time=20)

    _, boosted = strain_of(state, feature, HALF_WIDTH, 1.0)
    _, plain = strain_of(replace(state, tap_dash=None), feature, HALF_WIDTH, 1.0)

    assert boosted == plain
