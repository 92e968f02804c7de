# Difficulty calculation algorithm: Copyright (c) ppy Pty Ltd <contact@ppy.sh>. Licensed under the MIT Licence.
import logging
from dataclasses import dataclass
from math import isfinite, sqrt
from typing import FrozenSet, Iterable

import numpy as np

from catchpp.features import Chart, ChartFormatError, build_features
from catchpp.mods import Mod, apply_difficulty_mods, clock_rate, format_mods
from catchpp.movement import Movement
from catchpp.strain import StrainDecayAggregator

logger = logging.getLogger(__name__)

STAR_SCALING_FACTOR = 0.153

CATCHER_BASE_SIZE = np.float32(106.75)
ALLOWED_CATCH_RANGE = np.float32(0.8)


@dataclass(frozen=True)
class DifficultyAttributes:
    star_rating: float
    approach_rate: float
    max_combo: int
    direction_change_count: int
    movement_difficulty: float = 0.0
    mods: FrozenSet[Mod] = frozenset()


def half_catcher_width(circle_size: float) -> np.float32:
    cs = np.float32(circle_size)
    scale = np.float32(1.0) - np.float32(0.7) * (cs - np.float32(5)) / np.float32(5)
    width = CATCHER_BASE_SIZE * abs(scale) * ALLOWED_CATCH_RANGE * np.float32(0.5)
    # For circle sizes above 5.5, reduce the catcher width further to simulate imperfect gameplay
    return width * (np.float32(1) - max(np.float32(0), cs - np.float32(5.5)) * np.float32(0.0625))


def difficulty_range(difficulty: float, low: float, mid: float, high: float) -> float:
    if difficulty > 5:
        return mid + (high - mid) * (difficulty - 5) / 5
    if difficulty < 5:
        return mid + (mid - low) * (difficulty - 5) / 5
    return mid


def adjusted_approach_rate(approach_rate: float, rate: float) -> float:
    preempt = difficulty_range(approach_rate, 1800, 1200, 450) / rate
    if preempt > 1200.0:
        return -(preempt - 1800.0) / 120.0
    return -(preempt - 1200.0) / 150.0 + 5.0


def calculate_difficulty(chart: Chart, mods: Iterable[Mod] = ()) -> DifficultyAttributes:
    mods = frozenset(mods)
    rate = clock_rate(mods)
    circle_size, approach_rate = apply_difficulty_mods(chart.circle_size, chart.approach_rate, mods)
    approach_rate = adjusted_approach_rate(approach_rate, rate)

    if len(chart.objects) < 2:
        return DifficultyAttributes(star_rating=0.0, approach_rate=approach_rate, max_combo=chart.max_combo,
                                    direction_change_count=0, mods=mods)

    width = half_catcher_width(circle_size)
    movement = Movement(width, rate)
    aggregator = StrainDecayAggregator.from_movement(movement)
    for feature in build_features(chart.objects, width, rate):
        value = movement.process(feature)
        if not isfinite(value):
            # Hyperdash flags that disagree with the object spacing
            raise ChartFormatError(f"Chart {chart.beatmap_id}: movement value {value} at t={feature.start_time}")
        aggregator.process(feature, value)

    movement_difficulty = aggregator.difficulty_value()
    star_rating = sqrt(movement_difficulty) * STAR_SCALING_FACTOR
    logger.debug(f"Chart {chart.beatmap_id} [{format_mods(mods)}]: "
                 f"{star_rating:.4f} stars, {movement.direction_change_count} direction changes")

    return DifficultyAttributes(
        star_rating=star_rating,
        approach_rate=approach_rate,
        max_combo=chart.max_combo,
        direction_change_count=movement.direction_change_count,
        movement_difficulty=movement_difficulty,
        mods=mods,
    )
