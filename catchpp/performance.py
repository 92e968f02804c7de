# Difficulty calculation algorithm: Copyright (c) ppy Pty Ltd <contact@ppy.sh>. Licensed under the MIT Licence.
from dataclasses import dataclass, field
from enum import Enum
from math import log
from typing import FrozenSet, Optional

import numpy as np

from catchpp import config
from catchpp.difficulty import DifficultyAttributes
from catchpp.mods import Mod

# Single-precision literal in the flashlight AR term
FLASHLIGHT_AR_SCALE = float(np.float32(0.1))


class ApproachRateBonus(str, Enum):
    # +8% per AR above 9 only applies above AR 9
    GATED = "gated"
    # +8% per AR above 9 applies at every AR, as the reference calculator does
    LITERAL = "literal"


@dataclass(frozen=True)
class ScoreJudgementCounts:
    great: int = 0
    large_tick_hit: int = 0
    small_tick_hit: int = 0
    small_tick_miss: int = 0
    miss: int = 0

    def __post_init__(self):
        for name in ("great", "large_tick_hit", "small_tick_hit", "small_tick_miss", "miss"):
            if getattr(self, name) < 0:
                raise ValueError(f"Judgement count {name} must be non-negative, got {getattr(self, name)}")

    @property
    def total_hits(self) -> int:
        return self.small_tick_hit + self.large_tick_hit + self.great + self.miss + self.small_tick_miss

    @property
    def total_successful_hits(self) -> int:
        return self.small_tick_hit + self.large_tick_hit + self.great

    @property
    def total_combo_hits(self) -> int:
        return self.miss + self.large_tick_hit + self.great

    @property
    def accuracy(self) -> float:
        if self.total_hits == 0:
            return 0.0
        return min(max(self.total_successful_hits / self.total_hits, 0.0), 1.0)


@dataclass(frozen=True)
class ScoreInfo:
    statistics: ScoreJudgementCounts
    max_combo: int
    circle_size: float
    mods: FrozenSet[Mod] = field(default_factory=frozenset)


@dataclass(frozen=True)
class PerformanceResult:
    total: float


def length_bonus(total_combo_hits: int, direction_change_count: int) -> float:
    length_factor = total_combo_hits * 0.5 + direction_change_count
    return log(length_factor + 600, 70) - 1 / log(length_factor + 100, 1000) + 0.77


def approach_rate_factor(approach_rate: float, circle_size: float, bonus: float,
                         ar_bonus: ApproachRateBonus = ApproachRateBonus.GATED) -> float:
    factor = 1.0 + (0.1 * circle_size ** 2 - (0.8 * circle_size) + 2.5) / 6
    if approach_rate > 9.0:
        factor = factor ** (max(1, 1 + 0.87 * (approach_rate - 9.0) ** 1.7) * max(1, bonus ** 0.5))
        if ar_bonus == ApproachRateBonus.GATED:
            factor += 0.08 * (approach_rate - 9.0)
    if ar_bonus == ApproachRateBonus.LITERAL:
        factor += 0.08 * (approach_rate - 9.0)
    if approach_rate > 10.0:
        # Additional 62% at AR 11
        factor += 0.17 * (approach_rate - 10.0) ** 1.4
    return factor


def compute_performance(score: ScoreInfo, attributes: DifficultyAttributes,
                        ar_bonus: Optional[ApproachRateBonus] = None) -> PerformanceResult:
    """
    Purpose:
    Given a played score and the difficulty attributes of its chart/mod combo,
    return the score's performance value.
    """
    if ar_bonus is None:
        ar_bonus = ApproachRateBonus(config.AR_BONUS)
    stats = score.statistics
    misses = stats.miss

    # We are heavily relying on aim in catch the beat
    value = (5.0 * max(1.0, attributes.star_rating / 0.0049) - 4.0) ** 2 / 170000.0

    # Longer maps are worth more. "Longer" means how many hits there are which can contribute to combo
    bonus = length_bonus(stats.total_combo_hits, attributes.direction_change_count)
    value *= bonus

    # Penalize misses exponentially
    value *= 0.96 ** misses

    if attributes.max_combo > 0:
        value *= min(score.max_combo ** 0.42 / attributes.max_combo ** 0.42, 1.0)

    approach_rate = attributes.approach_rate
    value *= approach_rate_factor(approach_rate, score.circle_size, bonus, ar_bonus)

    if Mod.HIDDEN in score.mods:
        # Hidden gives almost nothing on max approach rate, and more the lower it is
        if approach_rate <= 10.0:
            value *= 1.06 + 0.07 * (10.0 - min(10.0, approach_rate))
        else:
            value *= 1 + 0.04 * (11.0 - min(11.0, approach_rate))

        if approach_rate < 9.0:
            value *= 1 + 0.03 * (9.0 - approach_rate)

    if Mod.FLASHLIGHT in score.mods:
        # Flashlight becomes a lot harder on longer maps
        value *= bonus ** 1.61

        if approach_rate > 8.0:
            value *= FLASHLIGHT_AR_SCALE * (approach_rate - 8.0) + 1

    # Scale with accuracy _slightly_
    value *= stats.accuracy ** 5.7

    if Mod.NO_FAIL in score.mods:
        value *= max(0.90, 1.0 - 0.02 * misses)

    return PerformanceResult(total=value)
