# Difficulty calculation algorithm: Copyright (c) ppy Pty Ltd <contact@ppy.sh>. Licensed under the MIT Licence.
from math import ceil
from typing import List, Optional

from catchpp.features import GameplayObjectFeature


class StrainDecayAggregator:
    """
    Reduces a per-object strain stream to one difficulty value.

    The strain decays exponentially between objects. The timeline is cut into
    fixed-length sections, the highest strain of each section is kept, and the
    section peaks are summed heaviest first with geometrically falling weights.
    """

    def __init__(self, multiplier: float, strain_decay_base: float, decay_weight: float, section_length: int):
        self.multiplier = multiplier
        self.strain_decay_base = strain_decay_base
        self.decay_weight = decay_weight
        self.section_length = section_length

        self.current_strain = 0.0
        self.current_section_peak = 0.0
        self.current_section_end: Optional[float] = None
        self.strain_peaks: List[float] = []
        self._last_start_time: Optional[float] = None

    @classmethod
    def from_movement(cls, movement):
        return cls(movement.SKILL_MULTIPLIER, movement.STRAIN_DECAY_BASE, movement.DECAY_WEIGHT, movement.SECTION_LENGTH)

    def strain_decay(self, ms: float) -> float:
        return self.strain_decay_base ** (ms / 1000)

    def process(self, current: GameplayObjectFeature, strain_value: float) -> float:
        # The first object decides where the section grid starts
        if self.current_section_end is None:
            self.current_section_end = ceil(current.start_time / self.section_length) * self.section_length

        while current.start_time > self.current_section_end:
            self.strain_peaks.append(self.current_section_peak)
            # The next section starts from the strain decayed up to its boundary
            self.current_section_peak = self.current_strain * self.strain_decay(self.current_section_end - self._last_start_time)
            self.current_section_end += self.section_length

        self.current_strain *= self.strain_decay(current.delta_time)
        self.current_strain += strain_value * self.multiplier
        self.current_section_peak = max(self.current_strain, self.current_section_peak)
        self._last_start_time = current.start_time
        return self.current_strain

    def peaks(self) -> List[float]:
        return self.strain_peaks + [self.current_section_peak]

    def difficulty_value(self) -> float:
        difficulty = 0.0
        weight = 1.0
        for strain in sorted((p for p in self.peaks() if p > 0), reverse=True):
            difficulty += strain * weight
            weight *= self.decay_weight
        return difficulty
