from catchpp.difficulty import DifficultyAttributes, calculate_difficulty
from catchpp.features import GameplayObjectFeature, PreviousObject, build_features, load_chart
from catchpp.mods import Mod, parse_mods
from catchpp.movement import Movement, MovementState, evaluate, strain_of
from catchpp.performance import (
    ApproachRateBonus,
    PerformanceResult,
    ScoreInfo,
    ScoreJudgementCounts,
    compute_performance,
)

__all__ = [
    "ApproachRateBonus",
    "DifficultyAttributes",
    "GameplayObjectFeature",
    "Mod",
    "Movement",
    "MovementState",
    "PerformanceResult",
    "PreviousObject",
    "ScoreInfo",
    "ScoreJudgementCounts",
    "build_features",
    "calculate_difficulty",
    "compute_performance",
    "evaluate",
    "load_chart",
    "parse_mods",
    "strain_of",
]
