import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

import numpy as np
import orjson

logger = logging.getLogger(__name__)

NORMALIZED_HITOBJECT_RADIUS = np.float32(41.0)
# Every strain interval is hard capped at the equivalent of 375 BPM streaming speed
MIN_STRAIN_TIME = 40.0


class ChartFormatError(ValueError):
    pass


@dataclass(frozen=True)
class PreviousObject:
    hyper_dash: bool = False
    distance_to_hyper_dash: float = float("inf")


@dataclass(frozen=True)
class GameplayObjectFeature:
    start_time: float
    delta_time: float
    strain_time: float
    normalized_position: np.float32
    last_normalized_position: np.float32
    previous: PreviousObject = field(default_factory=PreviousObject)


@dataclass(frozen=True)
class CatchObject:
    time: float
    x: float
    hyper_dash: bool = False
    distance_to_hyper_dash: float = float("inf")


@dataclass(frozen=True)
class Chart:
    beatmap_id: int
    circle_size: float
    approach_rate: float
    max_combo: int
    objects: List[CatchObject]


def build_features(objects, half_catcher_width, clock_rate: float = 1.0) -> List[GameplayObjectFeature]:
    """
    Pairs every palpable object with the one before it. The first object has no
    predecessor and yields no feature.
    """
    scaling_factor = NORMALIZED_HITOBJECT_RADIUS / np.float32(half_catcher_width)
    ordered = sorted(objects, key=lambda o: o.time)

    features = []
    for last, current in zip(ordered, ordered[1:]):
        delta_time = (current.time - last.time) / clock_rate
        features.append(GameplayObjectFeature(
            start_time=current.time / clock_rate,
            delta_time=delta_time,
            strain_time=max(MIN_STRAIN_TIME, delta_time),
            normalized_position=np.float32(current.x) * scaling_factor,
            last_normalized_position=np.float32(last.x) * scaling_factor,
            previous=PreviousObject(
                hyper_dash=last.hyper_dash,
                distance_to_hyper_dash=float(last.distance_to_hyper_dash),
            ),
        ))
    return features


def _require(data: Dict[str, Any], key: str, kind, where: str):
    if key not in data:
        raise ChartFormatError(f"{where}: missing key {key!r}")
    try:
        return kind(data[key])
    except (TypeError, ValueError) as e:
        raise ChartFormatError(f"{where}: invalid {key!r}: {e}") from e


def chart_from_dict(data: Dict[str, Any], where: str = "chart") -> Chart:
    if not isinstance(data, dict):
        raise ChartFormatError(f"{where}: expected an object, got {type(data).__name__}")
    raw_objects = data.get("objects")
    if not isinstance(raw_objects, list):
        raise ChartFormatError(f"{where}: 'objects' must be a list")

    objects = []
    for i, obj in enumerate(raw_objects):
        loc = f"{where}: objects[{i}]"
        if not isinstance(obj, dict):
            raise ChartFormatError(f"{loc}: expected an object")
        objects.append(CatchObject(
            time=_require(obj, "time", float, loc),
            x=_require(obj, "x", float, loc),
            hyper_dash=bool(obj.get("hyper_dash", False)),
            distance_to_hyper_dash=float(obj.get("distance_to_hyper_dash", float("inf"))),
        ))

    return Chart(
        beatmap_id=_require(data, "beatmap_id", int, where),
        circle_size=_require(data, "circle_size", float, where),
        approach_rate=_require(data, "approach_rate", float, where),
        max_combo=_require(data, "max_combo", int, where),
        objects=objects,
    )


def load_chart(path) -> Chart:
    with open(path, "rb") as f:
        raw = f.read()
    try:
        data = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise ChartFormatError(f"{path}: not valid JSON: {e}") from e
    chart = chart_from_dict(data, where=str(path))
    logger.debug(f"Loaded chart {chart.beatmap_id} with {len(chart.objects)} objects from {path}")
    return chart
