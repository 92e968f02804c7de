import os

# Keep joblib from writing a difficulty cache into the working tree
os.environ["CATCHPP_CACHE_DIR"] = ""
os.environ.setdefault("CATCHPP_AR_BONUS", "gated")

import numpy as np
import orjson
import pytest

from catchpp.features import GameplayObjectFeature, PreviousObject


def make_feature(position, last_position=0.0, strain_time=100.0, hyper_dash=False,
                 distance_to_hyper_dash=float("inf"), start_time=1000.0, delta_time=None):
    return GameplayObjectFeature(
        start_time=start_time,
        delta_time=strain_time if delta_time is None else delta_time,
        strain_time=strain_time,
        normalized_position=np.float32(position),
        last_normalized_position=np.float32(last_position),
        previous=PreviousObject(hyper_dash=hyper_dash, distance_to_hyper_dash=distance_to_hyper_dash),
    )


def zigzag_chart(beatmap_id=1, n=20):
    return {
        "beatmap_id": beatmap_id,
        "circle_size": 4.0,
        "approach_rate": 8.0,
        "max_combo": n,
        "objects": [
            {"time": 1000 + i * 200, "x": 100 if i % 2 == 0 else 400, "hyper_dash": False,
             "distance_to_hyper_dash": 50.0}
            for i in range(n)
        ],
    }


@pytest.fixture
def chart_dict():
    return zigzag_chart()


@pytest.fixture
def chart_path(tmp_path, chart_dict):
    path = tmp_path / f"{chart_dict['beatmap_id']}.json"
    path.write_bytes(orjson.dumps(chart_dict))
    return path
