import logging
import os
from typing import Iterable, Optional, Union

import polars as pl
from joblib import Memory, Parallel, delayed
from tqdm import tqdm

from catchpp import config
from catchpp.difficulty import DifficultyAttributes, calculate_difficulty
from catchpp.features import ChartFormatError, load_chart
from catchpp.mods import format_mods, parse_mods
from catchpp.performance import ApproachRateBonus, ScoreInfo, ScoreJudgementCounts, compute_performance

logger = logging.getLogger(__name__)

memory = Memory(location=config.CACHE_DIR or None, verbose=0)

DIFFICULTY_SCHEMA = {
    "beatmap_id": pl.Int64,
    "mods": pl.Utf8,
    "star_rating": pl.Float64,
    "approach_rate": pl.Float64,
    "max_combo": pl.Int64,
    "direction_change_count": pl.Int64,
}
SCORE_COLUMNS = ["beatmap_id", "mods", "great", "large_tick_hit", "small_tick_hit", "small_tick_miss",
                 "miss", "max_combo", "circle_size"]


@memory.cache
def rate_chart(path: str, mods: str, mtime_ns: int) -> dict:
    # mtime_ns is only part of the cache key, so an edited chart is rated again
    chart = load_chart(path)
    attributes = calculate_difficulty(chart, parse_mods(mods))
    return {
        "beatmap_id": chart.beatmap_id,
        "mods": format_mods(attributes.mods),
        "star_rating": attributes.star_rating,
        "approach_rate": attributes.approach_rate,
        "max_combo": attributes.max_combo,
        "direction_change_count": attributes.direction_change_count,
    }


def _rate_or_reason(path: str, mods: str) -> Union[dict, str]:
    try:
        return rate_chart(path, mods, os.stat(path).st_mtime_ns)
    except ChartFormatError as e:
        return str(e)


def rate_charts(paths: Iterable, mods: str = "", workers: Optional[int] = None) -> pl.DataFrame:
    """
    Purpose:
    Rate every chart under one mod combination. Each chart gets its own
    Movement run, so charts are spread over a joblib worker pool. Charts
    that cannot be rated are logged and left out of the frame.
    """
    paths = [str(p) for p in paths]
    workers = config.WORKERS if workers is None else workers
    logger.info(f"Rating {len(paths)} charts with mods [{mods}] on {workers} workers")
    results = Parallel(n_jobs=workers)(
        delayed(_rate_or_reason)(path, mods) for path in tqdm(paths, desc="Charts")
    )
    rows = []
    for path, result in zip(paths, results):
        if isinstance(result, str):
            logger.warning(f"Skipping {path}: {result}")
        else:
            rows.append(result)
    return pl.DataFrame(rows, schema=DIFFICULTY_SCHEMA)


def _score_pp(row: dict, ar_bonus: ApproachRateBonus) -> float:
    score = ScoreInfo(
        statistics=ScoreJudgementCounts(
            great=row["great"],
            large_tick_hit=row["large_tick_hit"],
            small_tick_hit=row["small_tick_hit"],
            small_tick_miss=row["small_tick_miss"],
            miss=row["miss"],
        ),
        max_combo=row["max_combo"],
        circle_size=row["circle_size"],
        mods=parse_mods(row["mods"]),
    )
    attributes = DifficultyAttributes(
        star_rating=row["star_rating"],
        approach_rate=row["approach_rate"],
        max_combo=row["map_max_combo"],
        direction_change_count=row["direction_change_count"],
    )
    return compute_performance(score, attributes, ar_bonus).total


def score_performance(scores: pl.DataFrame, difficulties: pl.DataFrame,
                      ar_bonus: Optional[ApproachRateBonus] = None) -> pl.DataFrame:
    """
    Join scores to the difficulty of their chart/mod combo and add a `pp` column.
    Scores whose combo was not rated are dropped.
    """
    missing = [c for c in SCORE_COLUMNS if c not in scores.columns]
    if missing:
        raise ValueError(f"Scores frame is missing columns: {', '.join(missing)}")
    if ar_bonus is None:
        ar_bonus = ApproachRateBonus(config.AR_BONUS)

    # Mods are compared in canonical form on both sides
    scores = scores.with_columns(
        pl.col("beatmap_id").cast(pl.Int64),
        pl.col("mods").fill_null("").map_elements(lambda m: format_mods(parse_mods(m)), return_dtype=pl.Utf8)
    )
    joined = scores.join(
        difficulties.rename({"max_combo": "map_max_combo"}),
        on=["beatmap_id", "mods"],
        how="inner",
    )
    dropped = scores.height - joined.height
    if dropped:
        logger.warning(f"{dropped} scores have no rated chart/mod combo and were skipped")

    pp = [_score_pp(row, ar_bonus) for row in tqdm(joined.iter_rows(named=True), total=joined.height, desc="Scores")]
    return joined.with_columns(pl.Series("pp", pp, dtype=pl.Float64))
