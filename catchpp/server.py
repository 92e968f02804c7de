from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from catchpp.difficulty import DifficultyAttributes, calculate_difficulty
from catchpp.features import ChartFormatError, chart_from_dict
from catchpp.mods import UnknownModError, format_mods, parse_mods
from catchpp.performance import ApproachRateBonus, ScoreInfo, ScoreJudgementCounts, compute_performance

app = FastAPI()


class DifficultyRequest(BaseModel):
    chart: Dict[str, Any]
    mods: str = ""


class AttributesBody(BaseModel):
    star_rating: float
    approach_rate: float
    max_combo: int = Field(ge=0)
    direction_change_count: int = Field(ge=0)


class ScoreBody(BaseModel):
    great: int = Field(0, ge=0)
    large_tick_hit: int = Field(0, ge=0)
    small_tick_hit: int = Field(0, ge=0)
    small_tick_miss: int = Field(0, ge=0)
    miss: int = Field(0, ge=0)
    max_combo: int = Field(ge=0)
    circle_size: float
    mods: List[str] = []


class PerformanceRequest(BaseModel):
    attributes: AttributesBody
    score: ScoreBody
    ar_bonus: Optional[ApproachRateBonus] = None


@app.post("/difficulty")
def difficulty(request: DifficultyRequest):
    try:
        chart = chart_from_dict(request.chart)
        mods = parse_mods(request.mods)
        attributes = calculate_difficulty(chart, mods)
    except (ChartFormatError, UnknownModError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {
        "beatmap_id": chart.beatmap_id,
        "mods": format_mods(mods),
        "star_rating": attributes.star_rating,
        "approach_rate": attributes.approach_rate,
        "max_combo": attributes.max_combo,
        "direction_change_count": attributes.direction_change_count,
    }


@app.post("/performance")
def performance(request: PerformanceRequest):
    s = request.score
    try:
        mods = parse_mods(s.mods)
    except UnknownModError as e:
        raise HTTPException(status_code=400, detail=str(e))
    score = ScoreInfo(
        statistics=ScoreJudgementCounts(s.great, s.large_tick_hit, s.small_tick_hit, s.small_tick_miss, s.miss),
        max_combo=s.max_combo,
        circle_size=s.circle_size,
        mods=mods,
    )
    attributes = DifficultyAttributes(**request.attributes.model_dump())
    return {"total": compute_performance(score, attributes, request.ar_bonus).total}
