import logging
from pathlib import Path

import click
import polars as pl

from catchpp import config
from catchpp.batch import rate_charts, score_performance
from catchpp.difficulty import calculate_difficulty
from catchpp.features import ChartFormatError, load_chart
from catchpp.mods import UnknownModError, format_mods, parse_mods
from catchpp.performance import ApproachRateBonus, ScoreInfo, ScoreJudgementCounts, compute_performance

logger = logging.getLogger(__name__)


def _rate(chart_path, mods):
    try:
        chart, mods = load_chart(chart_path), parse_mods(mods)
        return chart, mods, calculate_difficulty(chart, mods)
    except (ChartFormatError, UnknownModError) as e:
        raise click.ClickException(str(e))


@click.group()
@click.option("--log-level", default=config.LOG_LEVEL, show_default=True, help="Python logging level.")
def main(log_level):
    """Difficulty and performance calculation for osu!catch."""
    logging.basicConfig(level=log_level.upper())


@main.command()
@click.argument("chart_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--mods", default="", help='Mod acronyms, e.g. "HDDT".')
def difficulty(chart_path, mods):
    chart, mods, attributes = _rate(chart_path, mods)
    click.echo(f"Beatmap {chart.beatmap_id} +{format_mods(mods) or 'NM'}")
    click.echo(f"Stars: {attributes.star_rating:.4f}")
    click.echo(f"AR: {attributes.approach_rate:.2f}")
    click.echo(f"Max combo: {attributes.max_combo}")
    click.echo(f"Direction changes: {attributes.direction_change_count}")


@main.command()
@click.argument("chart_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--mods", default="", help='Mod acronyms, e.g. "HDDT".')
@click.option("--great", type=click.IntRange(min=0), default=0)
@click.option("--large-tick-hit", type=click.IntRange(min=0), default=0)
@click.option("--small-tick-hit", type=click.IntRange(min=0), default=0)
@click.option("--small-tick-miss", type=click.IntRange(min=0), default=0)
@click.option("--miss", type=click.IntRange(min=0), default=0)
@click.option("--combo", type=click.IntRange(min=0), default=None, help="Achieved max combo (default: full combo).")
@click.option("--literal-ar-bonus", is_flag=True, default=False,
              help="Apply the +8%/AR bonus at every AR, as the reference calculator does.")
def performance(chart_path, mods, great, large_tick_hit, small_tick_hit, small_tick_miss, miss, combo, literal_ar_bonus):
    chart, mods, attributes = _rate(chart_path, mods)
    score = ScoreInfo(
        statistics=ScoreJudgementCounts(great, large_tick_hit, small_tick_hit, small_tick_miss, miss),
        max_combo=attributes.max_combo if combo is None else combo,
        circle_size=chart.circle_size,
        mods=mods,
    )
    ar_bonus = ApproachRateBonus.LITERAL if literal_ar_bonus else None
    result = compute_performance(score, attributes, ar_bonus)
    click.echo(f"Stars: {attributes.star_rating:.4f}")
    click.echo(f"Accuracy: {score.statistics.accuracy * 100:.2f}%")
    click.echo(f"PP: {result.total:.3f}")


@main.command()
@click.argument("chart_paths", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--mods", default="", help='Mod acronyms, e.g. "HDDT".')
@click.option("-o", "--output", required=True, type=click.Path(dir_okay=False), help="Parquet file to write.")
@click.option("-j", "--workers", type=int, default=None, help="Worker processes (default: CATCHPP_WORKERS).")
def batch(chart_paths, mods, output, workers):
    """Rate many charts in parallel."""
    try:
        mods = format_mods(parse_mods(mods))
        df = rate_charts(chart_paths, mods, workers)
    except UnknownModError as e:
        raise click.ClickException(str(e))
    df.write_parquet(output)
    click.echo(f"Wrote {df.height} rows to {output}")


@main.command()
@click.argument("scores_path", type=click.Path(exists=True, dir_okay=False))
@click.argument("chart_dir", type=click.Path(exists=True, file_okay=False))
@click.option("-o", "--output", required=True, type=click.Path(dir_okay=False), help="Parquet file to write.")
@click.option("-j", "--workers", type=int, default=None, help="Worker processes (default: CATCHPP_WORKERS).")
def scores(scores_path, chart_dir, output, workers):
    """
    Compute pp for a parquet file of scores. Charts are looked up as
    CHART_DIR/<beatmap_id>.json.
    """
    try:
        df = pl.read_parquet(scores_path)
        combos = df.select(
            pl.col("beatmap_id"),
            pl.col("mods").fill_null("").map_elements(lambda m: format_mods(parse_mods(m)), return_dtype=pl.Utf8),
        ).unique()
        difficulties = []
        for mods, group in combos.group_by("mods"):
            mods = mods[0] if isinstance(mods, tuple) else mods
            paths = [Path(chart_dir) / f"{beatmap_id}.json" for beatmap_id in group["beatmap_id"]]
            missing = [p for p in paths if not p.exists()]
            if missing:
                logger.warning(f"{len(missing)} charts not found in {chart_dir}, e.g. {missing[0]}")
            difficulties.append(rate_charts([p for p in paths if p.exists()], mods, workers))
        if not difficulties:
            raise click.ClickException(f"No scores in {scores_path}")
        result = score_performance(df, pl.concat(difficulties))
    except (ValueError, pl.exceptions.ColumnNotFoundError) as e:
        raise click.ClickException(str(e))
    result.write_parquet(output)
    click.echo(f"Wrote {result.height} scores to {output}")


if __name__ == "__main__":
    main()
