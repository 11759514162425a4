"""
Rebuild player_profiles and player_season_totals from afl_data.

Stats that were never recorded for a player stay null instead of becoming 0,
so downstream readers can tell "unknown" from "none".
"""
import argparse
import logging
import os
from typing import Dict, Optional, Tuple

import pandas as pd
from sqlalchemy import delete

from analysis.utils.data_utils import DataUtils
from db.create_tables import create_all
from db.database import get_engine, get_session_maker
from db.db_extract import load_game_rows_dataframe
from db.models import PlayerProfile, PlayerSeasonTotals, TRACKED_STATS


logger = logging.getLogger(__name__)


def _to_nullable_int(series: pd.Series) -> pd.Series:
    return series.round().astype("Int64")


def prepare_game_rows(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    for stat in TRACKED_STATS:
        # Blank strings and junk become NaN
        df[stat] = pd.to_numeric(df[stat], errors="coerce")
    df["match_date"] = df["match_date"].astype(str)
    df["season"] = pd.to_numeric(df["match_date"].str[:4], errors="coerce").astype("Int64")
    df["player_team"] = df["player_team"].fillna("").astype(str).str.strip()
    return df


def build_season_totals(df: pd.DataFrame) -> pd.DataFrame:
    grouped = df[df["player_team"] != ""].groupby(
        ["player_id", "season", "player_team"], dropna=True
    )
    out = grouped["match_id"].nunique().rename("games").to_frame()
    for stat in TRACKED_STATS:
        out[stat] = _to_nullable_int(grouped[stat].sum(min_count=1))
    out = out.reset_index().rename(columns={"player_team": "team"})
    return out.sort_values(["player_id", "season", "team"]).reset_index(drop=True)


def build_profiles(df: pd.DataFrame) -> pd.DataFrame:
    grouped = df.groupby("player_id")
    out = grouped["match_id"].nunique().rename("games").to_frame()
    # Latest spelling of the name wins
    names = (
        df.sort_values(["match_date", "match_id"])
        .groupby("player_id")[["player_first_name", "player_last_name"]]
        .last()
    )
    out = out.join(names)
    out["first_season"] = grouped["season"].min()
    out["last_season"] = grouped["season"].max()
    for stat in TRACKED_STATS:
        totals = grouped[stat].sum(min_count=1)
        recorded_games = grouped[stat].count()
        out[stat] = _to_nullable_int(totals)
        out[f"avg_{stat}"] = [
            DataUtils.round_half_up(DataUtils.safe_divide(t, n), 1) if pd.notna(t) else None
            for t, n in zip(totals, recorded_games)
        ]
    return out.reset_index()


def build_aggregates(df: pd.DataFrame) -> Tuple[pd.DataFrame, pd.DataFrame]:
    if df.empty:
        return pd.DataFrame(), pd.DataFrame()
    rows = prepare_game_rows(df)
    return build_profiles(rows), build_season_totals(rows)


def _py(value):
    # DB drivers only bind plain Python scalars
    if value is None or pd.isna(value):
        return None
    if hasattr(value, "item"):
        return value.item()
    return value


def replace_table(conn, model, df: pd.DataFrame) -> int:
    conn.execute(delete(model))
    if df.empty:
        return 0
    columns = [c.name for c in model.__table__.columns]
    records = [
        {k: _py(v) for k, v in rec.items()}
        for rec in df[columns].to_dict(orient="records")
    ]
    conn.execute(model.__table__.insert(), records)
    return len(records)


def run(database_url: Optional[str] = None) -> Dict[str, int]:
    create_all(database_url)
    engine = get_engine(database_url)
    SessionLocal = get_session_maker(engine)
    with SessionLocal() as session:
        games = load_game_rows_dataframe(session)
    logger.info(f"Loaded {len(games)} game rows")

    profiles, seasons = build_aggregates(games)
    with engine.begin() as conn:
        n_profiles = replace_table(conn, PlayerProfile, profiles)
        n_seasons = replace_table(conn, PlayerSeasonTotals, seasons)
    logger.info(f"Wrote {n_profiles} player_profiles and {n_seasons} player_season_totals rows")
    return {"player_profiles": n_profiles, "player_season_totals": n_seasons}


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Rebuild player_profiles and player_season_totals from afl_data."
    )
    parser.add_argument(
        "--database-url",
        default=os.getenv("DATABASE_URL"),
        help="SQLAlchemy database URL. If omitted, uses DATABASE_URL env var.",
    )
    args = parser.parse_args()

    if not args.database_url:
        raise RuntimeError("DATABASE_URL env var or --database-url must be provided")

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    counts = run(args.database_url)
    print(f"Aggregate refresh completed: {counts}")


if __name__ == "__main__":
    main()
