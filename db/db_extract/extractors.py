from typing import Dict, List, Optional

import pandas as pd
from sqlalchemy import text
from sqlalchemy.orm import Session

from analysis.utils.data_utils import DataUtils
from db.models import TRACKED_STATS


_GAME_COLUMNS = """
    match_id, match_date, match_round, venue_name,
    match_home_team, match_away_team,
    player_first_name, player_last_name, player_team, guernsey_number,
    disposals, goals, behinds, kicks, handballs, marks, tackles
"""


def fetch_player_profile(session: Session, player_id: int) -> Optional[dict]:
    """
    Return the precomputed career row for a player, or None when there is none.
    """
    row = session.execute(
        text(
            """
            select player_id, player_first_name, player_last_name,
                   games, disposals, goals, kicks, handballs, marks, tackles,
                   first_season, last_season,
                   avg_disposals, avg_goals, avg_kicks,
                   avg_handballs, avg_marks, avg_tackles
            from player_profiles
            where player_id = :pid
            """
        ),
        {"pid": player_id},
    ).mappings().first()
    return dict(row) if row else None


def fetch_player_seasons(session: Session, player_id: int) -> List[dict]:
    """
    Return one row per (season, team) for the player, oldest season first.
    """
    rows = session.execute(
        text(
            """
            select season, team, games,
                   disposals, goals, kicks, handballs, marks, tackles
            from player_season_totals
            where player_id = :pid
            order by season asc, team asc
            """
        ),
        {"pid": player_id},
    ).mappings().all()
    return [dict(r) for r in rows]


def fetch_player_games_page(
    session: Session, player_id: int, limit: int, offset: int
) -> List[dict]:
    """
    Return one page of the player's games, newest first.
    match_id breaks ties between games on the same date so pages never overlap.
    """
    rows = session.execute(
        text(
            f"""
            select {_GAME_COLUMNS}
            from afl_data
            where player_id = :pid
            order by match_date desc, match_id desc
            limit :limit offset :offset
            """
        ),
        {"pid": player_id, "limit": limit, "offset": offset},
    ).mappings().all()
    return [dict(r) for r in rows]


def fetch_player_best_stats(session: Session, player_id: int) -> Dict[str, Optional[int]]:
    """
    Single-game maximum of every tracked stat across the full game history.
    """
    select_list = ",\n".join(f"max({s}) as best_{s}" for s in TRACKED_STATS)
    row = session.execute(
        text(
            f"""
            select {select_list}
            from afl_data
            where player_id = :pid
            """
        ),
        {"pid": player_id},
    ).mappings().one()
    return {k: (int(v) if v is not None else None) for k, v in row.items()}


def fetch_player_debut(session: Session, player_id: int) -> Optional[dict]:
    row = session.execute(
        text(
            f"""
            select {_GAME_COLUMNS}
            from afl_data
            where player_id = :pid
            order by match_date asc, match_id asc
            limit 1
            """
        ),
        {"pid": player_id},
    ).mappings().first()
    return dict(row) if row else None


def fetch_player_team_history(session: Session, player_id: int) -> List[dict]:
    """
    Every game's team and guernsey for the player, oldest first.
    """
    rows = session.execute(
        text(
            """
            select match_id, match_date, player_team, guernsey_number
            from afl_data
            where player_id = :pid
            order by match_date asc, match_id asc
            """
        ),
        {"pid": player_id},
    ).mappings().all()
    return [dict(r) for r in rows]


def fetch_teams(session: Session) -> List[dict]:
    """
    Every team that appears as home or away side, with its span and match count.
    """
    rows = session.execute(
        text(
            """
            select team_name,
                   min(match_date) as first_date,
                   max(match_date) as last_date,
                   count(distinct match_id) as total_matches
            from (
                select match_home_team as team_name, match_date, match_id from afl_data
                union
                select match_away_team as team_name, match_date, match_id from afl_data
            ) sides
            where team_name is not null and team_name != ''
            group by team_name
            order by team_name
            """
        )
    ).mappings().all()
    return [
        {
            "team_name": r["team_name"],
            "first_year": _year(r["first_date"]),
            "last_year": _year(r["last_date"]),
            "total_matches": r["total_matches"],
        }
        for r in rows
    ]


def fetch_player_initials(session: Session) -> List[dict]:
    rows = session.execute(
        text(
            """
            select upper(substr(player_last_name, 1, 1)) as letter,
                   count(distinct player_id) as player_count
            from afl_data
            where player_first_name is not null and player_first_name != ''
              and player_last_name is not null and player_last_name != ''
            group by upper(substr(player_last_name, 1, 1))
            order by letter
            """
        )
    ).mappings().all()
    # Names with leading punctuation or digits are not browsable by letter
    return [dict(r) for r in rows if r["letter"] and "A" <= r["letter"] <= "Z"]


def fetch_players_by_letter(session: Session, letter: str, limit: int = 50) -> List[dict]:
    rows = session.execute(
        text(
            """
            select player_id, player_first_name, player_last_name,
                   count(distinct match_id) as total_games,
                   sum(case when disposals > 0 then disposals else 0 end) as total_disposals,
                   sum(case when goals > 0 then goals else 0 end) as total_goals,
                   avg(case when disposals > 0 then disposals end) as avg_disposals,
                   avg(case when goals > 0 then goals end) as avg_goals,
                   min(match_date) as first_date,
                   max(match_date) as last_date
            from afl_data
            where player_first_name is not null and player_first_name != ''
              and player_last_name is not null and player_last_name != ''
              and upper(substr(player_last_name, 1, 1)) = :letter
            group by player_id, player_first_name, player_last_name
            having count(distinct match_id) > 0
            order by player_last_name, player_first_name
            limit :limit
            """
        ),
        {"letter": letter.upper(), "limit": limit},
    ).mappings().all()
    out: List[dict] = []
    for r in rows:
        rec = dict(r)
        rec["avg_disposals"] = DataUtils.round_half_up(rec["avg_disposals"], 1)
        rec["avg_goals"] = DataUtils.round_half_up(rec["avg_goals"], 1)
        rec["first_year"] = _year(rec.pop("first_date"))
        rec["last_year"] = _year(rec.pop("last_date"))
        out.append(rec)
    return out


_MATCH_HEADER_COLUMNS = """
    match_id, match_date, match_round, venue_name,
    match_home_team, match_away_team,
    match_home_team_score, match_away_team_score, match_winner, match_margin
"""

RECORD_CATEGORIES = {
    "Scoring": (("Goals", "goals"), ("Behinds", "behinds")),
    "Possession": (("Disposals", "disposals"), ("Kicks", "kicks"), ("Handballs", "handballs")),
    "Defence": (("Tackles", "tackles"), ("Marks", "marks")),
}
_RECORD_COLUMNS = {column for stats in RECORD_CATEGORIES.values() for _, column in stats}


def fetch_match_rows(session: Session, match_id: int) -> List[dict]:
    """
    Every player's line for one match, header columns included.
    """
    rows = session.execute(
        text(
            f"""
            select {_MATCH_HEADER_COLUMNS},
                   player_id, player_first_name, player_last_name, player_team,
                   guernsey_number,
                   disposals, goals, behinds, kicks, handballs, marks, tackles
            from afl_data
            where match_id = :mid
            order by player_last_name, player_first_name, player_id
            """
        ),
        {"mid": match_id},
    ).mappings().all()
    return [dict(r) for r in rows]


def fetch_head_to_head_rows(session: Session, team_a: str, team_b: str) -> List[dict]:
    """
    Distinct match headers for every meeting of two teams, newest first.

    ``copies`` is how many player lines carry that exact header, so a match
    whose copies disagree comes back once per variant.
    """
    rows = session.execute(
        text(
            f"""
            select {_MATCH_HEADER_COLUMNS}, count(*) as copies
            from afl_data
            where (match_home_team = :a and match_away_team = :b)
               or (match_home_team = :b and match_away_team = :a)
            group by {_MATCH_HEADER_COLUMNS}
            order by match_date desc, match_id desc, copies desc
            """
        ),
        {"a": team_a, "b": team_b},
    ).mappings().all()
    return [dict(r) for r in rows]


def fetch_career_leaders(session: Session, stat: str, limit: int = 10) -> List[dict]:
    """
    Top career totals for one stat, counting only games where it was recorded.
    """
    if stat not in _RECORD_COLUMNS:
        raise ValueError(f"Unknown record stat: {stat}")
    rows = session.execute(
        text(
            f"""
            select player_id,
                   max(player_first_name) as player_first_name,
                   max(player_last_name) as player_last_name,
                   sum({stat}) as stat_value,
                   count(distinct match_id) as games_played,
                   avg({stat}) as avg_per_game,
                   min(match_date) as first_date,
                   max(match_date) as last_date
            from afl_data
            where {stat} > 0
            group by player_id
            order by stat_value desc, player_id asc
            limit :limit
            """
        ),
        {"limit": limit},
    ).mappings().all()
    out: List[dict] = []
    for r in rows:
        rec = dict(r)
        rec["stat_value"] = int(rec["stat_value"])
        rec["avg_per_game"] = DataUtils.round_half_up(rec["avg_per_game"], 1)
        rec["first_year"] = _year(rec.pop("first_date"))
        rec["last_year"] = _year(rec.pop("last_date"))
        out.append(rec)
    return out


def fetch_hall_of_records(session: Session, limit: int = 10) -> Dict[str, Dict[str, dict]]:
    """
    Career leaders for every record stat, grouped by category.
    Stats nobody has recorded are left out of their category.
    """
    records: Dict[str, Dict[str, dict]] = {}
    for category, stats in RECORD_CATEGORIES.items():
        records[category] = {}
        for name, column in stats:
            leaders = fetch_career_leaders(session, column, limit)
            if leaders:
                records[category][name] = {"column": column, "leaders": leaders}
    return records


def load_game_rows_dataframe(session: Session) -> pd.DataFrame:
    """
    Load every stat-bearing column of afl_data for the aggregate rebuild.
    """
    query = f"""
        select player_id, match_id, match_date, player_team,
               player_first_name, player_last_name,
               {", ".join(TRACKED_STATS)}
        from afl_data
    """
    return pd.read_sql(text(query), session.connection())


def _year(match_date) -> Optional[int]:
    if not match_date:
        return None
    try:
        return int(str(match_date)[:4])
    except ValueError:
        return None
