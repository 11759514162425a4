"""
Match-level views built from afl_data, which repeats the match header
(teams, scores, winner, margin) on every player's line.

Copies of the header can disagree or be blank on some lines, so each field
is reconciled across all copies before scores and records are derived.
"""
from typing import Any, Dict, Iterable, List, Optional, Tuple

from analysis.utils.data_utils import DataUtils


DRAW = "Draw"

MATCH_FIELDS = (
    "match_id",
    "match_date",
    "match_round",
    "venue_name",
    "match_home_team",
    "match_away_team",
    "match_home_team_score",
    "match_away_team_score",
    "match_winner",
    "match_margin",
)

PLAYER_FIELDS = (
    "player_id",
    "player_first_name",
    "player_last_name",
    "player_team",
    "guernsey_number",
    "disposals",
    "goals",
    "behinds",
    "kicks",
    "handballs",
    "marks",
    "tackles",
)

TEAM_TOTAL_STATS = ("goals", "behinds", "disposals", "kicks", "handballs", "marks", "tackles")


def _most_common(values: Iterable[Tuple[Any, int]]) -> Any:
    counts: Dict[Any, int] = {}
    for value, weight in values:
        if value is None or value == "":
            continue
        counts[value] = counts.get(value, 0) + weight
    if not counts:
        return None
    # Ties go to the value seen first
    return max(counts, key=counts.get)


def match_winner(match: Dict[str, Any]) -> Optional[str]:
    """Winning team, DRAW, or None when the result is unknown."""
    home = DataUtils.to_int(match.get("match_home_team_score"))
    away = DataUtils.to_int(match.get("match_away_team_score"))
    if home is None or away is None:
        return match.get("match_winner") or None
    if home == away:
        return DRAW
    return match.get("match_home_team") if home > away else match.get("match_away_team")


def match_margin(match: Dict[str, Any]) -> Optional[int]:
    home = DataUtils.to_int(match.get("match_home_team_score"))
    away = DataUtils.to_int(match.get("match_away_team_score"))
    if home is None or away is None:
        margin = DataUtils.to_int(match.get("match_margin"))
        return abs(margin) if margin is not None else None
    return abs(home - away)


def reconcile_match_header(rows: List[dict]) -> Optional[Dict[str, Any]]:
    """
    One header for a match from every row that carries it.

    Each field takes the value the most rows agree on; a ``copies`` key on a
    row weights it as that many rows. Winner and margin are recomputed from
    the reconciled scores when both are known.
    """
    if not rows:
        return None
    header = {
        field: _most_common((r.get(field), int(r.get("copies") or 1)) for r in rows)
        for field in MATCH_FIELDS
    }
    for field in ("match_id", "match_home_team_score", "match_away_team_score"):
        header[field] = DataUtils.to_int(header[field])
    header["match_winner"] = match_winner(header)
    header["match_margin"] = match_margin(header)
    return header


def dedupe_matches(rows: List[dict]) -> List[Dict[str, Any]]:
    """Collapse rows to one reconciled header per match_id, keeping row order."""
    grouped: Dict[Any, List[dict]] = {}
    for row in rows:
        grouped.setdefault(row.get("match_id"), []).append(row)
    return [reconcile_match_header(group) for group in grouped.values()]


def team_score(match: Dict[str, Any], team: str) -> Optional[int]:
    if match.get("match_home_team") == team:
        return DataUtils.to_int(match.get("match_home_team_score"))
    if match.get("match_away_team") == team:
        return DataUtils.to_int(match.get("match_away_team_score"))
    return None


def build_match_detail(rows: List[dict]) -> Optional[Dict[str, Any]]:
    """
    Reconciled header, player lines and per-team totals for one match.
    Returns None when the match has no rows.
    """
    header = reconcile_match_header(rows)
    if header is None:
        return None

    players = [{f: row.get(f) for f in PLAYER_FIELDS} for row in rows]
    players.sort(
        key=lambda p: (
            (p["player_last_name"] or "").lower(),
            (p["player_first_name"] or "").lower(),
            p["player_id"] or 0,
        )
    )

    team_totals: Dict[str, Dict[str, Any]] = {}
    for team in (header["match_home_team"], header["match_away_team"]):
        if not team:
            continue
        lines = [p for p in players if p["player_team"] == team]
        totals: Dict[str, Any] = {"team": team, "players": len(lines), "score": team_score(header, team)}
        for stat in TEAM_TOTAL_STATS:
            totals[stat] = DataUtils.sum_known(p[stat] for p in lines)
        team_totals[team] = totals

    return {"match": header, "players": players, "team_totals": team_totals}


def _top_performers(players: List[dict], stat: str, n: int = 3) -> List[dict]:
    recorded = [p for p in players if DataUtils.to_int(p.get(stat)) is not None]
    recorded.sort(key=lambda p: (-DataUtils.to_int(p[stat]), p.get("player_last_name") or ""))
    return [
        {
            "player_id": p.get("player_id"),
            "player_first_name": p.get("player_first_name"),
            "player_last_name": p.get("player_last_name"),
            "player_team": p.get("player_team"),
            stat: DataUtils.to_int(p[stat]),
        }
        for p in recorded[:n]
    ]


def build_head_to_head(
    matches: List[Dict[str, Any]],
    team_a: str,
    team_b: str,
    last_meeting_players: Optional[List[dict]] = None,
) -> Dict[str, Any]:
    """
    Summarise every meeting between two teams.

    ``matches`` must be reconciled headers, newest first. Highest scores are
    read from whichever side (home or away) the team played on. Ties on
    margin or score keep the most recent meeting.
    """
    wins = {team_a: 0, team_b: 0}
    draws = 0
    biggest_wins: Dict[str, Dict[str, Any]] = {}
    highest_scores: Dict[str, Dict[str, Any]] = {}

    for match in matches:
        winner = match.get("match_winner")
        if winner == DRAW:
            draws += 1
        elif winner in wins:
            wins[winner] += 1
            margin = match.get("match_margin")
            kept = biggest_wins.get(winner)
            if margin is not None and (kept is None or margin > kept["match_margin"]):
                biggest_wins[winner] = match

        for team in (team_a, team_b):
            score = team_score(match, team)
            kept = highest_scores.get(team)
            if score is not None and (kept is None or score > kept["score"]):
                highest_scores[team] = {"score": score, **match}

    players = last_meeting_players or []
    return {
        "summary": {"total_games": len(matches), "wins": wins, "draws": draws},
        "biggest_wins": biggest_wins,
        "highest_scores": highest_scores,
        "last_meeting": matches[0] if matches else None,
        "last_meeting_performers": {
            "top_goals": _top_performers(players, "goals"),
            "top_disposals": _top_performers(players, "disposals"),
        },
        "history": matches,
    }
