"""
Player career resolution.

A player's career is described by three sources of uneven quality:

1. ``player_profiles``: the precomputed lifetime row (preferred, may be missing
   or hold nulls/zeros for stats it never captured)
2. ``player_season_totals``: one row per season and team
3. the requested page of ``afl_data`` game rows (pagination-biased)

Each numeric field is taken from the first source that knows it, in that
order. Sources are never blended for the same field. Single-game bests, the
debut and the team history come from their own full-history queries so they do
not depend on which page was asked for.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from analysis.utils import DataUtils
from config import FETCH_TIMEOUT_SECONDS, PAGE_SIZE
from db.models import TRACKED_STATS


logger = logging.getLogger(__name__)

SOURCE_PROFILE = "profile"
SOURCE_SEASONS = "seasons"
SOURCE_PAGE = "page"

GAME_FIELDS = (
    "match_id",
    "match_date",
    "match_round",
    "venue_name",
    "match_home_team",
    "match_away_team",
    "player_team",
    "guernsey_number",
)
GAME_STATS = ("disposals", "goals", "behinds", "kicks", "handballs", "marks", "tackles")


class PlayerDataUnavailable(Exception):
    """Every core source (profile, seasons, game page) failed for a player."""


@dataclass
class FetchResult:
    name: str
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PlayerCareerResolver:
    def __init__(
        self,
        repository,
        page_size: int = PAGE_SIZE,
        timeout: float = FETCH_TIMEOUT_SECONDS,
    ):
        self.repository = repository
        self.page_size = page_size
        self.timeout = timeout

    async def _fetch(self, name: str, fn: Callable, *args) -> FetchResult:
        """Run one blocking repository call in the executor, bounded by the timeout."""
        loop = asyncio.get_running_loop()
        try:
            value = await asyncio.wait_for(
                loop.run_in_executor(None, fn, *args), timeout=self.timeout
            )
        except asyncio.TimeoutError as exc:
            logger.warning(f"Fetch '{name}' timed out after {self.timeout}s")
            return FetchResult(name, error=exc)
        except Exception as exc:
            logger.warning(f"Fetch '{name}' failed: {exc}", exc_info=True)
            return FetchResult(name, error=exc)
        return FetchResult(name, value=value)

    async def resolve(self, player_id: int, page: int = 1) -> Dict[str, Any]:
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")
        offset = (page - 1) * self.page_size
        repo = self.repository

        profile_r, seasons_r, games_r, best_r, debut_r, history_r = await asyncio.gather(
            self._fetch("profile", repo.profile, player_id),
            self._fetch("seasons", repo.seasons, player_id),
            self._fetch("games_page", repo.games_page, player_id, self.page_size, offset),
            self._fetch("best_stats", repo.best_stats, player_id),
            self._fetch("debut", repo.debut, player_id),
            self._fetch("team_history", repo.team_history, player_id),
        )

        if not (profile_r.ok or seasons_r.ok or games_r.ok):
            raise PlayerDataUnavailable(
                f"Profile, seasons and games all failed for player {player_id}"
            )

        profile_row = profile_r.value if profile_r.ok else None
        if profile_row is not None and not _has_content(profile_row):
            profile_row = None
        seasons = (seasons_r.value or []) if seasons_r.ok else []
        games = (games_r.value or []) if games_r.ok else []
        debut = debut_r.value if debut_r.ok else None
        best = (best_r.value or {}) if best_r.ok else {}
        history = (history_r.value or []) if history_r.ok else []

        career = build_career_profile(
            player_id,
            profile_row=profile_row,
            seasons=seasons,
            games=games,
            offset=offset,
            debut=debut,
            best=best,
        )
        check_season_consistency(player_id, profile_row, seasons)

        return {
            "profile": career,
            "seasons": [_season_out(s) for s in sorted(seasons, key=lambda s: s.get("season") or 0)],
            "games": [_game_out(g) for g in games],
            "debut": _game_out(debut) if debut else None,
            "team_stints": build_team_stints(history),
            "page": page,
            "limit": self.page_size,
        }


def _has_content(row: dict) -> bool:
    keys = ("player_first_name", "player_last_name", "games") + TRACKED_STATS
    return any(row.get(k) not in (None, "", 0) for k in keys)


def _resolve_games(
    profile_row: Optional[dict], seasons: List[dict], games: List[dict], offset: int
) -> Tuple[int, Optional[str]]:
    if profile_row and DataUtils.is_known(profile_row.get("games")):
        return DataUtils.to_int(profile_row["games"]), SOURCE_PROFILE
    season_games = DataUtils.sum_known(s.get("games") for s in seasons)
    if season_games:
        return season_games, SOURCE_SEASONS
    if games:
        # Every earlier page was full, so this is a lower bound on the career
        return offset + len(games), SOURCE_PAGE
    return 0, None


def _resolve_stat(
    stat: str,
    profile_row: Optional[dict],
    seasons: List[dict],
    games: List[dict],
    games_count: int,
) -> Tuple[Optional[int], Optional[str], int]:
    """
    Return (total, source, games_basis) for one tracked stat.
    games_basis is the number of games the total was accumulated over.
    """
    if profile_row and DataUtils.is_known(profile_row.get(stat)):
        return DataUtils.to_int(profile_row[stat]), SOURCE_PROFILE, games_count

    populated = [s for s in seasons if DataUtils.to_int(s.get(stat)) is not None]
    if populated:
        basis = DataUtils.sum_known(s.get("games") for s in populated) or 0
        return DataUtils.sum_known(s.get(stat) for s in populated), SOURCE_SEASONS, basis

    populated = [g for g in games if DataUtils.to_int(g.get(stat)) is not None]
    if populated:
        return DataUtils.sum_known(g.get(stat) for g in populated), SOURCE_PAGE, len(populated)

    return None, None, 0


def _resolve_name(
    profile_row: Optional[dict], games: List[dict], debut: Optional[dict]
) -> Tuple[str, str]:
    candidates = [profile_row] + list(games) + [debut]
    for row in candidates:
        if not row:
            continue
        first = (row.get("player_first_name") or "").strip()
        last = (row.get("player_last_name") or "").strip()
        if first or last:
            return first, last
    return "", ""


def _resolve_seasons_span(
    profile_row: Optional[dict],
    seasons: List[dict],
    games: List[dict],
    debut: Optional[dict],
) -> Tuple[Optional[int], Optional[int]]:
    first = DataUtils.to_int(profile_row.get("first_season")) if profile_row else None
    last = DataUtils.to_int(profile_row.get("last_season")) if profile_row else None

    years = [DataUtils.to_int(s.get("season")) for s in seasons]
    years = [y for y in years if y]
    if first is None and years:
        first = min(years)
    if last is None and years:
        last = max(years)

    page_years = [_year(g.get("match_date")) for g in games]
    page_years = [y for y in page_years if y]
    if first is None:
        first = _year(debut.get("match_date")) if debut else None
        if first is None and page_years:
            first = min(page_years)
    if last is None and page_years:
        last = max(page_years)
    return first, last


def build_career_profile(
    player_id: int,
    *,
    profile_row: Optional[dict],
    seasons: List[dict],
    games: List[dict],
    offset: int,
    debut: Optional[dict],
    best: Dict[str, Optional[int]],
) -> Dict[str, Any]:
    first_name, last_name = _resolve_name(profile_row, games, debut)
    total_games, games_source = _resolve_games(profile_row, seasons, games, offset)
    first_season, last_season = _resolve_seasons_span(profile_row, seasons, games, debut)

    out: Dict[str, Any] = {
        "player_id": player_id,
        "player_first_name": first_name,
        "player_last_name": last_name,
        "total_games": total_games,
        "first_season": first_season,
        "last_season": last_season,
    }
    sources: Dict[str, Optional[str]] = {"total_games": games_source}

    for stat in TRACKED_STATS:
        total, source, basis = _resolve_stat(stat, profile_row, seasons, games, total_games)
        out[f"total_{stat}"] = total
        sources[f"total_{stat}"] = source

        avg = None
        if source == SOURCE_PROFILE and DataUtils.is_known(profile_row.get(f"avg_{stat}")):
            avg = DataUtils.round_half_up(profile_row[f"avg_{stat}"], 1)
        elif total is not None and basis > 0:
            avg = DataUtils.round_half_up(DataUtils.safe_divide(total, basis), 1)
        out[f"avg_{stat}"] = avg

    for stat in TRACKED_STATS:
        out[f"best_{stat}"] = DataUtils.to_int(best.get(f"best_{stat}"))

    out["sources"] = sources
    return out


def check_season_consistency(
    player_id: int, profile_row: Optional[dict], seasons: List[dict]
) -> bool:
    """
    Compare the profile's games count with the season sum.
    A mismatch is logged, not corrected.
    """
    if not profile_row or not seasons:
        return True
    profile_games = DataUtils.to_int(profile_row.get("games"))
    season_games = DataUtils.sum_known(s.get("games") for s in seasons)
    if not profile_games or not season_games:
        return True
    if profile_games != season_games:
        logger.warning(
            f"Player {player_id}: profile games ({profile_games}) != season sum ({season_games})"
        )
        return False
    return True


def build_team_stints(history: List[dict]) -> List[Dict[str, Any]]:
    """
    Group games by team, ordered by the date each team was first played for.

    ``history`` must be ordered oldest game first. Guernsey numbers are listed
    in the order first worn for that team, without repeats.
    """
    stints: Dict[str, Dict[str, Any]] = {}
    seen_matches: Dict[str, set] = {}
    for row in history:
        team = (row.get("player_team") or "").strip()
        if not team:
            continue
        stint = stints.get(team)
        if stint is None:
            stint = stints[team] = {
                "team": team,
                "games": 0,
                "guernseys": [],
                "first_game": row.get("match_date"),
                "last_game": row.get("match_date"),
            }
            seen_matches[team] = set()
        match_id = row.get("match_id")
        if match_id not in seen_matches[team]:
            seen_matches[team].add(match_id)
            stint["games"] += 1
        number = DataUtils.to_int(row.get("guernsey_number"))
        if number is not None and number not in stint["guernseys"]:
            stint["guernseys"].append(number)
        stint["last_game"] = row.get("match_date")

    # dicts keep insertion order; the sort guards against unordered input
    return sorted(stints.values(), key=lambda s: str(s["first_game"] or ""))


def _season_out(row: dict) -> Dict[str, Any]:
    out = {
        "season": DataUtils.to_int(row.get("season")),
        "team": row.get("team"),
        "games": DataUtils.to_int(row.get("games")),
    }
    for stat in TRACKED_STATS:
        out[stat] = DataUtils.to_int(row.get(stat))
    return out


def _game_out(row: dict) -> Dict[str, Any]:
    out = {k: row.get(k) for k in GAME_FIELDS}
    out["match_date"] = str(row["match_date"]) if row.get("match_date") is not None else None
    out["guernsey_number"] = DataUtils.to_int(row.get("guernsey_number"))
    for stat in GAME_STATS:
        out[stat] = DataUtils.to_int(row.get(stat))
    return out


def _year(match_date) -> Optional[int]:
    if not match_date:
        return None
    try:
        return int(str(match_date)[:4])
    except ValueError:
        return None
