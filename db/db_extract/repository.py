from typing import Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from . import extractors


class PlayerRepository:
    """
    Blocking, session-per-call access to player data.

    Each method opens its own session so calls can run concurrently on
    separate executor threads.
    """

    def __init__(self, session_maker: Callable[[], Session]):
        self._session_maker = session_maker

    def _run(self, fn, *args):
        with self._session_maker() as session:
            return fn(session, *args)

    def profile(self, player_id: int) -> Optional[dict]:
        return self._run(extractors.fetch_player_profile, player_id)

    def seasons(self, player_id: int) -> List[dict]:
        return self._run(extractors.fetch_player_seasons, player_id)

    def games_page(self, player_id: int, limit: int, offset: int) -> List[dict]:
        return self._run(extractors.fetch_player_games_page, player_id, limit, offset)

    def best_stats(self, player_id: int) -> Dict[str, Optional[int]]:
        return self._run(extractors.fetch_player_best_stats, player_id)

    def debut(self, player_id: int) -> Optional[dict]:
        return self._run(extractors.fetch_player_debut, player_id)

    def team_history(self, player_id: int) -> List[dict]:
        return self._run(extractors.fetch_player_team_history, player_id)

    def teams(self) -> List[dict]:
        return self._run(extractors.fetch_teams)

    def player_initials(self) -> List[dict]:
        return self._run(extractors.fetch_player_initials)

    def players_by_letter(self, letter: str, limit: int = 50) -> List[dict]:
        return self._run(extractors.fetch_players_by_letter, letter, limit)

    def match_rows(self, match_id: int) -> List[dict]:
        return self._run(extractors.fetch_match_rows, match_id)

    def head_to_head_rows(self, team_a: str, team_b: str) -> List[dict]:
        return self._run(extractors.fetch_head_to_head_rows, team_a, team_b)

    def hall_of_records(self, limit: int = 10) -> Dict[str, Dict[str, dict]]:
        return self._run(extractors.fetch_hall_of_records, limit)
