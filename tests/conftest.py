# Ensure the repo root is importable when pytest runs from any directory
import sys
import time
from pathlib import Path

_root = Path(__file__).resolve().parent.parent
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

import pytest
from sqlalchemy import create_engine

from db.database import Base, get_session_maker
from db.models import AFLData, PlayerProfile, PlayerSeasonTotals


def make_game(player_id, match_id, match_date, team="Carlton", guernsey=1, **stats):
    row = {
        "player_id": player_id,
        "match_id": match_id,
        "match_date": match_date,
        "match_round": stats.pop("match_round", "1"),
        "venue_name": stats.pop("venue_name", "M.C.G."),
        "match_home_team": stats.pop("match_home_team", team),
        "match_away_team": stats.pop("match_away_team", "Essendon"),
        "match_home_team_score": stats.pop("home_score", None),
        "match_away_team_score": stats.pop("away_score", None),
        "match_winner": stats.pop("winner", None),
        "match_margin": stats.pop("margin", None),
        "player_first_name": stats.pop("player_first_name", "Test"),
        "player_last_name": stats.pop("player_last_name", "Player"),
        "player_team": team,
        "guernsey_number": guernsey,
    }
    for stat in ("disposals", "goals", "behinds", "kicks", "handballs", "marks", "tackles"):
        row[stat] = stats.pop(stat, None)
    assert not stats, f"unknown fields {stats}"
    return row


class FakeRepository:
    """
    In-memory stand-in for PlayerRepository.

    Pass an Exception instance for any source to make that call raise,
    or a float via ``delays`` to make it block.
    """

    def __init__(
        self,
        profile=None,
        seasons=None,
        games=None,
        best=None,
        debut=None,
        history=None,
        teams=None,
        match_rows=None,
        head_to_head=None,
        records=None,
        delays=None,
    ):
        self._profile = profile
        self._seasons = seasons or []
        self._games = games or []
        self._best = best or {}
        self._debut = debut
        self._history = history or []
        self._teams = teams or []
        self._match_rows = match_rows or {}
        self._head_to_head = head_to_head or []
        self._records = records or {}
        self._delays = delays or {}
        self.calls = []

    def _answer(self, name, value):
        self.calls.append(name)
        if name in self._delays:
            time.sleep(self._delays[name])
        if isinstance(value, Exception):
            raise value
        return value

    def profile(self, player_id):
        return self._answer("profile", self._profile)

    def seasons(self, player_id):
        return self._answer("seasons", self._seasons)

    def games_page(self, player_id, limit, offset):
        if isinstance(self._games, Exception):
            return self._answer("games_page", self._games)
        return self._answer("games_page", self._games[offset:offset + limit])

    def best_stats(self, player_id):
        return self._answer("best_stats", self._best)

    def debut(self, player_id):
        return self._answer("debut", self._debut)

    def team_history(self, player_id):
        return self._answer("team_history", self._history)

    def teams(self):
        return self._answer("teams", self._teams)

    def player_initials(self):
        return self._answer("player_initials", [])

    def players_by_letter(self, letter, limit=50):
        return self._answer("players_by_letter", [])

    def match_rows(self, match_id):
        return self._answer("match_rows", self._match_rows.get(match_id, []))

    def head_to_head_rows(self, team_a, team_b):
        return self._answer("head_to_head_rows", self._head_to_head)

    def hall_of_records(self, limit=10):
        return self._answer("hall_of_records", self._records)


@pytest.fixture
def fake_repo():
    return FakeRepository


@pytest.fixture
def game_factory():
    return make_game


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'afl.db'}"


@pytest.fixture
def engine(db_url):
    # Resolver fetches run on executor threads
    eng = create_engine(db_url, future=True, connect_args={"check_same_thread": False})
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_maker(engine):
    return get_session_maker(engine)


@pytest.fixture
def seed(session_maker):
    def _seed(games=(), profiles=(), seasons=()):
        with session_maker() as session:
            session.add_all(AFLData(**g) for g in games)
            session.add_all(PlayerProfile(**p) for p in profiles)
            session.add_all(PlayerSeasonTotals(**s) for s in seasons)
            session.commit()

    return _seed
