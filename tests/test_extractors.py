import datetime

import pytest

from analysis.player_career import PlayerCareerResolver
from db.db_extract import (
    PlayerRepository,
    fetch_player_best_stats,
    fetch_player_debut,
    fetch_player_games_page,
    fetch_player_initials,
    fetch_players_by_letter,
    fetch_teams,
)

PLAYER = 11


def _career(game_factory, n_games=120):
    """
    n_games weekly games from 2000, with the career-best disposals in the very
    first game and two games sharing a date to exercise the tie-break.
    """
    start = datetime.date(2000, 3, 25)
    rows = []
    for i in range(n_games):
        date = start + datetime.timedelta(days=7 * i)
        team = "Richmond" if i < 80 else "Melbourne"
        guernsey = 17 if i < 40 else (9 if i < 80 else 4)
        rows.append(
            game_factory(
                PLAYER,
                1000 + i,
                date.isoformat(),
                team=team,
                guernsey=guernsey,
                disposals=45 if i == 0 else 15 + (i % 7),
                goals=i % 3,
                tackles=None if i < 10 else 4,
            )
        )
    # Same day as the first game, higher match id
    rows.append(
        game_factory(PLAYER, 5000, start.isoformat(), team="Richmond", guernsey=17, disposals=12)
    )
    return rows


@pytest.fixture
def seeded(seed, game_factory):
    games = _career(game_factory)
    seed(games=games)
    return games


def test_pages_are_disjoint_and_contiguous(session_maker, seeded):
    with session_maker() as session:
        pages = [fetch_player_games_page(session, PLAYER, 50, offset) for offset in (0, 50, 100)]

    ids = [g["match_id"] for page in pages for g in page]
    assert len(ids) == len(set(ids)) == len(seeded)
    assert [len(p) for p in pages] == [50, 50, 21]

    keys = [(g["match_date"], g["match_id"]) for page in pages for g in page]
    assert keys == sorted(keys, reverse=True)


def test_best_stats_cover_full_history(session_maker, seeded):
    with session_maker() as session:
        best = fetch_player_best_stats(session, PLAYER)

    assert best["best_disposals"] == 45
    assert best["best_goals"] == 2
    assert best["best_tackles"] == 4
    assert best["best_kicks"] is None


def test_debut_breaks_date_ties_on_match_id(session_maker, seeded):
    with session_maker() as session:
        debut = fetch_player_debut(session, PLAYER)
        missing = fetch_player_debut(session, 999)

    assert debut["match_id"] == 1000
    assert debut["match_date"] == "2000-03-25"
    assert missing is None


@pytest.mark.asyncio
async def test_resolver_records_do_not_depend_on_page(session_maker, seeded):
    resolver = PlayerCareerResolver(PlayerRepository(session_maker))

    results = [await resolver.resolve(PLAYER, page=p) for p in (1, 2, 3)]

    for result in results:
        assert result["profile"]["best_disposals"] == 45
        assert result["debut"]["match_id"] == 1000

    last_page = results[2]
    assert len(last_page["games"]) == 21
    # no aggregates seeded, so the count is a lower bound from the page
    assert last_page["profile"]["total_games"] == 121
    assert last_page["profile"]["sources"]["total_games"] == "page"


@pytest.mark.asyncio
async def test_team_stints_from_database(session_maker, seeded):
    resolver = PlayerCareerResolver(PlayerRepository(session_maker))

    stints = (await resolver.resolve(PLAYER))["team_stints"]

    assert [s["team"] for s in stints] == ["Richmond", "Melbourne"]
    assert stints[0]["games"] == 81
    assert stints[0]["guernseys"] == [17, 9]
    assert stints[1]["games"] == 40
    assert stints[1]["guernseys"] == [4]


@pytest.mark.asyncio
async def test_profile_row_is_preferred(session_maker, seed, game_factory):
    seed(
        games=[game_factory(1001, i, f"2020-04-{i:02d}", disposals=20) for i in range(1, 11)],
        profiles=[{
            "player_id": 1001,
            "player_first_name": "Patrick",
            "player_last_name": "Cripps",
            "games": 150,
            "disposals": 3000,
            "first_season": 2014,
            "last_season": 2024,
        }],
        seasons=[{"player_id": 1001, "season": 2020, "team": "Carlton", "games": 22, "disposals": 460}],
    )
    resolver = PlayerCareerResolver(PlayerRepository(session_maker))

    result = await resolver.resolve(1001)

    assert result["profile"]["player_last_name"] == "Cripps"
    assert result["profile"]["total_games"] == 150
    assert result["profile"]["total_disposals"] == 3000
    assert result["profile"]["avg_disposals"] == 20.0
    assert result["seasons"][0]["season"] == 2020


def test_directory_queries(session_maker, seed, game_factory):
    seed(games=[
        game_factory(1, 1, "1990-04-01", team="Carlton", player_last_name="Bradley", goals=2, disposals=10),
        game_factory(1, 2, "1991-04-01", team="Carlton", player_last_name="Bradley", goals=0, disposals=20),
        game_factory(2, 1, "1990-04-01", team="Carlton", player_last_name="Brown", disposals=None),
        game_factory(3, 3, "1995-05-01", team="Essendon", player_last_name="Long",
                     match_home_team="Essendon", match_away_team="Fitzroy"),
        game_factory(4, 3, "1995-05-01", team="Fitzroy", player_last_name="'Tis",
                     match_home_team="Essendon", match_away_team="Fitzroy"),
    ])

    with session_maker() as session:
        teams = {t["team_name"]: t for t in fetch_teams(session)}
        initials = fetch_player_initials(session)
        b_players = fetch_players_by_letter(session, "b")

    assert teams["Carlton"]["total_matches"] == 2
    assert teams["Carlton"]["first_year"] == 1990
    assert teams["Essendon"]["total_matches"] == 3
    assert teams["Fitzroy"]["last_year"] == 1995

    assert initials == [{"letter": "B", "player_count": 2}, {"letter": "L", "player_count": 1}]

    assert [p["player_last_name"] for p in b_players] == ["Bradley", "Brown"]
    bradley = b_players[0]
    assert bradley["total_games"] == 2
    assert bradley["total_goals"] == 2
    assert bradley["avg_disposals"] == 15.0
    assert bradley["first_year"] == 1990
    assert bradley["last_year"] == 1991
