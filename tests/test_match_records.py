import pytest

from analysis.match_records import (
    DRAW,
    build_head_to_head,
    build_match_detail,
    dedupe_matches,
    reconcile_match_header,
    team_score,
)
from db.db_extract import (
    fetch_career_leaders,
    fetch_hall_of_records,
    fetch_head_to_head_rows,
    fetch_match_rows,
)


def _header(match_id, date, home, away, home_score, away_score, **extra):
    row = {
        "match_id": match_id,
        "match_date": date,
        "match_home_team": home,
        "match_away_team": away,
        "match_home_team_score": home_score,
        "match_away_team_score": away_score,
    }
    row.update(extra)
    return row


@pytest.fixture
def rivalry(seed, game_factory):
    """
    Two Carlton v Essendon meetings, each with one player line whose copy of
    the match header is stale, plus an unrelated Carlton v Richmond game.
    """
    first = dict(match_home_team="Carlton", match_away_team="Essendon", winner="Carlton", margin=20)
    second = dict(match_home_team="Essendon", match_away_team="Carlton", winner="Essendon", margin=15)
    seed(games=[
        game_factory(1, 1, "2020-05-01", team="Carlton", home_score=100, away_score=80,
                     player_last_name="Cripps", goals=2, disposals=31, **first),
        game_factory(2, 1, "2020-05-01", team="Carlton", home_score=100, away_score=80,
                     player_last_name="Walsh", goals=0, disposals=28, **first),
        game_factory(3, 1, "2020-05-01", team="Essendon", home_score=None, away_score=80,
                     player_last_name="Merrett", goals=1, disposals=25, **first),
        game_factory(1, 2, "2021-06-01", team="Carlton", home_score=120, away_score=105,
                     player_last_name="Cripps", goals=1, disposals=20, **second),
        game_factory(3, 2, "2021-06-01", team="Essendon", home_score=120, away_score=105,
                     player_last_name="Merrett", goals=5, disposals=30, **second),
        game_factory(4, 2, "2021-06-01", team="Essendon", home_score=120, away_score=111,
                     player_last_name="Parish", goals=2, disposals=25, **second),
        game_factory(1, 3, "2021-07-01", team="Carlton", home_score=90, away_score=70,
                     match_home_team="Carlton", match_away_team="Richmond", goals=4),
    ])


def test_header_takes_the_value_most_rows_agree_on():
    rows = [
        _header(7, "2019-04-01", "Geelong", "Sydney", 88, 70),
        _header(7, "2019-04-01", "Geelong", "Sydney", 88, 70),
        _header(7, "2019-04-01", "Geelong", "Sydney", 88, 77),
        _header(7, "2019-04-01", "Geelong", "Sydney", None, 70),
    ]

    header = reconcile_match_header(rows)

    assert header["match_home_team_score"] == 88
    assert header["match_away_team_score"] == 70
    assert header["match_winner"] == "Geelong"
    assert header["match_margin"] == 18


def test_copies_weight_grouped_rows():
    rows = [
        _header(7, "2019-04-01", "Geelong", "Sydney", 88, 77, copies=1),
        _header(7, "2019-04-01", "Geelong", "Sydney", 88, 70, copies=30),
    ]

    assert reconcile_match_header(rows)["match_away_team_score"] == 70


def test_equal_scores_are_a_draw():
    header = reconcile_match_header([_header(8, "1995-04-01", "Hawthorn", "Carlton", 77, 77)])

    assert header["match_winner"] == DRAW
    assert header["match_margin"] == 0


def test_stored_result_used_when_scores_are_missing():
    header = reconcile_match_header(
        [_header(9, "1901-05-01", "Fitzroy", "Collingwood", None, None,
                 match_winner="Collingwood", match_margin=-12)]
    )

    assert header["match_winner"] == "Collingwood"
    assert header["match_margin"] == 12


def test_no_rows_means_no_match():
    assert reconcile_match_header([]) is None
    assert build_match_detail([]) is None


def test_team_score_reads_the_side_the_team_played_on():
    match = _header(1, "2020-01-01", "Carlton", "Essendon", 100, 80)

    assert team_score(match, "Carlton") == 100
    assert team_score(match, "Essendon") == 80
    assert team_score(match, "Richmond") is None


def test_head_to_head_without_meetings():
    result = build_head_to_head([], "Carlton", "Fremantle")

    assert result["summary"] == {"total_games": 0, "wins": {"Carlton": 0, "Fremantle": 0}, "draws": 0}
    assert result["last_meeting"] is None
    assert result["biggest_wins"] == {}
    assert result["last_meeting_performers"] == {"top_goals": [], "top_disposals": []}


def test_match_detail_from_database(session_maker, rivalry):
    with session_maker() as session:
        detail = build_match_detail(fetch_match_rows(session, 2))

    assert detail["match"]["match_away_team_score"] == 105
    assert detail["match"]["match_winner"] == "Essendon"
    assert [p["player_last_name"] for p in detail["players"]] == ["Cripps", "Merrett", "Parish"]
    essendon = detail["team_totals"]["Essendon"]
    assert essendon["players"] == 2
    assert essendon["goals"] == 7
    assert essendon["score"] == 120
    assert detail["team_totals"]["Carlton"]["score"] == 105


def test_head_to_head_from_database(session_maker, rivalry):
    with session_maker() as session:
        matches = dedupe_matches(fetch_head_to_head_rows(session, "Carlton", "Essendon"))
        players = fetch_match_rows(session, matches[0]["match_id"])

    result = build_head_to_head(matches, "Carlton", "Essendon", players)

    assert [m["match_id"] for m in result["history"]] == [2, 1]
    assert result["summary"] == {"total_games": 2, "wins": {"Carlton": 1, "Essendon": 1}, "draws": 0}
    assert result["biggest_wins"]["Essendon"]["match_margin"] == 15
    assert result["biggest_wins"]["Carlton"]["match_id"] == 1
    # Essendon's best came as the home side, Carlton's as the away side
    assert result["highest_scores"]["Essendon"]["score"] == 120
    assert result["highest_scores"]["Carlton"]["score"] == 105
    assert result["last_meeting"]["match_id"] == 2
    top_goals = result["last_meeting_performers"]["top_goals"]
    assert [(p["player_last_name"], p["goals"]) for p in top_goals] == [
        ("Merrett", 5),
        ("Parish", 2),
        ("Cripps", 1),
    ]


def test_hall_of_records_from_database(session_maker, seed, game_factory):
    seed(games=[
        game_factory(1, 1, "1990-04-01", player_last_name="Lockett", goals=3, disposals=10),
        game_factory(1, 2, "1991-04-01", player_last_name="Lockett", goals=4, disposals=12),
        game_factory(2, 1, "1990-04-01", player_last_name="Dunstall", goals=10, disposals=0),
        game_factory(3, 2, "1991-04-01", player_last_name="Nobody", goals=0),
    ])

    with session_maker() as session:
        records = fetch_hall_of_records(session)

    goals = records["Scoring"]["Goals"]["leaders"]
    assert [(r["player_last_name"], r["stat_value"]) for r in goals] == [("Dunstall", 10), ("Lockett", 7)]
    assert goals[1]["games_played"] == 2
    assert goals[1]["avg_per_game"] == 3.5
    assert goals[1]["first_year"] == 1990
    assert "Behinds" not in records["Scoring"]
    assert [r["player_last_name"] for r in records["Possession"]["Disposals"]["leaders"]] == ["Lockett"]
    assert records["Defence"] == {}


def test_career_leaders_only_accept_record_stats(session_maker):
    with session_maker() as session:
        with pytest.raises(ValueError):
            fetch_career_leaders(session, "player_id")
