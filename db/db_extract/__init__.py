from .extractors import (
    RECORD_CATEGORIES,
    fetch_player_profile,
    fetch_player_seasons,
    fetch_player_games_page,
    fetch_player_best_stats,
    fetch_player_debut,
    fetch_player_team_history,
    fetch_teams,
    fetch_player_initials,
    fetch_players_by_letter,
    fetch_match_rows,
    fetch_head_to_head_rows,
    fetch_career_leaders,
    fetch_hall_of_records,
    load_game_rows_dataframe,
)
from .repository import PlayerRepository

__all__ = [
    "PlayerRepository",
    "RECORD_CATEGORIES",
    "fetch_player_profile",
    "fetch_player_seasons",
    "fetch_player_games_page",
    "fetch_player_best_stats",
    "fetch_player_debut",
    "fetch_player_team_history",
    "fetch_teams",
    "fetch_player_initials",
    "fetch_players_by_letter",
    "fetch_match_rows",
    "fetch_head_to_head_rows",
    "fetch_career_leaders",
    "fetch_hall_of_records",
    "load_game_rows_dataframe",
]
