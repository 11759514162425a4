from sqlalchemy import Float, Integer, String, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


TRACKED_STATS = ("disposals", "goals", "kicks", "handballs", "marks", "tackles")


class AFLData(Base):
    """One player's line for one match."""

    __tablename__ = "afl_data"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    match_id: Mapped[int] = mapped_column(Integer, nullable=False)
    # ISO YYYY-MM-DD so text ordering is chronological on every backend
    match_date: Mapped[str] = mapped_column(String(10), nullable=False)
    match_round: Mapped[str] = mapped_column(String(32), nullable=True)
    venue_name: Mapped[str] = mapped_column(String(128), nullable=True)
    match_home_team: Mapped[str] = mapped_column(String(64), nullable=True)
    match_away_team: Mapped[str] = mapped_column(String(64), nullable=True)
    # Repeated on every player's line for the match
    match_home_team_score: Mapped[int] = mapped_column(Integer, nullable=True)
    match_away_team_score: Mapped[int] = mapped_column(Integer, nullable=True)
    match_winner: Mapped[str] = mapped_column(String(64), nullable=True)
    match_margin: Mapped[int] = mapped_column(Integer, nullable=True)

    player_id: Mapped[int] = mapped_column(Integer, nullable=False)
    player_first_name: Mapped[str] = mapped_column(String(64), nullable=True)
    player_last_name: Mapped[str] = mapped_column(String(64), nullable=True)
    player_team: Mapped[str] = mapped_column(String(64), nullable=True)
    guernsey_number: Mapped[int] = mapped_column(Integer, nullable=True)

    # Older seasons predate most stat categories, so all of these may be null
    disposals: Mapped[int] = mapped_column(Integer, nullable=True)
    goals: Mapped[int] = mapped_column(Integer, nullable=True)
    behinds: Mapped[int] = mapped_column(Integer, nullable=True)
    kicks: Mapped[int] = mapped_column(Integer, nullable=True)
    handballs: Mapped[int] = mapped_column(Integer, nullable=True)
    marks: Mapped[int] = mapped_column(Integer, nullable=True)
    tackles: Mapped[int] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        UniqueConstraint("player_id", "match_id", name="uq_afl_data_player_match"),
        Index("ix_afl_data_player_date", "player_id", "match_date", "match_id"),
    )


class PlayerProfile(Base):
    __tablename__ = "player_profiles"

    player_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    player_first_name: Mapped[str] = mapped_column(String(64), nullable=True)
    player_last_name: Mapped[str] = mapped_column(String(64), nullable=True)

    games: Mapped[int] = mapped_column(Integer, nullable=True)
    disposals: Mapped[int] = mapped_column(Integer, nullable=True)
    goals: Mapped[int] = mapped_column(Integer, nullable=True)
    kicks: Mapped[int] = mapped_column(Integer, nullable=True)
    handballs: Mapped[int] = mapped_column(Integer, nullable=True)
    marks: Mapped[int] = mapped_column(Integer, nullable=True)
    tackles: Mapped[int] = mapped_column(Integer, nullable=True)

    first_season: Mapped[int] = mapped_column(Integer, nullable=True)
    last_season: Mapped[int] = mapped_column(Integer, nullable=True)

    avg_disposals: Mapped[float] = mapped_column(Float, nullable=True)
    avg_goals: Mapped[float] = mapped_column(Float, nullable=True)
    avg_kicks: Mapped[float] = mapped_column(Float, nullable=True)
    avg_handballs: Mapped[float] = mapped_column(Float, nullable=True)
    avg_marks: Mapped[float] = mapped_column(Float, nullable=True)
    avg_tackles: Mapped[float] = mapped_column(Float, nullable=True)


class PlayerSeasonTotals(Base):
    __tablename__ = "player_season_totals"

    player_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    season: Mapped[int] = mapped_column(Integer, primary_key=True)
    team: Mapped[str] = mapped_column(String(64), primary_key=True)

    games: Mapped[int] = mapped_column(Integer, nullable=True)
    disposals: Mapped[int] = mapped_column(Integer, nullable=True)
    goals: Mapped[int] = mapped_column(Integer, nullable=True)
    kicks: Mapped[int] = mapped_column(Integer, nullable=True)
    handballs: Mapped[int] = mapped_column(Integer, nullable=True)
    marks: Mapped[int] = mapped_column(Integer, nullable=True)
    tackles: Mapped[int] = mapped_column(Integer, nullable=True)
