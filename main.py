"""
AFL Stats API

FastAPI application serving AFL historical statistics:
- Player career profiles reconciled from profile, season and game data
- Team and player directories
- Match detail, head-to-head records and the hall of records
- Upcoming fixtures and a live-score relay from Squiggle
- Scheduled aggregate refresh and cache housekeeping
"""
import asyncio
import datetime
import logging
import re
from functools import lru_cache
from typing import Callable, List, Optional

import httpx
from apscheduler.schedulers import SchedulerNotRunningError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from analysis.match_records import build_head_to_head, build_match_detail, dedupe_matches
from analysis.player_career import PlayerCareerResolver, PlayerDataUnavailable
from analysis.utils import TTLCache
from config import (
    AGGREGATE_REFRESH_HOUR,
    AGGREGATE_REFRESH_TZ,
    CACHE_TTL_SECONDS,
    DATABASE_URL,
    PAGE_SIZE,
    UPCOMING_CACHE_TTL_SECONDS,
)
from db.database import get_engine, get_session_maker
from db.db_extract import PlayerRepository
from squiggle_retrieval.get_upcoming_games import fetch_upcoming_games
from squiggle_retrieval.live_stream import (
    SSE_HEADERS,
    build_stream_url,
    default_client_factory,
    relay_to_client,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="AFL Stats API",
    version="0.1.0",
    description="AFL historical statistics, fixtures and live scores"
)

# Scheduler for automated tasks
scheduler = AsyncIOScheduler()

# Shared read-through cache for team lists and fixtures
response_cache = TTLCache(default_ttl=CACHE_TTL_SECONDS)

_NUMERIC_ID_RE = re.compile(r"^\d+$")
_LETTER_RE = re.compile(r"^[A-Za-z]$")


# ============================================================================
# Pydantic Models
# ============================================================================

class TaskStatus(BaseModel):
    """Status response for async tasks"""
    task: str
    status: str
    message: str
    started_at: Optional[str] = None
    completed_at: Optional[str] = None


# ============================================================================
# Dependencies
# ============================================================================

@lru_cache(maxsize=1)
def _repository() -> PlayerRepository:
    engine = get_engine(DATABASE_URL)
    return PlayerRepository(get_session_maker(engine))


def get_player_repository() -> PlayerRepository:
    try:
        return _repository()
    except RuntimeError as exc:
        logger.error(f"Database unavailable: {exc}")
        raise HTTPException(status_code=500, detail="Database is not configured")


def get_cache() -> TTLCache:
    return response_cache


def get_live_client_factory() -> Callable[[], httpx.AsyncClient]:
    return default_client_factory


def get_upcoming_fetcher() -> Callable[[], List[dict]]:
    return fetch_upcoming_games


# ============================================================================
# Parameter parsing
# ============================================================================

def parse_player_id(raw: Optional[str]) -> int:
    if raw is None or not raw.strip():
        raise HTTPException(status_code=400, detail="Missing required parameter: playerId")
    if not _NUMERIC_ID_RE.match(raw.strip()):
        raise HTTPException(status_code=400, detail="playerId must be a number")
    return int(raw.strip())


def parse_page(raw: Optional[str]) -> int:
    if raw is None or not raw.strip():
        return 1
    try:
        page = int(raw.strip())
    except ValueError:
        raise HTTPException(status_code=400, detail="page must be an integer")
    if page < 1:
        raise HTTPException(status_code=400, detail="page must be >= 1")
    return page


# ============================================================================
# Background Task Functions
# ============================================================================

async def run_aggregate_refresh():
    """Rebuild player_profiles and player_season_totals"""
    try:
        logger.info("Starting aggregate refresh")

        from db.run_aggregate_refresh import run as run_refresh

        loop = asyncio.get_running_loop()
        counts = await loop.run_in_executor(None, run_refresh, DATABASE_URL)

        logger.info(f"Aggregate refresh completed successfully: {counts}")

    except Exception as e:
        logger.error(f"Aggregate refresh failed: {e}", exc_info=True)
        raise


async def scheduled_aggregate_refresh():
    """Scheduled task that runs nightly in Melbourne time"""
    try:
        await run_aggregate_refresh()
    except Exception as e:
        logger.error(f"Scheduled aggregate refresh failed: {e}", exc_info=True)


def purge_response_cache():
    removed = response_cache.purge_expired()
    if removed:
        logger.info(f"Purged {removed} expired cache entries")


# ============================================================================
# API Endpoints
# ============================================================================

@app.get("/")
async def root():
    """Root endpoint with API info"""
    return {
        "status": "ok",
        "service": "afl-stats",
        "version": "0.1.0",
        "endpoints": {
            "players": "/api/v1/players/*",
            "teams": "/api/v1/teams",
            "matches": "/api/v1/matches/{match_id}",
            "head_to_head": "/api/v1/head-to-head/{home}/{away}",
            "records": "/api/v1/hall-of-records",
            "fixtures": "/api/v1/upcoming-games",
            "live": "/api/v1/live-stream",
            "admin": "/api/v1/admin/*",
            "scheduler": "/api/v1/scheduler/*"
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "database_configured": DATABASE_URL is not None,
        "scheduler_running": scheduler.running,
        "cached_entries": len(response_cache),
    }


# ============================================================================
# Player Endpoints
# ============================================================================

@app.get("/api/v1/players/career")
async def get_player_career(
    player_id: Optional[str] = Query(None, alias="playerId"),
    page: Optional[str] = None,
    repository: PlayerRepository = Depends(get_player_repository),
):
    """
    Career profile, season breakdown and one page of games for a player.

    Always answers 200 for a well-formed id, even when nothing is recorded.
    """
    pid = parse_player_id(player_id)
    page_no = parse_page(page)

    resolver = PlayerCareerResolver(repository, page_size=PAGE_SIZE)
    try:
        return await resolver.resolve(pid, page=page_no)
    except PlayerDataUnavailable as exc:
        logger.error(f"Player {pid} unavailable: {exc}")
        raise HTTPException(status_code=500, detail="Failed to fetch player data")


@app.get("/api/v1/players/alphabet")
async def get_player_alphabet(repository: PlayerRepository = Depends(get_player_repository)):
    """Surname initials with player counts"""
    try:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, repository.player_initials)
    except Exception as exc:
        logger.error(f"Alphabet fetch failed: {exc}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch players")


@app.get("/api/v1/players")
async def get_players_by_letter(
    letter: Optional[str] = None,
    repository: PlayerRepository = Depends(get_player_repository),
):
    """Up to 50 players whose surname starts with the given letter"""
    if not letter or not _LETTER_RE.match(letter):
        raise HTTPException(status_code=400, detail="Letter parameter required")
    try:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, repository.players_by_letter, letter.upper())
    except Exception as exc:
        logger.error(f"Players fetch failed for letter {letter}: {exc}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch players")


# ============================================================================
# Team and Fixture Endpoints
# ============================================================================

@app.get("/api/v1/teams")
async def get_teams(
    repository: PlayerRepository = Depends(get_player_repository),
    cache: TTLCache = Depends(get_cache),
):
    """Every team with its first/last year and match count"""
    cached = cache.get("teams")
    if cached is not None:
        return cached
    try:
        loop = asyncio.get_running_loop()
        teams = await loop.run_in_executor(None, repository.teams)
    except Exception as exc:
        logger.error(f"Teams fetch failed: {exc}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch teams")
    cache.set("teams", teams)
    return teams


# ============================================================================
# Match and Record Endpoints
# ============================================================================

@app.get("/api/v1/matches/{match_id}")
async def get_match(
    match_id: str,
    repository: PlayerRepository = Depends(get_player_repository),
):
    """Reconciled match header, every player's line and team totals"""
    if not _NUMERIC_ID_RE.match(match_id.strip()):
        raise HTTPException(status_code=400, detail="match id must be a number")
    mid = int(match_id.strip())
    try:
        loop = asyncio.get_running_loop()
        rows = await loop.run_in_executor(None, repository.match_rows, mid)
    except Exception as exc:
        logger.error(f"Match {mid} fetch failed: {exc}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch match data")
    detail = build_match_detail(rows)
    if detail is None:
        raise HTTPException(status_code=404, detail="Match not found")
    return detail


@app.get("/api/v1/head-to-head/{home}/{away}")
async def get_head_to_head(
    home: str,
    away: str,
    repository: PlayerRepository = Depends(get_player_repository),
):
    """Results, records and last-meeting performers between two teams"""
    home, away = home.strip(), away.strip()
    if not home or not away or home == away:
        raise HTTPException(status_code=400, detail="Two different teams are required")
    try:
        loop = asyncio.get_running_loop()
        rows = await loop.run_in_executor(None, repository.head_to_head_rows, home, away)
        matches = dedupe_matches(rows)
        players = []
        if matches:
            players = await loop.run_in_executor(
                None, repository.match_rows, matches[0]["match_id"]
            )
    except Exception as exc:
        logger.error(f"Head-to-head {home} v {away} failed: {exc}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch head-to-head")
    return build_head_to_head(matches, home, away, players)


@app.get("/api/v1/hall-of-records")
async def get_hall_of_records(
    repository: PlayerRepository = Depends(get_player_repository),
    cache: TTLCache = Depends(get_cache),
):
    """Top 10 career totals per record stat, grouped by category"""
    cached = cache.get("hall-of-records")
    if cached is not None:
        return cached
    try:
        loop = asyncio.get_running_loop()
        records = await loop.run_in_executor(None, repository.hall_of_records)
    except Exception as exc:
        logger.error(f"Hall of records fetch failed: {exc}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to load Hall of Records")
    cache.set("hall-of-records", records)
    return records


@app.get("/api/v1/upcoming-games")
async def get_upcoming_games(
    cache: TTLCache = Depends(get_cache),
    fetcher: Callable[[], List[dict]] = Depends(get_upcoming_fetcher),
):
    """Next round of fixtures from Squiggle"""
    headers = {"Cache-Control": "s-maxage=300"}
    cached = cache.get("upcoming-games")
    if cached is not None:
        return JSONResponse(content=cached, headers=headers)
    try:
        loop = asyncio.get_running_loop()
        games = await loop.run_in_executor(None, fetcher)
    except Exception as exc:
        logger.error(f"Upcoming-games fetch failed: {exc}", exc_info=True)
        raise HTTPException(status_code=502, detail="Failed to fetch fixture")
    cache.set("upcoming-games", games, ttl=UPCOMING_CACHE_TTL_SECONDS)
    return JSONResponse(content=games, headers=headers)


@app.get("/api/v1/live-stream")
async def live_stream(
    team: Optional[str] = None,
    game: Optional[str] = None,
    client_factory: Callable[[], httpx.AsyncClient] = Depends(get_live_client_factory),
):
    """Relay Squiggle's live event stream for a game, a team, or all games"""
    url = build_stream_url(team=team, game=game)
    return StreamingResponse(
        relay_to_client(url, client_factory),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


# ============================================================================
# Admin Endpoints - Manual Triggers
# ============================================================================

@app.post("/api/v1/admin/refresh-aggregates", response_model=TaskStatus)
async def trigger_aggregate_refresh(background_tasks: BackgroundTasks):
    """
    Manually rebuild player_profiles and player_season_totals.

    Runs: python -m db.run_aggregate_refresh
    """
    background_tasks.add_task(run_aggregate_refresh)

    return TaskStatus(
        task="aggregate_refresh",
        status="started",
        message="Aggregate refresh started",
        started_at=datetime.datetime.now().isoformat()
    )


@app.post("/api/v1/admin/clear-cache", response_model=TaskStatus)
async def clear_cache(cache: TTLCache = Depends(get_cache)):
    cache.clear()
    now = datetime.datetime.now().isoformat()
    return TaskStatus(
        task="clear_cache",
        status="completed",
        message="Response cache cleared",
        started_at=now,
        completed_at=now
    )


# ============================================================================
# Scheduler Endpoints
# ============================================================================

@app.get("/api/v1/scheduler/status")
async def get_scheduler_status():
    """Get scheduler status and upcoming jobs"""
    jobs = scheduler.get_jobs()

    return {
        "running": scheduler.running,
        "jobs": [
            {
                "id": job.id,
                "name": job.name,
                "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
                "trigger": str(job.trigger)
            }
            for job in jobs
        ]
    }


@app.post("/api/v1/scheduler/pause")
async def pause_scheduler():
    """Pause the scheduler (stops automatic tasks)"""
    try:
        scheduler.pause()
    except SchedulerNotRunningError:
        raise HTTPException(status_code=409, detail="Scheduler is not running")
    return {"status": "paused", "message": "Scheduler paused. Automatic tasks will not run."}


@app.post("/api/v1/scheduler/resume")
async def resume_scheduler():
    """Resume the scheduler"""
    try:
        scheduler.resume()
    except SchedulerNotRunningError:
        raise HTTPException(status_code=409, detail="Scheduler is not running")
    return {"status": "running", "message": "Scheduler resumed. Automatic tasks enabled."}


# ============================================================================
# Application Lifecycle
# ============================================================================

@app.on_event("startup")
async def startup_event():
    """Initialize scheduler on startup"""
    logger.info("Starting AFL Stats API...")

    if DATABASE_URL:
        scheduler.add_job(
            scheduled_aggregate_refresh,
            trigger=CronTrigger(hour=AGGREGATE_REFRESH_HOUR, minute=0, timezone=AGGREGATE_REFRESH_TZ),
            id='aggregate_refresh',
            name='Nightly Aggregate Refresh (Melbourne)',
            replace_existing=True
        )
    scheduler.add_job(
        purge_response_cache,
        trigger=IntervalTrigger(seconds=60),
        id='cache_purge',
        name='Response Cache Purge',
        replace_existing=True
    )

    scheduler.start()
    logger.info("Scheduler started.")
    logger.info(f"Database URL configured: {DATABASE_URL is not None}")

    for job in scheduler.get_jobs():
        if job.next_run_time:
            logger.info(f"Next run of {job.id}: {job.next_run_time.isoformat()}")


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown"""
    logger.info("Shutting down...")
    scheduler.shutdown()
    logger.info("Scheduler stopped")


# ============================================================================
# Main Entry Point
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
