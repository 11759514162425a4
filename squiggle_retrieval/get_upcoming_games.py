import argparse
import json
from datetime import datetime, timezone
from typing import List, Optional
from urllib.parse import urljoin
from urllib.request import Request, urlopen

from config import SQUIGGLE_API_URL, SQUIGGLE_USER_AGENT


def build_fixture_url(base_api_url: str = SQUIGGLE_API_URL, year: Optional[int] = None) -> str:
    """
    Build the Squiggle query for games that have not finished yet.
    Squiggle separates query terms with ';' rather than '&'.
    """
    base = base_api_url.rstrip("/") + "/"
    terms = ["q=games", "complete=0", "format=json"]
    if year:
        terms.insert(1, f"year={year}")
    return urljoin(base, "?" + ";".join(terms))


def fetch_json(url: str, timeout_seconds: int = 20, user_agent: str = SQUIGGLE_USER_AGENT) -> dict:
    req = Request(url, headers={"Accept": "application/json", "User-Agent": user_agent})
    with urlopen(req, timeout=timeout_seconds) as resp:
        data = resp.read()
        return json.loads(data.decode("utf-8"))


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    """Squiggle dates look like '2025-03-13 19:30:00' with a separate tz field."""
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _game_time(game: dict) -> Optional[datetime]:
    # unixtime is absolute; date is venue-local and only a fallback
    unixtime = game.get("unixtime")
    if unixtime:
        try:
            return datetime.fromtimestamp(int(unixtime), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError):
            pass
    return _parse_date(game.get("date"))


def select_next_round(games: List[dict], now: Optional[datetime] = None) -> List[dict]:
    """
    Keep games that start after ``now``, ordered by start time, and only those
    belonging to the earliest upcoming round.
    """
    now = now or datetime.now(timezone.utc)
    future = []
    for g in games:
        start = _game_time(g)
        if start is not None and start > now:
            future.append((start, g))
    future.sort(key=lambda pair: pair[0])
    if not future:
        return []
    next_round = future[0][1].get("round")
    return [g for _, g in future if g.get("round") == next_round]


def fetch_upcoming_games(base_api_url: str = SQUIGGLE_API_URL, now: Optional[datetime] = None) -> List[dict]:
    payload = fetch_json(build_fixture_url(base_api_url))
    games = payload.get("games", [])
    if not isinstance(games, list):
        return []
    return select_next_round(games, now=now)


def main() -> None:
    parser = argparse.ArgumentParser(description="Print the next round of AFL fixtures from Squiggle")
    parser.add_argument(
        "--base-url",
        default=SQUIGGLE_API_URL,
        help="Squiggle API URL (default from SQUIGGLE_API_URL)",
    )
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON output")
    args = parser.parse_args()

    try:
        games = fetch_upcoming_games(args.base_url)
    except Exception as exc:
        raise SystemExit(f"Request failed: {exc}")

    if args.pretty:
        print(json.dumps(games, indent=2, sort_keys=False))
    else:
        print(json.dumps(games, separators=(",", ":")))


if __name__ == "__main__":
    main()
