import os

from dotenv import load_dotenv


load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")

SQUIGGLE_API_URL = os.environ.get("SQUIGGLE_API_URL", "https://api.squiggle.com.au/")
SQUIGGLE_SSE_URL = os.environ.get("SQUIGGLE_SSE_URL", "https://api.squiggle.com.au/sse/")
# Squiggle asks every client to identify itself
SQUIGGLE_USER_AGENT = os.environ.get(
    "SQUIGGLE_USER_AGENT", "AFL-Stats-Live (contact@example.com)"
)

FETCH_TIMEOUT_SECONDS = float(os.environ.get("FETCH_TIMEOUT_SECONDS", "10"))
CACHE_TTL_SECONDS = float(os.environ.get("CACHE_TTL_SECONDS", "300"))
UPCOMING_CACHE_TTL_SECONDS = float(os.environ.get("UPCOMING_CACHE_TTL_SECONDS", "600"))

AGGREGATE_REFRESH_HOUR = int(os.environ.get("AGGREGATE_REFRESH_HOUR", "4"))
AGGREGATE_REFRESH_TZ = "Australia/Melbourne"

PAGE_SIZE = 50
