"""
Relay Squiggle's live-score Server-Sent Events feed to one browser client.

Each relay owns exactly one upstream connection. Bytes are forwarded as they
arrive, untouched. Closing the generator (client went away) closes the upstream
response before the generator finishes, so nothing is left running.
"""
import enum
import logging
from typing import AsyncIterator, Callable, Dict, Optional
from urllib.parse import quote, urljoin

import httpx

from config import SQUIGGLE_SSE_URL, SQUIGGLE_USER_AGENT


logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    # Stop reverse proxies from buffering the stream
    "X-Accel-Buffering": "no",
}

CONNECT_ERROR_EVENT = b"event: error\ndata: Unable to connect\n\n"
INTERNAL_ERROR_EVENT = b"event: error\ndata: Internal error\n\n"


class RelayState(str, enum.Enum):
    CONNECTING = "connecting"
    STREAMING = "streaming"
    CLOSED = "closed"


def build_stream_path(team: Optional[str] = None, game: Optional[str] = None) -> str:
    """game wins over team when both are given."""
    if game:
        return f"events/{quote(str(game), safe='')}"
    if team:
        return f"games/{quote(str(team), safe='')}"
    return "games"


def build_stream_url(
    team: Optional[str] = None,
    game: Optional[str] = None,
    base_url: str = SQUIGGLE_SSE_URL,
) -> str:
    base = base_url.rstrip("/") + "/"
    return urljoin(base, build_stream_path(team=team, game=game))


class LiveRelay:
    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        user_agent: str = SQUIGGLE_USER_AGENT,
    ):
        self._client = client
        self.url = url
        self.user_agent = user_agent
        self.state = RelayState.CONNECTING
        self._response: Optional[httpx.Response] = None

    @property
    def request_headers(self) -> Dict[str, str]:
        return {"User-Agent": self.user_agent, "Accept": "text/event-stream"}

    async def stream(self) -> AsyncIterator[bytes]:
        """
        Yield raw upstream bytes until either side goes away.

        A failed upstream connection or any fault while piping produces a
        single terminal ``error`` event.
        """
        self.state = RelayState.CONNECTING
        try:
            request = self._client.build_request("GET", self.url, headers=self.request_headers)
            try:
                self._response = await self._client.send(request, stream=True)
            except httpx.HTTPError as exc:
                logger.error(f"live-stream upstream connect failed for {self.url}: {exc}")
                yield CONNECT_ERROR_EVENT
                return

            if not self._response.is_success or self._response.status_code == 204:
                logger.error(
                    f"live-stream upstream returned {self._response.status_code} for {self.url}"
                )
                yield CONNECT_ERROR_EVENT
                return

            self.state = RelayState.STREAMING
            logger.info(f"live-stream relaying {self.url}")
            async for chunk in self._response.aiter_raw():
                if chunk:
                    yield chunk
            logger.info(f"live-stream upstream ended for {self.url}")
        except Exception as exc:
            logger.error(f"live-stream error: {exc}", exc_info=True)
            yield INTERNAL_ERROR_EVENT
        finally:
            await self.close()

    async def close(self) -> None:
        if self._response is not None:
            response, self._response = self._response, None
            try:
                await response.aclose()
            except httpx.HTTPError as exc:
                logger.warning(f"live-stream upstream close failed: {exc}")
        self.state = RelayState.CLOSED


def default_client_factory() -> httpx.AsyncClient:
    # No read timeout: a quiet feed between goals is not a dead connection
    return httpx.AsyncClient(timeout=httpx.Timeout(10.0, read=None))


async def relay_to_client(
    url: str,
    client_factory: Callable[[], httpx.AsyncClient] = default_client_factory,
) -> AsyncIterator[bytes]:
    """
    Own the HTTP client for one relay and close both when the consumer stops.
    """
    async with client_factory() as client:
        relay = LiveRelay(client, url)
        events = relay.stream()
        try:
            async for chunk in events:
                yield chunk
        finally:
            # async for does not close the inner generator on early exit
            await events.aclose()
