"""Best-effort loader for the live trip updates feed."""

import logging

from mta_mcp.data.config import MTAConfig
from mta_mcp.data.gtfsrt_client import GTFSRTClient
from mta_mcp.models.realtime import LiveSnapshot

logger = logging.getLogger(__name__)


class LiveFeedLoader:
    """Fetches trip updates, degrading every failure to an empty feed.

    Live data is optional: network errors, HTTP errors and undecodable
    payloads are logged and replaced by ``LiveSnapshot.empty()``.
    """

    def __init__(self, config: MTAConfig):
        self._config = config

    async def load(self) -> LiveSnapshot:
        try:
            async with GTFSRTClient(self._config) as client:
                live = await client.fetch_trip_updates()
        except Exception as e:
            logger.warning(f"Failed to fetch trip updates: {e}")
            return LiveSnapshot.empty()

        logger.debug(f"Fetched {len(live.trip_updates)} trip updates")
        return live
