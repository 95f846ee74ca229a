"""
Client for the view statistics server.
View counts only enrich responses, so any failure reads as zero views.
"""

from datetime import datetime, timedelta
from typing import Optional
import httpx
import logging

from ewm.core.config import config

logger = logging.getLogger(__name__)

STATS_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


class StatsClient:
    """
    Reads unique view counts of event pages from the stats server.
    """

    def __init__(self):
        self.stats_config = None

    async def _get_configs(self):
        """Get configuration settings."""
        if not self.stats_config:
            self.stats_config = await config.get_stats_config()

    async def get_event_views(self, event_id: int, now: Optional[datetime] = None) -> int:
        """
        Get unique views of /events/{event_id} over the past year.

        Returns:
            Hit count, or 0 if the stats server is unavailable
        """
        try:
            await self._get_configs()
            now = now or datetime.now()
            params = {
                "start": (now - timedelta(days=365)).strftime(STATS_DATETIME_FORMAT),
                "end": (now + timedelta(hours=1)).strftime(STATS_DATETIME_FORMAT),
                "uris": f"/events/{event_id}",
                "unique": "true",
            }

            async with httpx.AsyncClient(
                base_url=self.stats_config["base_url"],
                timeout=self.stats_config["timeout_seconds"]
            ) as client:
                response = await client.get("/stats", params=params)
                response.raise_for_status()
                stats = response.json()

            if stats:
                return int(stats[0].get("hits", 0))

        except Exception as e:
            logger.warning(f"Failed to get views for event {event_id}: {e}")

        return 0


# Global stats client instance
stats_client = StatsClient()
