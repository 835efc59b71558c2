"""
Subscription Repository
=======================

Channels subscribed to a site's build notifications, stored under
`<siteID>_webhook` as a space-joined list of channel IDs.
"""

from typing import Dict, List, Optional

from redis.asyncio import Redis

from netlify_bridge.config.constants import NETLIFY_WEBHOOK_SUBSCRIPTIONS_KV_IDENTIFIER

from .kv_repository import KVRepository


def remove_duplicates(values: List[str]) -> List[str]:
    """Drop repeated entries, keeping the first occurrence order."""
    return list(dict.fromkeys(values))


class SubscriptionRepository(KVRepository):
    """Site to channel subscription lists"""

    def __init__(self, redis_client: Redis, key_prefix: str = ""):
        super().__init__(redis_client, key_prefix=key_prefix)

    @staticmethod
    def subscription_key(site_id: str) -> str:
        return f"{site_id}{NETLIFY_WEBHOOK_SUBSCRIPTIONS_KV_IDENTIFIER}"

    async def get_channels(self, site_id: str) -> List[str]:
        """Channel IDs subscribed to a site, empty if none."""
        value = await self.get_value(self.subscription_key(site_id))
        if not value:
            return []
        return value.split()

    async def add_channel(self, site_id: str, channel_id: str) -> List[str]:
        """
        Subscribe a channel to a site

        Returns:
            The updated, deduplicated channel list
        """
        def subscribe(current: Optional[str]) -> str:
            return " ".join(remove_duplicates((current or "").split() + [channel_id]))

        channels = (await self.update_value(self.subscription_key(site_id), subscribe)).split()

        self.logger.info("Channel subscribed", site_id=site_id, channel_id=channel_id, subscribers=len(channels))
        return channels

    async def remove_channel(self, site_id: str, channel_id: str) -> List[str]:
        """
        Unsubscribe a channel from a site

        The record is removed entirely once no channel is left.

        Returns:
            The remaining channel list
        """
        def unsubscribe(current: Optional[str]) -> Optional[str]:
            remaining = [channel for channel in (current or "").split() if channel != channel_id]
            return " ".join(remaining) or None

        remaining = await self.update_value(self.subscription_key(site_id), unsubscribe)
        channels = remaining.split() if remaining else []

        self.logger.info("Channel unsubscribed", site_id=site_id, channel_id=channel_id, subscribers=len(channels))
        return channels

    async def all_subscriptions(self) -> Dict[str, List[str]]:
        """Every subscription record, keyed by site ID."""
        suffix = NETLIFY_WEBHOOK_SUBSCRIPTIONS_KV_IDENTIFIER
        result: Dict[str, List[str]] = {}

        for key in await self.keys_with_suffix(suffix):
            site_id = key[: -len(suffix)]
            channels = await self.get_channels(site_id)
            if channels:
                result[site_id] = channels

        return result

    async def sites_for_channel(self, channel_id: str) -> List[str]:
        """Site IDs a channel is subscribed to."""
        return [
            site_id
            for site_id, channels in (await self.all_subscriptions()).items()
            if channel_id in channels
        ]
