"""
Discovers the channels listed on a catalog category page.
"""

import asyncio
import logging
import re

import aiohttp
from bs4 import BeautifulSoup

from accuripper.exceptions import ChannelFetchError
from accuripper.models.track import Channel

from .client import CatalogClient

log = logging.getLogger(__name__)

_CHANNEL_ID_REGEX = re.compile(r"^[a-f\d]+$")


def parse_channels(page_html: str) -> list[Channel]:
    """
    Extracts channels from a category page.

    A channel is any element carrying a hex ``data-id``, a ``data-oldid`` and a
    ``data-name``. The page lists some channels several times, so results are
    deduplicated by id, keeping the first occurrence.
    """
    soup = BeautifulSoup(page_html, "html.parser")
    channels: list[Channel] = []
    seen: set[str] = set()
    for el in soup.find_all(
        attrs={"data-id": _CHANNEL_ID_REGEX, "data-oldid": True, "data-name": True}
    ):
        channel_id = el["data-id"]
        name = el["data-name"].strip()
        if channel_id in seen or not name:
            continue
        seen.add(channel_id)
        channels.append(Channel(name=name, id=channel_id))
    return channels


class ChannelSource:
    """Lists the channels of one catalog category."""

    def __init__(self, client: CatalogClient, category_url: str):
        self.client = client
        self.category_url = category_url

    async def fetch_channels(self) -> list[Channel]:
        try:
            page_html = await self.client.fetch_text(self.category_url)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ChannelFetchError(
                f"channel fetcher: fetch channels from {self.category_url}: {e}"
            ) from e
        channels = parse_channels(page_html)
        log.debug(f"Parsed {len(channels)} channels from {self.category_url}")
        return channels
