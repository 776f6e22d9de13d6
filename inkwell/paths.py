"""
Path registry — which slugs exist in the store.

Each call to enumerate() re-queries the store and yields the slugs of the
result once. refresh() records the enumerated set so the scheduler can tell
a pre-rendered slug from one published since the last enumeration.
"""
import logging
from typing import AsyncIterator, Optional

from inkwell.clients.sanity_client import ContentStoreClient

logger = logging.getLogger(__name__)


class PathRegistry:
    def __init__(self, store: ContentStoreClient) -> None:
        self.store = store
        self._known: frozenset[str] = frozenset()
        self.enumerated: bool = False

    async def enumerate(self) -> AsyncIterator[str]:
        paths = await self.store.fetch_post_paths()
        for path in paths:
            yield path.slug.current

    async def refresh(self) -> list[str]:
        slugs = [slug async for slug in self.enumerate()]
        self._known = frozenset(slugs)
        self.enumerated = True
        logger.info("Enumerated %d post paths", len(slugs))
        return slugs

    def is_known(self, slug: str) -> Optional[bool]:
        """True/False against the last enumeration, None if never enumerated."""
        if not self.enumerated:
            return None
        return slug in self._known
