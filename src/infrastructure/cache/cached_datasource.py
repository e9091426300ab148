import logging
import os
from typing import List, Optional

from src.core.entities.position import Position
from src.core.entities.trade import TradeDataset
from src.core.interfaces.datasource import IDataSource
from src.infrastructure.cache.redis_service import RedisService

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300


class CachedDataSource(IDataSource):
    """
    Wraps another data source and keeps each wallet's dataset in Redis
    for a short TTL. Positions are live and never cached.
    """

    def __init__(self, inner: IDataSource, cache: RedisService, ttl_seconds: Optional[int] = None):
        self.inner = inner
        self.cache = cache
        self.ttl_seconds = ttl_seconds or int(os.getenv("CACHE_TTL_SECONDS", DEFAULT_TTL_SECONDS))

    @staticmethod
    def cache_key(wallet: str) -> str:
        return f"dataset:{wallet}"

    async def get_dataset(self, wallet: str) -> TradeDataset:
        key = self.cache_key(wallet)
        cached = self.cache.get_model(key, TradeDataset)
        if cached is not None:
            logger.info(f"Cache hit for {wallet}")
            return cached

        dataset = await self.inner.get_dataset(wallet)
        # Empty results usually mean the upstream failed; retry next time
        if dataset.trades:
            self.cache.set_model(key, dataset, self.ttl_seconds)
        return dataset

    async def get_positions(self, wallet: str) -> List[Position]:
        return await self.inner.get_positions(wallet)

    async def aclose(self):
        await self.inner.aclose()
