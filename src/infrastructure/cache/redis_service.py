import redis
import logging
from typing import Optional, Type, TypeVar
import os

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class RedisService:
    def __init__(self, redis_url: Optional[str] = None):
        self.redis_url = redis_url or os.getenv("REDIS_URL")
        self.client = None
        if self.redis_url:
            try:
                self.client = redis.from_url(self.redis_url, decode_responses=True)
                # Test connection
                self.client.ping()
                logger.info("Connected to Redis for caching.")
            except Exception as e:
                logger.warning(f"Failed to connect to Redis: {e}. Caching disabled.")
                self.client = None
        else:
            logger.info("REDIS_URL not set. Caching disabled.")

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def get_model(self, key: str, model: Type[M]) -> Optional[M]:
        if not self.client:
            return None
        try:
            data = self.client.get(key)
            if data:
                return model.model_validate_json(data)
            return None
        except ValidationError as e:
            # Stale layout from an older deploy; treat as a miss
            logger.warning(f"Discarding unreadable cache entry {key}: {e}")
            self.delete(key)
            return None
        except Exception as e:
            logger.warning(f"Redis get error: {e}")
            return None

    def set_model(self, key: str, value: BaseModel, ttl_seconds: int = 300):
        if not self.client:
            return
        try:
            self.client.setex(key, ttl_seconds, value.model_dump_json())
        except Exception as e:
            logger.warning(f"Redis set error: {e}")

    def delete(self, key: str):
        if not self.client:
            return
        try:
            self.client.delete(key)
        except Exception as e:
            logger.warning(f"Redis delete error: {e}")
