import json
from typing import Any, Optional
from redis import asyncio as aioredis
from config import settings
import logging

logger = logging.getLogger(__name__)


class CacheManager:
	"""Redis cache manager with connection pooling and error handling"""

	def __init__(self):
		self.redis: Optional[aioredis.Redis] = None
		self._connection_pool = None

	async def connect(self):
		"""Initialize Redis connection"""
		if not settings.cache_enabled:
			logger.info("Cache is disabled")
			return

		try:
			self._connection_pool = aioredis.ConnectionPool.from_url(
				settings.get_redis_url,
				max_connections=settings.redis_max_connections,
				retry_on_timeout=settings.redis_retry_on_timeout,
				decode_responses=True
			)
			self.redis = aioredis.Redis(connection_pool=self._connection_pool)

			# Test connection
			await self.redis.ping()
			logger.info("Redis connection established successfully")

		except Exception as e:
			# Profile lookups fall back to the database
			logger.error(f"Failed to connect to Redis: {e}")
			self.redis = None

	async def disconnect(self):
		"""Close Redis connection"""
		if self.redis:
			await self.redis.aclose()
			if self._connection_pool:
				await self._connection_pool.disconnect()
			self.redis = None
			logger.info("Redis connection closed")

	async def is_available(self) -> bool:
		"""Check if Redis is available"""
		if not self.redis:
			return False
		try:
			await self.redis.ping()
			return True
		except Exception:
			return False


# Global cache manager instance
cache_manager = CacheManager()


class CacheService:
	"""High-level cache service with JSON serialization and error handling"""

	def __init__(self, cache_manager: CacheManager):
		self.cache_manager = cache_manager

	async def get(self, key: str) -> Optional[Any]:
		"""Get value from cache"""
		if not await self.cache_manager.is_available():
			return None

		try:
			value = await self.cache_manager.redis.get(key)
			if value is None:
				return None
			return json.loads(value)
		except Exception as e:
			logger.warning(f"Cache get error for key {key}: {e}")
			return None

	async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
		"""Set value in cache"""
		if not await self.cache_manager.is_available():
			return False

		try:
			ttl = ttl or settings.cache_default_ttl
			await self.cache_manager.redis.setex(key, ttl, json.dumps(value, default=str))
			return True
		except Exception as e:
			logger.warning(f"Cache set error for key {key}: {e}")
			return False

	async def delete(self, key: str) -> bool:
		"""Delete key from cache"""
		if not await self.cache_manager.is_available():
			return False

		try:
			result = await self.cache_manager.redis.delete(key)
			return result > 0
		except Exception as e:
			logger.warning(f"Cache delete error for key {key}: {e}")
			return False


# Global cache service instance
cache_service = CacheService(cache_manager)


class CacheKeys:
	"""Standardized cache key generators"""

	@staticmethod
	def user_profile(uid: str) -> str:
		return f"user_profile:{uid}"

	@staticmethod
	def user_by_username(username: str) -> str:
		return f"user_username:{username}"


class CacheInvalidation:
	"""Cache invalidation strategies"""

	@staticmethod
	async def invalidate_user_cache(uid: str, *usernames: str):
		"""Drop cached profile entries for a user, including old usernames"""
		keys = [CacheKeys.user_profile(uid)]
		keys.extend(CacheKeys.user_by_username(name) for name in usernames if name)

		total_deleted = 0
		for key in keys:
			if await cache_service.delete(key):
				total_deleted += 1

		logger.info(f"Invalidated {total_deleted} cache entries for user {uid}")
