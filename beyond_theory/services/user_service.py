from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from beyond_theory.models.user import UserProfile
from beyond_theory.core.cache import cache_service, CacheKeys, CacheInvalidation
from beyond_theory.core.database import store_operation
from beyond_theory.core.errors import NotFoundError, ValidationError
from beyond_theory.core.logging import chat_logger
from beyond_theory.core.metrics import record_cache_lookup, record_profile_created
from beyond_theory.schemas.user import UserProfileCreate
from config import settings
import logging

logger = logging.getLogger(__name__)


class UserService:
	"""User directory backed by the store, with Redis profile caching"""

	def __init__(self, db: Session):
		self.db = db

	async def get_profile(self, uid: str) -> Optional[UserProfile]:
		"""Get profile by uid with caching"""
		cache_key = CacheKeys.user_profile(uid)

		cached_profile = await cache_service.get(cache_key)
		if cached_profile:
			record_cache_lookup("user_profile", hit=True)
			logger.debug(f"Cache hit for user {uid}")
			return UserProfile(**cached_profile)
		record_cache_lookup("user_profile", hit=False)

		with store_operation(self.db, "select", "user_profiles"):
			profile = self.db.get(UserProfile, uid)
		if profile:
			await cache_service.set(cache_key, profile.to_dict(), ttl=settings.cache_user_ttl)
			logger.debug(f"Cached user {uid}")

		return profile

	async def require_profile(self, uid: str) -> UserProfile:
		profile = await self.get_profile(uid)
		if profile is None:
			raise NotFoundError(f"User {uid} not found")
		return profile

	async def get_profile_by_username(self, username: str) -> Optional[UserProfile]:
		"""Get profile by username with caching"""
		cache_key = CacheKeys.user_by_username(username)

		cached_profile = await cache_service.get(cache_key)
		if cached_profile:
			record_cache_lookup("user_username", hit=True)
			return UserProfile(**cached_profile)
		record_cache_lookup("user_username", hit=False)

		with store_operation(self.db, "select", "user_profiles"):
			profile = self.db.query(UserProfile).filter(UserProfile.username == username).first()
		if profile:
			await cache_service.set(cache_key, profile.to_dict(), ttl=settings.cache_user_ttl)
			await cache_service.set(
				CacheKeys.user_profile(profile.uid),
				profile.to_dict(),
				ttl=settings.cache_user_ttl
			)

		return profile

	async def create_profile(self, profile_data: UserProfileCreate) -> UserProfile:
		"""Register a new profile; uid and username must be unused"""
		uid = profile_data.uid.strip()
		username = profile_data.username.strip()
		email = profile_data.email.strip()
		if not uid or not username or not email:
			raise ValidationError("uid, username and email are required")

		profile = UserProfile(
			uid=uid,
			username=username,
			email=email,
			photo_url=profile_data.photo_url
		)

		with store_operation(self.db, "insert", "user_profiles"):
			existing = self.db.query(UserProfile).filter(
				(UserProfile.uid == uid) | (UserProfile.username == username)
			).first()
			if existing:
				raise ValidationError("User id or username already registered")

			self.db.add(profile)
			try:
				self.db.commit()
			except IntegrityError:
				self.db.rollback()
				raise ValidationError("User id or username already registered")
			self.db.refresh(profile)

		await cache_service.set(
			CacheKeys.user_profile(profile.uid),
			profile.to_dict(),
			ttl=settings.cache_user_ttl
		)

		record_profile_created()
		chat_logger.profile_created(profile.uid, profile.username)
		return profile

	async def update_profile(self, uid: str, **changes) -> UserProfile:
		"""Update profile fields and invalidate cached copies"""
		with store_operation(self.db, "update", "user_profiles"):
			profile = self.db.get(UserProfile, uid)
			if not profile:
				raise NotFoundError(f"User {uid} not found")

			old_username = profile.username
			new_username = changes.get("username")
			if new_username is not None:
				new_username = new_username.strip()
				if not new_username:
					raise ValidationError("username must not be blank")
				clash = self.db.query(UserProfile).filter(
					UserProfile.username == new_username,
					UserProfile.uid != uid
				).first()
				if clash:
					raise ValidationError("Username already registered")

			email = changes.get("email")
			if email is not None:
				email = email.strip()
				if not email:
					raise ValidationError("email must not be blank")

			# Every field is valid; only now touch the row
			if new_username is not None:
				profile.username = new_username
			if email is not None:
				profile.email = email

			if "photo_url" in changes:
				profile.photo_url = changes["photo_url"]

			self.db.commit()
			self.db.refresh(profile)

		await CacheInvalidation.invalidate_user_cache(uid, old_username, profile.username)

		logger.info(f"Updated user profile {uid}")
		return profile
