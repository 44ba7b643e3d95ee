from sqlalchemy import Column, String, DateTime, Text
from beyond_theory.core.clock import utcnow
from beyond_theory.core.database import Base


class UserProfile(Base):
	__tablename__ = "user_profiles"

	uid = Column(String(128), primary_key=True)
	username = Column(String(50), unique=True, index=True, nullable=False)
	email = Column(String(255), nullable=False)
	photo_url = Column(Text, nullable=True)
	created_at = Column(DateTime, default=utcnow, nullable=False)

	def to_dict(self) -> dict:
		"""Snapshot used for caching and for conversation participant details"""
		return {
			"uid": self.uid,
			"username": self.username,
			"email": self.email,
			"photo_url": self.photo_url,
		}
