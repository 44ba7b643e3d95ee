from pydantic_settings import BaseSettings


class Settings(BaseSettings):
	# Database configuration
	database_url: str = "sqlite:///./beyond_theory.db"

	# Redis configuration
	redis_url: str = "redis://localhost:6379/0"
	redis_password: str = ""
	redis_max_connections: int = 20
	redis_retry_on_timeout: bool = True

	# Cache settings (user profiles only)
	cache_enabled: bool = True
	cache_default_ttl: int = 3600  # 1 hour default TTL
	cache_user_ttl: int = 1800     # 30 minutes for user data

	# Application settings
	host: str = "0.0.0.0"
	port: int = 8000
	debug: bool = False
	log_level: str = "INFO"

	# Messaging settings
	public_conversation_id: str = "public"
	message_max_length: int = 5000

	# Advisory client polling intervals, in seconds
	conversation_poll_interval: int = 30
	unread_poll_interval: int = 15

	class Config:
		env_file = ".env"

	@property
	def get_redis_url(self) -> str:
		"""Get Redis URL with password if provided"""
		if self.redis_password:
			return f"redis://:{self.redis_password}@{self.redis_url.split('://')[1]}"
		return self.redis_url


settings = Settings()
