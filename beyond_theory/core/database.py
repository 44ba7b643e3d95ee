from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker, DeclarativeBase
from sqlalchemy.pool import StaticPool
from beyond_theory.core.errors import BackingStoreError
from beyond_theory.core.logging import chat_logger
from beyond_theory.core.metrics import record_database_query, record_error
from config import settings
import logging
import time

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
	pass


def _engine_options(url: str) -> dict:
	"""Connection options for the configured backing store"""
	if not url.startswith("sqlite"):
		return {"pool_pre_ping": True, "pool_recycle": 300}

	options = {"connect_args": {"check_same_thread": False}}
	# In-memory SQLite has to share one connection across threads
	if url in ("sqlite://", "sqlite:///:memory:"):
		options["poolclass"] = StaticPool
	return options


engine = create_engine(
	settings.database_url,
	echo=settings.debug,
	**_engine_options(settings.database_url)
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
	"""Database session dependency for FastAPI"""
	db = SessionLocal()
	try:
		yield db
	finally:
		db.close()


@contextmanager
def store_operation(db: Session, operation: str, table: str):
	"""Run a unit of store work, translating driver failures to BackingStoreError"""
	start_time = time.perf_counter()
	try:
		yield
	except SQLAlchemyError as e:
		db.rollback()
		duration = time.perf_counter() - start_time
		chat_logger.database_query(operation, table, duration, success=False)
		logger.exception(f"Store operation {operation} on {table} failed: {e}")
		record_error(error_type="backing_store", endpoint=f"{table}.{operation}", status_code=500)
		raise BackingStoreError("The backing store could not complete the request") from e
	duration = time.perf_counter() - start_time
	chat_logger.database_query(operation, table, duration)
	record_database_query(operation, table, duration)


def create_tables():
	"""Create all tables"""
	# Models register themselves on Base.metadata when imported
	from beyond_theory.models import conversation, message, unread, user  # noqa: F401

	Base.metadata.create_all(bind=engine)
	logger.info("Database tables created")
