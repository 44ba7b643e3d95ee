from datetime import datetime, timedelta, timezone
from typing import Optional

# Timestamps are stored as naive UTC so ordering is identical on every backend
EPOCH = datetime(1970, 1, 1)
TICK = timedelta(microseconds=1)


def utcnow() -> datetime:
	return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc_naive(value: Optional[datetime]) -> Optional[datetime]:
	"""Normalize a possibly tz-aware datetime to naive UTC"""
	if value is None or value.tzinfo is None:
		return value
	return value.astimezone(timezone.utc).replace(tzinfo=None)


def isoformat(value: Optional[datetime]) -> Optional[str]:
	"""Render a stored timestamp as ISO-8601 UTC with a `Z` suffix"""
	if value is None:
		return None
	if value.tzinfo is None:
		value = value.replace(tzinfo=timezone.utc)
	return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
