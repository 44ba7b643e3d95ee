from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from beyond_theory.core.database import Base


class UnreadMarker(Base):
	"""Per-user, per-conversation read cursor"""

	__tablename__ = "unread_markers"

	id = Column(Integer, primary_key=True, autoincrement=True)
	user_id = Column(String(128), nullable=False, index=True)
	conversation_id = Column(String(64), ForeignKey("conversations.id"), nullable=False)
	last_read_at = Column(DateTime, nullable=False)

	__table_args__ = (
		UniqueConstraint("user_id", "conversation_id", name="uq_unread_marker_user_conversation"),
	)
