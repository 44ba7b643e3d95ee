import uuid
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, JSON, Index
from beyond_theory.core.database import Base


class Message(Base):
	__tablename__ = "messages"

	id = Column(String(64), primary_key=True, default=lambda: uuid.uuid4().hex)
	conversation_id = Column(String(64), ForeignKey("conversations.id"), nullable=False)
	user_id = Column(String(128), nullable=False, index=True)
	text = Column(Text, nullable=False)
	# Assigned by the store at write time, never by the client
	created_at = Column(DateTime, nullable=False)
	reply_to = Column(String(64), nullable=True)
	resource_links = Column(JSON, default=list, nullable=False)

	__table_args__ = (
		Index("idx_messages_conversation_created", "conversation_id", "created_at", "id"),
	)
