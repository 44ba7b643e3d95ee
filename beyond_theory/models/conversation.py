import uuid
from sqlalchemy import Column, String, DateTime, Boolean, Integer, Text, ForeignKey, JSON, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from beyond_theory.core.clock import utcnow
from beyond_theory.core.database import Base

# Participant sentinel reported for the single public conversation
PUBLIC_PARTICIPANTS = ["*"]


def pair_key(uid_a: str, uid_b: str) -> str:
	"""Order-independent key identifying the direct conversation of two users"""
	return ":".join(sorted([uid_a, uid_b]))


class Conversation(Base):
	__tablename__ = "conversations"

	id = Column(String(64), primary_key=True, default=lambda: uuid.uuid4().hex)
	is_public = Column(Boolean, default=False, nullable=False)
	# NULL for the public room; unique for direct conversations
	pair_key = Column(String(300), unique=True, nullable=True)
	participants_details = Column(JSON, default=list, nullable=False)
	created_at = Column(DateTime, default=utcnow, nullable=False)

	# Denormalized preview of the most recent message
	last_message_text = Column(Text, nullable=True)
	last_message_at = Column(DateTime, nullable=True)
	last_message_sender_uid = Column(String(128), nullable=True)

	participants = relationship(
		"ConversationParticipant",
		cascade="all, delete-orphan",
		lazy="selectin",
		order_by="ConversationParticipant.position",
	)

	__table_args__ = (
		Index("idx_conversations_last_message", "last_message_at", "created_at"),
	)

	@property
	def participant_uids(self) -> list:
		if self.is_public:
			return list(PUBLIC_PARTICIPANTS)
		return [p.user_id for p in self.participants]

	@property
	def last_message(self):
		if self.last_message_at is None:
			return None
		return {
			"text": self.last_message_text,
			"timestamp": self.last_message_at,
			"sender_uid": self.last_message_sender_uid,
		}


class ConversationParticipant(Base):
	__tablename__ = "conversation_participants"

	id = Column(String(64), primary_key=True, default=lambda: uuid.uuid4().hex)
	conversation_id = Column(String(64), ForeignKey("conversations.id"), nullable=False)
	user_id = Column(String(128), nullable=False, index=True)
	position = Column(Integer, default=0, nullable=False)

	__table_args__ = (
		UniqueConstraint("conversation_id", "user_id", name="uq_conversation_participant"),
	)
