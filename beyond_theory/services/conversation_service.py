from typing import List, Optional
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from beyond_theory.models.conversation import Conversation, ConversationParticipant, pair_key
from beyond_theory.models.message import Message
from beyond_theory.core.database import store_operation
from beyond_theory.core.errors import NotFoundError, ValidationError
from beyond_theory.core.logging import chat_logger
from beyond_theory.core.metrics import record_conversation_created
from beyond_theory.schemas.user import UserProfileBase
from beyond_theory.services.user_service import UserService
from config import settings
import logging

logger = logging.getLogger(__name__)


class ConversationService:
	"""Direct and public conversations with a denormalized last-message preview"""

	def __init__(self, db: Session):
		self.db = db

	def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
		if conversation_id == settings.public_conversation_id:
			return self.get_public_conversation()
		with store_operation(self.db, "select", "conversations"):
			return self.db.get(Conversation, conversation_id)

	def get_public_conversation(self) -> Conversation:
		"""Return the single public conversation, creating it on first access"""
		public_id = settings.public_conversation_id
		with store_operation(self.db, "select", "conversations"):
			conversation = self.db.get(Conversation, public_id)
			if conversation:
				return conversation

			conversation = Conversation(id=public_id, is_public=True, participants_details=[])
			self.db.add(conversation)
			try:
				self.db.commit()
			except IntegrityError:
				# Another request created it first
				self.db.rollback()
				return self.db.get(Conversation, public_id)
			self.db.refresh(conversation)

		record_conversation_created(is_public=True)
		chat_logger.conversation_created(conversation.id, [], is_public=True)
		return conversation

	@staticmethod
	def is_participant(conversation: Conversation, user_id: str) -> bool:
		if conversation.is_public:
			return True
		return user_id in conversation.participant_uids

	async def get_or_create_conversation(
		self,
		current_user_id: str,
		other_user_id: str,
		current_user_profile: Optional[UserProfileBase] = None
	) -> Conversation:
		"""Idempotently fetch or create the direct conversation for a pair of users"""
		if not current_user_id or not other_user_id:
			raise ValidationError("Missing user IDs")
		if current_user_id == other_user_id:
			raise ValidationError("A direct conversation needs two different users")

		key = pair_key(current_user_id, other_user_id)
		existing = self._find_by_pair_key(key)
		if existing:
			return existing

		user_service = UserService(self.db)
		if current_user_profile is not None and current_user_profile.uid == current_user_id:
			current_details = current_user_profile.model_dump()
		else:
			current_details = (await user_service.require_profile(current_user_id)).to_dict()
		other_details = (await user_service.require_profile(other_user_id)).to_dict()

		conversation = Conversation(
			is_public=False,
			pair_key=key,
			participants_details=[current_details, other_details],
			participants=[
				ConversationParticipant(user_id=current_user_id, position=0),
				ConversationParticipant(user_id=other_user_id, position=1),
			],
		)

		with store_operation(self.db, "insert", "conversations"):
			self.db.add(conversation)
			try:
				self.db.commit()
			except IntegrityError:
				# The other participant won the race; return their conversation
				self.db.rollback()
				logger.info(f"Conversation for pair {key} created concurrently, reusing it")
				winner = self._find_by_pair_key(key)
				if winner is None:
					raise
				return winner
			self.db.refresh(conversation)

		record_conversation_created(is_public=False)
		chat_logger.conversation_created(conversation.id, [current_user_id, other_user_id])
		return conversation

	def _find_by_pair_key(self, key: str) -> Optional[Conversation]:
		with store_operation(self.db, "select", "conversations"):
			return self.db.query(Conversation).filter(Conversation.pair_key == key).first()

	def get_user_conversations(self, user_id: str) -> List[Conversation]:
		"""Direct conversations of the user plus the public room, most recent first"""
		self.get_public_conversation()

		member_of = select(ConversationParticipant.conversation_id).where(
			ConversationParticipant.user_id == user_id
		)
		with store_operation(self.db, "select", "conversations"):
			return self.db.query(Conversation).filter(
				or_(Conversation.is_public.is_(True), Conversation.id.in_(member_of))
			).order_by(
				# Conversations without messages go last
				Conversation.last_message_at.is_(None),
				Conversation.last_message_at.desc(),
				Conversation.created_at.desc(),
				Conversation.id,
			).all()

	def record_last_message(self, message: Message) -> None:
		"""Advance lastMessage unless a newer message already holds it.

		Runs in the caller's transaction; the caller commits together with
		the message insert.
		"""
		self.db.query(Conversation).filter(
			Conversation.id == message.conversation_id,
			or_(
				Conversation.last_message_at.is_(None),
				Conversation.last_message_at <= message.created_at
			)
		).update(
			{
				Conversation.last_message_text: message.text,
				Conversation.last_message_at: message.created_at,
				Conversation.last_message_sender_uid: message.user_id,
			},
			synchronize_session=False
		)

	def recompute_last_message(self, conversation_id: str) -> None:
		"""Rebuild lastMessage from the newest remaining message, or clear it.

		Runs in the caller's transaction after pending deletes are flushed.
		"""
		latest = self.db.query(Message).filter(
			Message.conversation_id == conversation_id
		).order_by(Message.created_at.desc(), Message.id.desc()).first()

		values = {
			Conversation.last_message_text: latest.text if latest else None,
			Conversation.last_message_at: latest.created_at if latest else None,
			Conversation.last_message_sender_uid: latest.user_id if latest else None,
		}
		self.db.query(Conversation).filter(
			Conversation.id == conversation_id
		).update(values, synchronize_session=False)
