from typing import Dict
from sqlalchemy import and_, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from beyond_theory.models.conversation import ConversationParticipant
from beyond_theory.models.message import Message
from beyond_theory.models.unread import UnreadMarker
from beyond_theory.core.clock import EPOCH, isoformat
from beyond_theory.core.database import store_operation
from beyond_theory.core.errors import AuthorizationError, NotFoundError, ValidationError
from beyond_theory.core.logging import chat_logger
from beyond_theory.core.metrics import record_read_marker_updated
from beyond_theory.services.conversation_service import ConversationService
import logging

logger = logging.getLogger(__name__)


class UnreadService:
	"""Per-user read markers and unread counts across direct conversations"""

	def __init__(self, db: Session):
		self.db = db

	def _unread_messages(self, user_id: str, *columns):
		"""Messages from others newer than the user's marker in their direct conversations.

		A conversation without a marker counts all of its messages from other
		participants. The public room has no participants and is never counted.
		"""
		return self.db.query(*columns).select_from(Message).join(
			ConversationParticipant,
			and_(
				ConversationParticipant.conversation_id == Message.conversation_id,
				ConversationParticipant.user_id == user_id
			)
		).outerjoin(
			UnreadMarker,
			and_(
				UnreadMarker.conversation_id == Message.conversation_id,
				UnreadMarker.user_id == user_id
			)
		).filter(
			Message.user_id != user_id,
			or_(
				UnreadMarker.id.is_(None),
				Message.created_at > UnreadMarker.last_read_at
			)
		)

	def get_unread_count(self, user_id: str) -> int:
		"""Total unread messages for the user, summed over conversations"""
		query = self._unread_messages(user_id, func.count(Message.id))

		with store_operation(self.db, "select", "messages"):
			count = query.scalar() or 0
		logger.debug(f"User {user_id} has {count} unread messages")
		return count

	def get_unread_counts(self, user_id: str) -> Dict[str, int]:
		"""Unread messages per conversation id; conversations with none are absent"""
		query = self._unread_messages(
			user_id, Message.conversation_id, func.count(Message.id)
		).group_by(Message.conversation_id)

		with store_operation(self.db, "select", "messages"):
			return {conversation_id: count for conversation_id, count in query.all()}

	def mark_as_read(self, user_id: str, conversation_id: str) -> None:
		"""Move the user's marker up to the newest message currently in the conversation"""
		if not user_id or not conversation_id:
			raise ValidationError("Missing parameters")

		conversations = ConversationService(self.db)
		conversation = conversations.get_conversation(conversation_id)
		if conversation is None:
			raise NotFoundError(f"Conversation {conversation_id} not found")
		if not conversations.is_participant(conversation, user_id):
			chat_logger.security_event(
				"mark_read_denied",
				user_id=user_id,
				details=f"not a participant of conversation {conversation_id}"
			)
			raise AuthorizationError("User is not a participant of this conversation")

		# createdAt is strictly increasing per conversation, so anything
		# appended after this point sorts after the marker
		with store_operation(self.db, "select", "messages"):
			newest = self.db.query(func.max(Message.created_at)).filter(
				Message.conversation_id == conversation_id
			).scalar()
		last_read_at = newest or EPOCH

		with store_operation(self.db, "upsert", "unread_markers"):
			if not self._update_marker(user_id, conversation_id, last_read_at):
				self.db.add(UnreadMarker(
					user_id=user_id,
					conversation_id=conversation_id,
					last_read_at=last_read_at
				))
				try:
					self.db.commit()
				except IntegrityError:
					# Concurrent first mark for the same pair
					self.db.rollback()
					self._update_marker(user_id, conversation_id, last_read_at)

		record_read_marker_updated()
		chat_logger.conversation_read(conversation_id, user_id, isoformat(last_read_at))

	def _update_marker(self, user_id: str, conversation_id: str, last_read_at) -> bool:
		updated = self.db.query(UnreadMarker).filter(
			UnreadMarker.user_id == user_id,
			UnreadMarker.conversation_id == conversation_id,
			# Never move a marker backwards
			UnreadMarker.last_read_at <= last_read_at
		).update({UnreadMarker.last_read_at: last_read_at}, synchronize_session=False)
		if updated:
			self.db.commit()
			return True
		exists = self.db.query(UnreadMarker.id).filter(
			UnreadMarker.user_id == user_id,
			UnreadMarker.conversation_id == conversation_id
		).first()
		return exists is not None
