from datetime import datetime
from typing import List, Optional
from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session
from beyond_theory.models.message import Message
from beyond_theory.core.clock import TICK, as_utc_naive, utcnow
from beyond_theory.core.database import store_operation
from beyond_theory.core.errors import AuthorizationError, NotFoundError, ValidationError
from beyond_theory.core.logging import chat_logger
from beyond_theory.core.metrics import record_message_created, record_message_deleted
from beyond_theory.services.conversation_service import ConversationService
from config import settings
import logging

logger = logging.getLogger(__name__)


class MessageService:
	"""Append, incremental fetch and author-only deletion of conversation messages"""

	def __init__(self, db: Session):
		self.db = db
		self.conversations = ConversationService(db)

	def get_messages(
		self,
		conversation_id: str,
		since: Optional[datetime] = None,
		last_id: Optional[str] = None
	) -> List[Message]:
		"""Messages in ascending (createdAt, id) order, optionally only newer than `since`.

		When `last_id` is given alongside `since`, messages sharing the exact
		`since` timestamp but sorting after `last_id` are included too.
		An unknown conversation simply yields no messages.
		"""
		since = as_utc_naive(since)

		with store_operation(self.db, "select", "messages"):
			query = self.db.query(Message).filter(Message.conversation_id == conversation_id)
			if since is not None:
				if last_id:
					query = query.filter(or_(
						Message.created_at > since,
						and_(Message.created_at == since, Message.id > last_id)
					))
				else:
					query = query.filter(Message.created_at > since)
			return query.order_by(Message.created_at.asc(), Message.id.asc()).all()

	def get_message(self, conversation_id: str, message_id: str) -> Optional[Message]:
		with store_operation(self.db, "select", "messages"):
			message = self.db.get(Message, message_id)
		if message is None or message.conversation_id != conversation_id:
			return None
		return message

	def _next_timestamp(self, conversation_id: str) -> datetime:
		"""Store-assigned createdAt, strictly after the newest message in the conversation"""
		with store_operation(self.db, "select", "messages"):
			newest = self.db.query(func.max(Message.created_at)).filter(
				Message.conversation_id == conversation_id
			).scalar()
		now = utcnow()
		if newest is not None and now <= newest:
			return newest + TICK
		return now

	def add_message(
		self,
		conversation_id: str,
		text: str,
		user_id: str,
		reply_to: Optional[str] = None,
		resource_links: Optional[List[str]] = None
	) -> Message:
		"""Append a message and refresh the conversation's lastMessage"""
		if not conversation_id or not user_id:
			raise ValidationError("Missing required fields")
		if text is None or not text.strip():
			raise ValidationError("Message text must not be empty")
		if len(text) > settings.message_max_length:
			raise ValidationError(
				f"Message text exceeds {settings.message_max_length} characters"
			)

		conversation = self.conversations.get_conversation(conversation_id)
		if conversation is None:
			raise NotFoundError(f"Conversation {conversation_id} not found")
		if not self.conversations.is_participant(conversation, user_id):
			chat_logger.security_event(
				"message_post_denied",
				user_id=user_id,
				details=f"not a participant of conversation {conversation_id}"
			)
			raise AuthorizationError("User is not a participant of this conversation")

		if reply_to and self.get_message(conversation_id, reply_to) is None:
			# Advisory only: keep the reference even if it cannot be resolved
			logger.warning(f"Message reply target {reply_to} is not in conversation {conversation_id}")

		message = Message(
			conversation_id=conversation_id,
			user_id=user_id,
			text=text,
			created_at=self._next_timestamp(conversation_id),
			reply_to=reply_to,
			resource_links=list(resource_links or []),
		)

		# The message and its conversation preview commit together
		with store_operation(self.db, "insert", "messages"):
			self.db.add(message)
			self.db.flush()
			self.conversations.record_last_message(message)
			self.db.commit()
			self.db.refresh(message)

		record_message_created(is_public=conversation.is_public)
		chat_logger.message_sent(message.id, conversation_id, user_id)
		return message

	def delete_message(self, conversation_id: str, message_id: str, user_id: str) -> None:
		"""Delete a message (only its author can) and recompute lastMessage"""
		if not conversation_id or not message_id or not user_id:
			raise ValidationError("Missing parameters")

		message = self.get_message(conversation_id, message_id)
		if message is None:
			raise NotFoundError(f"Message {message_id} not found")

		if message.user_id != user_id:
			chat_logger.security_event(
				"message_delete_denied",
				user_id=user_id,
				details=f"message {message_id} belongs to another user"
			)
			raise AuthorizationError("Only the author can delete this message")

		with store_operation(self.db, "delete", "messages"):
			self.db.delete(message)
			self.db.flush()
			self.conversations.recompute_last_message(conversation_id)
			self.db.commit()

		record_message_deleted()
		chat_logger.message_deleted(message_id, conversation_id, user_id)
