from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from beyond_theory.core.database import get_db
from beyond_theory.core.errors import ValidationError
from beyond_theory.models.conversation import Conversation
from beyond_theory.models.message import Message
from beyond_theory.schemas.conversation import ConversationCreate, ConversationResponse, LastMessage
from beyond_theory.schemas.message import MarkReadRequest, MessageCreate, MessageResponse, UnreadCountResponse
from beyond_theory.schemas.user import UserProfileBase
from beyond_theory.services.conversation_service import ConversationService
from beyond_theory.services.message_service import MessageService
from beyond_theory.services.unread_service import UnreadService
from beyond_theory.services.user_service import UserService


router = APIRouter(prefix="", tags=["messaging"])


def require(**params) -> None:
	"""Raise ValidationError naming any blank required parameter"""
	missing = [name for name, value in params.items() if not value]
	if missing:
		raise ValidationError(f"Missing {', '.join(missing)}")


def conversation_response(conversation: Conversation, unread_count: int = 0) -> ConversationResponse:
	last_message = conversation.last_message
	return ConversationResponse(
		id=conversation.id,
		is_public=conversation.is_public,
		participant_uids=conversation.participant_uids,
		participants_details=[UserProfileBase(**details) for details in conversation.participants_details],
		last_message=LastMessage(**last_message) if last_message else None,
		created_at=conversation.created_at,
		unread_count=unread_count
	)


def message_response(message: Message) -> MessageResponse:
	return MessageResponse(
		id=message.id,
		conversation_id=message.conversation_id,
		user_id=message.user_id,
		text=message.text,
		created_at=message.created_at,
		reply_to=message.reply_to,
		resource_links=message.resource_links or []
	)


@router.get("/conversations", response_model=List[ConversationResponse])
async def get_conversations(user_id: Optional[str] = Query(default=None, alias="userId"), db: Session = Depends(get_db)):
	"""Conversations of a user plus the public room, most recent first"""
	require(userId=user_id)
	await UserService(db).require_profile(user_id)

	conversations = ConversationService(db).get_user_conversations(user_id)
	unread_counts = UnreadService(db).get_unread_counts(user_id)
	return [conversation_response(c, unread_counts.get(c.id, 0)) for c in conversations]


@router.post("/conversations", response_model=ConversationResponse, status_code=201)
async def create_conversation(payload: ConversationCreate, db: Session = Depends(get_db)):
	if payload.action == "markAsRead":
		require(currentUserId=payload.current_user_id, conversationId=payload.conversation_id)
		UnreadService(db).mark_as_read(payload.current_user_id, payload.conversation_id)
		return PlainTextResponse("Success", status_code=200)

	require(currentUserId=payload.current_user_id, otherUserId=payload.other_user_id)
	conversation = await ConversationService(db).get_or_create_conversation(
		payload.current_user_id,
		payload.other_user_id,
		payload.current_user_profile
	)
	unread_counts = UnreadService(db).get_unread_counts(payload.current_user_id)
	return conversation_response(conversation, unread_counts.get(conversation.id, 0))


@router.get("/messages", response_model=List[MessageResponse])
def get_messages(
	conversation_id: Optional[str] = Query(default=None, alias="conversationId"),
	since: Optional[datetime] = None,
	last_id: Optional[str] = Query(default=None, alias="lastId"),
	db: Session = Depends(get_db)
):
	"""Messages of a conversation, oldest first; `since` limits to newer ones for polling"""
	require(conversationId=conversation_id)
	messages = MessageService(db).get_messages(conversation_id, since=since, last_id=last_id)
	return [message_response(m) for m in messages]


@router.post("/messages", response_model=MessageResponse, status_code=201)
def send_message(message_in: MessageCreate, db: Session = Depends(get_db)):
	message = MessageService(db).add_message(
		conversation_id=message_in.conversation_id,
		text=message_in.text,
		user_id=message_in.user_id,
		reply_to=message_in.reply_to,
		resource_links=message_in.resource_links
	)
	return message_response(message)


@router.delete("/messages", response_class=PlainTextResponse)
def delete_message(
	conversation_id: Optional[str] = Query(default=None, alias="conversationId"),
	message_id: Optional[str] = Query(default=None, alias="messageId"),
	user_id: Optional[str] = Query(default=None, alias="userId"),
	db: Session = Depends(get_db)
):
	require(conversationId=conversation_id, messageId=message_id, userId=user_id)
	MessageService(db).delete_message(conversation_id, message_id, user_id)
	return "Message deleted successfully"


@router.get("/unread", response_model=UnreadCountResponse)
def get_unread_count(user_id: Optional[str] = Query(default=None, alias="userId"), db: Session = Depends(get_db)):
	"""Total unread messages for a user across their direct conversations"""
	require(userId=user_id)
	return UnreadCountResponse(count=UnreadService(db).get_unread_count(user_id))


@router.post("/unread", response_class=PlainTextResponse)
def mark_as_read(payload: MarkReadRequest, db: Session = Depends(get_db)):
	require(userId=payload.user_id, conversationId=payload.conversation_id)
	UnreadService(db).mark_as_read(payload.user_id, payload.conversation_id)
	return "Marked as read"
