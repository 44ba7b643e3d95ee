from datetime import datetime
from typing import List, Optional
from pydantic import field_serializer
from beyond_theory.core.clock import isoformat
from beyond_theory.schemas.user import CamelModel, UserProfileBase


class ConversationCreate(CamelModel):
	current_user_id: Optional[str] = None
	other_user_id: Optional[str] = None
	current_user_profile: Optional[UserProfileBase] = None
	# "markAsRead" turns the request into a read-marker update
	action: Optional[str] = None
	conversation_id: Optional[str] = None


class LastMessage(CamelModel):
	text: str
	timestamp: datetime
	sender_uid: Optional[str] = None

	@field_serializer("timestamp")
	def serialize_timestamp(self, value: datetime) -> str:
		return isoformat(value)


class ConversationResponse(CamelModel):
	id: str
	is_public: bool
	participant_uids: List[str]
	participants_details: List[UserProfileBase]
	last_message: Optional[LastMessage] = None
	created_at: datetime
	# Messages from others the requesting user has not read yet
	unread_count: int = 0

	@field_serializer("created_at")
	def serialize_created_at(self, value: datetime) -> str:
		return isoformat(value)
