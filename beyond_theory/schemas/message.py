from datetime import datetime
from typing import List, Optional
from pydantic import Field, field_serializer
from beyond_theory.core.clock import isoformat
from beyond_theory.schemas.user import CamelModel


class MessageCreate(CamelModel):
	conversation_id: str
	text: str
	user_id: str
	reply_to: Optional[str] = None
	resource_links: List[str] = Field(default_factory=list)


class MessageResponse(CamelModel):
	id: str
	conversation_id: str
	user_id: str
	text: str
	created_at: datetime
	reply_to: Optional[str] = None
	resource_links: List[str] = Field(default_factory=list)

	@field_serializer("created_at")
	def serialize_created_at(self, value: datetime) -> str:
		return isoformat(value)


class MarkReadRequest(CamelModel):
	user_id: Optional[str] = None
	conversation_id: Optional[str] = None


class UnreadCountResponse(CamelModel):
	count: int
