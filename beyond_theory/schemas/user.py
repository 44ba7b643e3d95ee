from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
	"""Base schema exchanging camelCase JSON keys"""

	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class UserProfileBase(CamelModel):
	uid: str
	username: str
	email: str
	photo_url: Optional[str] = Field(default=None, alias="photoURL")


class UserProfileCreate(UserProfileBase):
	pass


class UserProfileUpdate(CamelModel):
	username: Optional[str] = None
	email: Optional[str] = None
	photo_url: Optional[str] = Field(default=None, alias="photoURL")


class UserProfileResponse(UserProfileBase):
	pass


class UsernameCheckResponse(BaseModel):
	exists: bool
	email: Optional[str] = None
