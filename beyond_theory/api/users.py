from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from beyond_theory.core.database import get_db
from beyond_theory.core.errors import ValidationError
from beyond_theory.models.user import UserProfile
from beyond_theory.schemas.user import (
	UserProfileCreate, UserProfileResponse, UserProfileUpdate, UsernameCheckResponse
)
from beyond_theory.services.user_service import UserService


router = APIRouter(prefix="/users", tags=["users"])


def profile_response(profile: UserProfile) -> UserProfileResponse:
	return UserProfileResponse(**profile.to_dict())


@router.post("", response_model=UserProfileResponse, status_code=201)
async def register_profile(profile_in: UserProfileCreate, db: Session = Depends(get_db)):
	profile = await UserService(db).create_profile(profile_in)
	return profile_response(profile)


@router.get("", response_model=UsernameCheckResponse)
async def check_username(username: Optional[str] = None, db: Session = Depends(get_db)):
	"""Whether a username is taken, with the owner's email for sign-in by username"""
	if not username:
		raise ValidationError("username parameter required")

	profile = await UserService(db).get_profile_by_username(username)
	if profile is None:
		return UsernameCheckResponse(exists=False)
	return UsernameCheckResponse(exists=True, email=profile.email)


@router.get("/{uid}", response_model=UserProfileResponse)
async def get_profile(uid: str, db: Session = Depends(get_db)):
	profile = await UserService(db).require_profile(uid)
	return profile_response(profile)


@router.patch("/{uid}", response_model=UserProfileResponse)
async def update_profile(uid: str, changes: UserProfileUpdate, db: Session = Depends(get_db)):
	profile = await UserService(db).update_profile(uid, **changes.model_dump(exclude_unset=True))
	return profile_response(profile)
