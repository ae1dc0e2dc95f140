"""
User Routes

GET /users/profile - Current user's profile
PUT /users/profile - Update own profile
"""

from fastapi import APIRouter, Depends

from studentjobs.api.responses import ok
from studentjobs.core.security import get_current_user
from studentjobs.schemas.schemas import ApiResponse, ProfileUpdate, UserResponse
from studentjobs.services.user_service import get_user_service

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/profile", response_model=ApiResponse[UserResponse])
async def get_profile(user: dict = Depends(get_current_user)):
    return ok(UserResponse.from_doc(user))


@router.put("/profile", response_model=ApiResponse[UserResponse])
async def update_profile(update: ProfileUpdate, user: dict = Depends(get_current_user)):
    """Update name, phone, college, skills and (employers) company details."""
    updated = get_user_service().update_profile(user, update)
    return ok(UserResponse.from_doc(updated), message="Profile updated successfully")
