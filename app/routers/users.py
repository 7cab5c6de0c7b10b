from fastapi import APIRouter, Depends

from app.dependencies import verify_session
from app.models.schemas import UserProfile

router = APIRouter(tags=["users"])


@router.get("/users/me", response_model=UserProfile)
async def get_user_profile(user=Depends(verify_session)):
    return UserProfile(**user)
