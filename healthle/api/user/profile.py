"""User health profile endpoint."""

from fastapi import APIRouter, HTTPException, status

from healthle.api.dependencies import CurrentUser, DatabaseSession
from healthle.repositories.users import UserRepository

router = APIRouter(prefix="/api/user", tags=["profile"])


@router.get("/profile")
async def get_profile(db: DatabaseSession, current_user: CurrentUser):
    profile = await UserRepository(db).get_profile(current_user.id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="プロフィールが見つかりません")
    return profile.to_dict()
