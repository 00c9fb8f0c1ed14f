"""Admin user endpoints."""

from fastapi import APIRouter, HTTPException, status

from healthle.api.dependencies import AdminUser, DatabaseSession
from healthle.repositories.users import UserRepository

router = APIRouter(prefix="/api/admin/users", tags=["admin-users"])


@router.get("")
async def list_users(db: DatabaseSession, admin: AdminUser):
    users = await UserRepository(db).list_users()
    return [user.to_dict() for user in users]


@router.get("/{user_id}")
async def get_user(user_id: str, db: DatabaseSession, admin: AdminUser):
    user = await UserRepository(db).get(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="ユーザーが見つかりません")
    return user.to_dict()
