from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from udsp.auth import get_current_user, require_admin
from udsp.database import get_db
from udsp.models.user import User
from udsp.schemas.user import AdminUserUpdate, PasswordReset, ProfileUpdate, UserCreate, UserResponse
from udsp.services.user_service import user_service

router = APIRouter()


@router.get("/profile")
async def get_profile(current_user: User = Depends(get_current_user)):
    return {"user": UserResponse.model_validate(current_user)}


@router.put("/profile")
async def update_profile(
    data: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user = await user_service.update_profile(current_user, data, db)
    await db.commit()
    return {"message": "Profile updated successfully", "user": UserResponse.model_validate(user)}


@router.get("/all")
async def list_users(db: AsyncSession = Depends(get_db), current_user: User = Depends(require_admin)):
    users = await user_service.list_users(db)
    return {"users": [UserResponse.model_validate(u) for u in users], "count": len(users)}


@router.post("/create", status_code=201)
async def create_user(
    data: UserCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    user = await user_service.create_user(data, db)
    await db.commit()
    return {"message": "User created successfully", "user": UserResponse.model_validate(user)}


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    data: AdminUserUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    user = await user_service.admin_update_user(user_id, data, db)
    await db.commit()
    return {"message": "User updated successfully", "user": UserResponse.model_validate(user)}


@router.put("/{user_id}/password")
async def reset_password(
    user_id: str,
    body: PasswordReset,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    await user_service.set_password(user_id, body.new_password, db)
    await db.commit()
    return {"message": "User password changed successfully"}


@router.put("/{user_id}/status")
async def toggle_status(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    user = await user_service.toggle_status(current_user, user_id, db)
    await db.commit()
    state = "activated" if user.is_active else "deactivated"
    return {"message": f"User {state} successfully", "user": UserResponse.model_validate(user)}


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    deleted_id = await user_service.delete_user(current_user, user_id, db)
    await db.commit()
    return {"message": "User deleted successfully", "deleted": True, "user_id": deleted_id}
