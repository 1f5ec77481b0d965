from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from udsp.auth import create_token, get_current_user, require_admin
from udsp.database import get_db
from udsp.models.user import User
from udsp.schemas.user import LoginRequest, PasswordChange, UserCreate, UserResponse
from udsp.services.user_service import user_service

router = APIRouter()


@router.post("/register", status_code=201)
async def register(
    data: UserCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Create an account. Self-registration is limited to administrators."""
    user = await user_service.create_user(data, db)
    await db.commit()
    return {"message": "User created successfully", "user": UserResponse.model_validate(user)}


@router.post("/login")
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    user = await user_service.authenticate(body.username, body.password, db)
    return {
        "message": "Login successful",
        "token": create_token(user),
        "token_type": "bearer",
        "user": UserResponse.model_validate(user),
    }


@router.get("/me")
async def me(current_user: User = Depends(get_current_user)):
    return {"user": UserResponse.model_validate(current_user)}


@router.post("/change-password")
async def change_password(
    body: PasswordChange,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    await user_service.change_own_password(current_user, body.current_password, body.new_password, db)
    await db.commit()
    return {"message": "Password changed successfully"}
