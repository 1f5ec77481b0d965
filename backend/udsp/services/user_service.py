import logging
from typing import Optional
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from udsp.auth import hash_password, verify_password
from udsp.exceptions import AuthenticationFailed, BusinessRuleViolation, NotFoundError
from udsp.models.user import User
from udsp.schemas.user import AdminUserUpdate, ProfileUpdate, UserCreate
from udsp.validators import parse_id

logger = logging.getLogger(__name__)

DUPLICATE_USER = "User with this mobile, email, or username already exists"


class UserService:
    async def authenticate(self, username: str, password: str, db: AsyncSession) -> User:
        user = await db.scalar(select(User).where(User.username == username.strip()))
        if not user:
            logger.info("Login failed for unknown username %r", username)
            raise AuthenticationFailed("Invalid credentials")
        if not user.is_active:
            logger.info("Login refused for deactivated user %s", user.username)
            raise AuthenticationFailed("Account is deactivated")
        if not verify_password(password, user.hashed_password):
            logger.info("Login failed for %s: bad password", user.username)
            raise AuthenticationFailed("Invalid credentials")
        logger.info("User %s logged in", user.username)
        return user

    async def list_users(self, db: AsyncSession) -> list[User]:
        result = await db.execute(select(User).order_by(User.created_at.desc(), User.id.desc()))
        return list(result.scalars().all())

    async def get_user(self, raw_id, db: AsyncSession) -> User:
        user = await db.get(User, parse_id(raw_id, "User"))
        if not user:
            raise NotFoundError("User not found")
        return user

    async def create_user(self, data: UserCreate, db: AsyncSession) -> User:
        clauses = [User.username == data.username, User.mobile == data.mobile]
        if data.email:
            clauses.append(User.email == data.email)
        existing = await db.scalar(select(User).where(or_(*clauses)))
        if existing:
            raise BusinessRuleViolation(DUPLICATE_USER)

        user = User(
            username=data.username,
            email=data.email,
            hashed_password=hash_password(data.password),
            role=data.role,
            first_name=data.first_name,
            last_name=data.last_name,
            mobile=data.mobile,
            is_active=True,
        )
        await self._flush(user, db, DUPLICATE_USER)
        logger.info("Created %s user %s (id=%s)", user.role, user.username, user.id)
        return user

    async def update_profile(self, user: User, data: ProfileUpdate, db: AsyncSession) -> User:
        await self._apply_contact_changes(user, data, db)
        await self._flush(user, db, "Mobile number or email already exists")
        logger.info("User %s updated their profile", user.username)
        return user

    async def admin_update_user(self, raw_id, data: AdminUserUpdate, db: AsyncSession) -> User:
        user = await self.get_user(raw_id, db)
        await self._apply_contact_changes(user, data, db)
        if data.role:
            user.role = data.role
        await self._flush(user, db, "Mobile number or email already exists")
        logger.info("User %s (id=%s) updated by admin", user.username, user.id)
        return user

    async def change_own_password(self, user: User, current: str, new: str, db: AsyncSession) -> None:
        if not verify_password(current, user.hashed_password):
            raise BusinessRuleViolation("Current password is incorrect")
        user.hashed_password = hash_password(new)
        await db.flush()
        logger.info("User %s changed their password", user.username)

    async def set_password(self, raw_id, new: str, db: AsyncSession) -> User:
        user = await self.get_user(raw_id, db)
        user.hashed_password = hash_password(new)
        await db.flush()
        logger.info("Password reset for user %s by admin", user.username)
        return user

    async def toggle_status(self, actor: User, raw_id, db: AsyncSession) -> User:
        user = await self.get_user(raw_id, db)
        if user.id == actor.id:
            raise BusinessRuleViolation("Cannot deactivate your own account")
        user.is_active = not user.is_active
        await self._flush(user, db, DUPLICATE_USER)
        logger.info("User %s %s by %s", user.username,
                    "activated" if user.is_active else "deactivated", actor.username)
        return user

    async def delete_user(self, actor: User, raw_id, db: AsyncSession) -> int:
        user = await self.get_user(raw_id, db)
        if user.id == actor.id:
            raise BusinessRuleViolation("Cannot delete your own account")
        user_id = user.id
        await db.delete(user)
        await db.flush()
        logger.info("User %s (id=%s) deleted by %s", user.username, user_id, actor.username)
        return user_id

    async def _apply_contact_changes(self, user: User, data: ProfileUpdate, db: AsyncSession) -> None:
        if data.mobile and data.mobile != user.mobile:
            if await self._taken(User.mobile, data.mobile, user.id, db):
                raise BusinessRuleViolation("Mobile number already exists")
            user.mobile = data.mobile
        if data.email and data.email != user.email:
            if await self._taken(User.email, data.email, user.id, db):
                raise BusinessRuleViolation("Email already exists")
            user.email = data.email
        if data.first_name:
            user.first_name = data.first_name
        if data.last_name:
            user.last_name = data.last_name

    async def _taken(self, column, value: str, own_id: Optional[int], db: AsyncSession) -> bool:
        found = await db.scalar(select(User.id).where(column == value, User.id != own_id))
        return found is not None

    async def _flush(self, user: User, db: AsyncSession, duplicate_message: str) -> None:
        """Flush inside a savepoint so a unique-constraint race surfaces as a 400."""
        try:
            async with db.begin_nested():
                db.add(user)
        except IntegrityError:
            logger.warning("Unique constraint rejected user write: %s", duplicate_message)
            raise BusinessRuleViolation(duplicate_message)
        await db.refresh(user)


user_service = UserService()
