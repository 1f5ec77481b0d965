"""
Create the first administrator account with a generated password.
Run with: python -m scripts.create_admin

Does nothing when an admin already exists. The generated password is printed
once; change it after the first login.
"""

import asyncio
import secrets
import string
from sqlalchemy import select
from udsp.auth import hash_password
from udsp.database import async_session, dispose_engine, init_db
from udsp.models import User

SYMBOLS = "!@#$%^&*"
PASSWORD_LENGTH = 12


def generate_password(length: int = PASSWORD_LENGTH) -> str:
    """Random password with at least one upper, lower, digit and symbol."""
    pools = [string.ascii_uppercase, string.ascii_lowercase, string.digits, SYMBOLS]
    chars = [secrets.choice(pool) for pool in pools]
    everything = "".join(pools)
    chars += [secrets.choice(everything) for _ in range(length - len(chars))]
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)


async def create_admin() -> None:
    await init_db()
    async with async_session() as session:
        existing = await session.scalar(select(User).where(User.role == "admin"))
        if existing:
            print(f"Admin user already exists ({existing.username})")
            return

        password = generate_password()
        session.add(User(
            username="admin",
            email="admin@example.com",
            hashed_password=hash_password(password),
            first_name="Admin",
            last_name="User",
            mobile="1234567890",
            role="admin",
            is_active=True,
        ))
        await session.commit()

    print("Admin user created")
    print("  username: admin")
    print(f"  password: {password}")
    print("Change this password after the first login.")


async def main():
    try:
        await create_admin()
    finally:
        await dispose_engine()


if __name__ == "__main__":
    asyncio.run(main())
