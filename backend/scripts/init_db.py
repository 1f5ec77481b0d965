"""
Initialize the database: create all tables.
Run with: python -m scripts.init_db
"""

import asyncio
from udsp.database import init_db, dispose_engine


async def init():
    print("Creating database tables...")
    await init_db()
    print("All tables created successfully.")
    await dispose_engine()


if __name__ == "__main__":
    asyncio.run(init())
