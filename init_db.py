"""Initialize database schema for the interview board.

Creates all tables needed by the API. Run this before starting the server.
Waits for the database to accept connections, retrying with backoff.
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from sqlalchemy import text
from tenacity import retry, stop_after_attempt, wait_exponential

from board.config import settings
from board.db import engine
from board.models import Base


@retry(
    stop=stop_after_attempt(settings.db.connect_attempts),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    reraise=True,
)
async def wait_for_database():
    """Check that the database accepts connections."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def init_database(drop: bool = False):
    """Create all database tables."""
    print(f"Initializing database: {settings.db.url.split('@')[-1]}")

    await wait_for_database()
    print("✓ Database reachable")

    async with engine.begin() as conn:
        if drop:
            await conn.run_sync(Base.metadata.drop_all)
            print("✓ Dropped existing tables")

        await conn.run_sync(Base.metadata.create_all)
        print("✓ Created all tables")

    await engine.dispose()

    print("\n✅ Database initialization complete!")
    print(f"Tables created: {', '.join(Base.metadata.tables.keys())}")


async def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--drop", action="store_true", help="Drop existing tables first")
    args = parser.parse_args()

    try:
        await init_database(drop=args.drop)
    except Exception as e:
        print(f"\n❌ Error initializing database: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
