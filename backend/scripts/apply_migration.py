import asyncio
import os
import sys

# Ensure backend path is in sys.path
if os.path.exists("backend"):
    sys.path.append(os.path.join(os.getcwd(), "backend"))
    migrations_dir = os.path.join(os.getcwd(), "backend", "migrations")
else:
    sys.path.append(os.getcwd())
    migrations_dir = os.path.join(os.getcwd(), "migrations")

from rapport.infra.postgres import close_pool, get_pool


async def apply_migration(filename: str):
    migration_path = os.path.join(migrations_dir, filename)
    if not os.path.exists(migration_path):
        print(f"Migration file not found: {migration_path}")
        return

    print(f"Applying migration: {filename}")
    with open(migration_path, "r") as f:
        sql = f.read()

    pool = await get_pool()
    try:
        async with pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(sql)
    finally:
        await close_pool()
    print("Migration applied successfully.")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python apply_migration.py <migration_filename>")
        sys.exit(1)

    asyncio.run(apply_migration(sys.argv[1]))
