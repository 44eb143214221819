"""
Create a user account (there is no public registration route).

Run locally:
  cd backend && python scripts/create_user.py admin@example.com secret --role ADMIN

It uses the same DATABASE_URL env var as the backend (dotenv supported by core.config).
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import sys
from pathlib import Path

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from fastapi_users.exceptions import UserAlreadyExists

from core.auth import get_user_db, get_user_manager
from db.database import create_db_and_tables, get_async_session
from schemas.users import UserCreate

get_async_session_context = contextlib.asynccontextmanager(get_async_session)
get_user_db_context = contextlib.asynccontextmanager(get_user_db)
get_user_manager_context = contextlib.asynccontextmanager(get_user_manager)


async def create_user(email: str, password: str, role: str = "OPERATOR", is_superuser: bool = False) -> None:
    await create_db_and_tables()
    async with get_async_session_context() as session:
        async with get_user_db_context(session) as user_db:
            async with get_user_manager_context(user_db) as user_manager:
                try:
                    user = await user_manager.create(
                        UserCreate(email=email, password=password, role=role, is_superuser=is_superuser)
                    )
                except UserAlreadyExists:
                    print(f"User {email} already exists")
                    return
                print(f"Created user {user.email} ({user.role}) id={user.id}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("email")
    parser.add_argument("password")
    parser.add_argument("--role", default="OPERATOR", choices=["ADMIN", "OPERATOR", "VIEWER"])
    parser.add_argument("--superuser", action="store_true", help="Bypass every role check")
    args = parser.parse_args()

    asyncio.run(create_user(args.email, args.password, role=args.role, is_superuser=bool(args.superuser)))
