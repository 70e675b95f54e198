"""
Issue Token Script

Mints a staff bearer token and optionally assigns the user a role.
Run from project root: python scripts/issue_token.py --role manager
"""

import argparse
import asyncio
import os
import sys
import uuid

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from app.core.security import create_access_token
from app.database import async_session_maker, init_db
from app.models import AppRole, Profile, UserRole


async def assign_role(user_id: uuid.UUID, role: AppRole, full_name: str | None) -> None:
    await init_db()
    async with async_session_maker() as db:
        existing = await db.execute(select(UserRole).where(UserRole.user_id == user_id))
        row = existing.scalar_one_or_none()
        if row is None:
            db.add(UserRole(user_id=user_id, role=role))
        else:
            row.role = role

        if full_name and await db.get(Profile, user_id) is None:
            db.add(Profile(id=user_id, full_name=full_name))
        await db.commit()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Mint a staff bearer token")
    parser.add_argument("--user-id", type=uuid.UUID, default=None, help="Existing user id (new id if omitted)")
    parser.add_argument("--role", choices=[r.value for r in AppRole], help="Role to assign")
    parser.add_argument("--name", default=None, help="Profile name for a new user")
    parser.add_argument("--ttl", type=int, default=None, help="Token lifetime in minutes")
    args = parser.parse_args()

    user_id = args.user_id or uuid.uuid4()
    if args.role:
        asyncio.run(assign_role(user_id, AppRole(args.role), args.name))
        print(f"✅ {user_id} is now {args.role}")

    print(f"🔑 User: {user_id}")
    print(create_access_token(user_id, ttl_minutes=args.ttl))
