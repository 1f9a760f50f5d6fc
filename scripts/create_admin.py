"""
Admin Bootstrap Script

Creates an approved admin account, or promotes an existing one.
Run from project root: python scripts/create_admin.py --email admin@example.com

Author: FoodHub Team
Version: 1.0.0
"""

import argparse
import asyncio
import getpass
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from foodhub.core.config import setup_logging
from foodhub.core.security import hash_password
from foodhub.database import async_session_maker, engine, init_db
from foodhub.models import ApprovalState, User, UserRole
from foodhub.services.accounts import get_user_by_email


async def create_admin(name: str, email: str, password: str) -> None:
    await init_db()

    async with async_session_maker() as db:
        user = await get_user_by_email(db, email)
        if user is None:
            user = User(name=name, email=email, password_hash=hash_password(password))
            db.add(user)
            action = "Created"
        else:
            user.password_hash = hash_password(password)
            action = "Promoted"

        user.user_type = UserRole.ADMIN
        user.approval = ApprovalState.ACCEPTED
        await db.commit()
        print(f"{action} admin account #{user.id} <{user.email}>")

    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create an approved admin account")
    parser.add_argument("--email", required=True, help="Admin email address")
    parser.add_argument("--name", default="Administrator", help="Display name")
    parser.add_argument("--password", help="Password (prompted when omitted)")
    args = parser.parse_args()

    password = args.password or getpass.getpass("Password: ")
    if len(password) < 6:
        print("Password must be at least 6 characters.")
        sys.exit(1)

    setup_logging()
    asyncio.run(create_admin(args.name, args.email.strip().lower(), password))
