#!/usr/bin/env python3
"""
Create Admin Script

Bootstraps the first admin account, or promotes an existing user to admin.
Roles can otherwise only be granted by an admin, so a fresh deployment needs
this once.

Usage:
    DATABASE_URL=postgresql+asyncpg://... SESSION_JWT_SECRET=... \\
        python scripts/create_admin.py admin@example.com
    # prompts for a password when the account doesn't exist yet
"""

import argparse
import asyncio
import getpass
import os
import sys
from uuid import uuid4

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import structlog
from sqlalchemy import select

from app.db.models import User, utc_now
from app.db.session import close_engines, get_session_factory
from app.models.api import Role
from app.services.auth import hash_password

logger = structlog.get_logger()

MIN_PASSWORD_LENGTH = 8


async def ensure_admin(email: str, password: str | None) -> str:
    """
    Create or promote ``email`` to admin.

    Returns:
        "created", "promoted" or "unchanged"
    """
    normalized = email.strip().lower()
    session_factory = get_session_factory("write")

    async with session_factory() as session:
        result = await session.execute(select(User).where(User.email == normalized))
        user = result.scalar_one_or_none()

        if user is not None:
            if user.role == Role.ADMIN.value:
                return "unchanged"
            user.role = Role.ADMIN.value
            await session.commit()
            logger.info("user_promoted_to_admin", user_id=str(user.id))
            return "promoted"

        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        session.add(
            User(
                id=uuid4(),
                email=normalized,
                password_hash=hash_password(password),
                role=Role.ADMIN.value,
                is_active=True,
                created_at=utc_now(),
            )
        )
        await session.commit()
        logger.info("admin_user_created", email=normalized)
        return "created"


async def run(email: str, password: str | None) -> int:
    try:
        outcome = await ensure_admin(email, password)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        await close_engines()

    print(f"{email}: {outcome}")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Create or promote a SalesBoard admin user")
    parser.add_argument("email", help="Admin email address")
    parser.add_argument(
        "--password",
        help="Password for a new account (prompted for if omitted)",
    )
    args = parser.parse_args()

    password = args.password
    if password is None:
        password = getpass.getpass("Password (ignored if the user exists): ") or None

    sys.exit(asyncio.run(run(args.email, password)))


if __name__ == "__main__":
    main()
