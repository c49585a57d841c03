"""
Script to create a local user with a password, optionally owning a new organization.

    python -m app.scripts.create_local_user --email a@example.com --password secret123 --org "Acme"
"""

import argparse
import asyncio
from typing import Optional

from sqlmodel import select

from app.core.auth import hash_password
from app.core.database import get_session_context, init_db
from app.models.user import User
from app.services import organizations as org_service
from expensify_shared.schemas.organizations import OrgCreateRequest


async def create_user(
    email: str, password: str, name: Optional[str] = None, org_name: Optional[str] = None
):
    await init_db()

    async with get_session_context() as session:
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

        if not user:
            user = User(email=email, name=name, password_hash=hash_password(password))
            session.add(user)
            await session.flush()
            print(f"Created user: {email}")
        else:
            print(f"User {email} already exists.")

        if org_name:
            org = await org_service.create_org(
                OrgCreateRequest(name=org_name), user.id, session
            )
            print(f"Created organization '{org.name}' ({org.id}) owned by {email}.")

    print("Done.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create a local user.")
    parser.add_argument("--email", required=True, help="Email address for the user")
    parser.add_argument("--password", required=True, help="Password for the user")
    parser.add_argument("--name", default=None, help="Display name")
    parser.add_argument("--org", default=None, help="Create an organization owned by the user")

    args = parser.parse_args()

    asyncio.run(create_user(args.email, args.password, args.name, args.org))
