import asyncio
from getpass import getpass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from modulehub.database import AsyncSessionLocal
from modulehub.models import User, UserRole
from modulehub.auth.password_security import hash_password


async def create_admin(
    session: AsyncSession,
    username: str,
    name: str,
    password: str,
) -> Optional[User]:
    """
    Create an approved admin account. Returns None when the username is taken.
    """
    existing = await session.execute(select(User).where(User.username == username))
    if existing.scalars().first():
        return None

    admin_user = User(
        role=UserRole.ADMIN,
        username=username,
        name=name,
        password_hash=hash_password(password),
        is_approved=True,
    )
    session.add(admin_user)
    await session.commit()
    return admin_user


async def create_admin_interactive():
    """
    Interactively create a new admin user in the database.
    """
    username = input("Enter admin username: ").strip()
    name = input("Enter admin name (optional): ").strip() or username
    password = getpass("Enter admin password: ").strip()
    password_confirm = getpass("Confirm password: ").strip()

    if password != password_confirm:
        print("Passwords do not match. Exiting.")
        return

    async with AsyncSessionLocal() as session:
        admin_user = await create_admin(session, username, name, password)

    if admin_user is None:
        print(f"A user named {username} already exists.")
        return
    print(f"Admin created successfully: {username}")


if __name__ == "__main__":
    asyncio.run(create_admin_interactive())
