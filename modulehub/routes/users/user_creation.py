from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from modulehub.database import get_db
from modulehub.errors import PreconditionFailedError, ValidationFailedError
from modulehub.models import User, UserRole
from modulehub.schemas.user import UserCreate
from modulehub.auth.password_security import hash_password

router = APIRouter(prefix="/user", tags=["User Registration"])


@router.post("/register", status_code=201)
async def register_user(data: UserCreate, db: AsyncSession = Depends(get_db)):
    if data.role == UserRole.ADMIN:
        raise ValidationFailedError("Admin accounts cannot be self-registered")

    result = await db.execute(select(User).where(User.username == data.username))
    if result.scalars().first():
        raise PreconditionFailedError("Username already exists")

    if data.email:
        result = await db.execute(select(User).where(User.email == data.email))
        if result.scalars().first():
            raise PreconditionFailedError("Email already exists")

    user = User(
        role=data.role,
        name=data.name,
        username=data.username,
        email=data.email,
        password_hash=hash_password(data.password),
        # teachers wait for an admin, students can start right away
        is_approved=data.role == UserRole.STUDENT,

        # Student fields
        level=data.level,
        academic_year=data.academic_year,
    )

    db.add(user)
    await db.commit()

    return {
        "message": "User registered successfully",
        "user_id": str(user.id),
        "role": user.role.value,
        "is_approved": user.is_approved,
    }
