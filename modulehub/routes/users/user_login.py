from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from modulehub.database import get_db
from modulehub.helpers.datetime_utils import utcnow
from modulehub.models import User
from modulehub.auth.password_security import verify_password, password_needs_rehash, hash_password
from modulehub.auth.jwt import create_access_token, create_refresh_token
from modulehub.schemas.user import TokenResponse, UserLoginRequest

router = APIRouter(tags=["User Login"])


# ---------------------------
# User login route (admin/teacher/student)
# ---------------------------
@router.post("/user/login", response_model=TokenResponse)
async def user_login(request: UserLoginRequest, db: AsyncSession = Depends(get_db)):
    """
    Authenticate any user with username and password.
    Returns access and refresh JWT tokens on success.
    Raises 401 if credentials are invalid.
    """
    result = await db.execute(select(User).where(User.username == request.username))
    user = result.scalars().first()

    if not user or not verify_password(request.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password"
        )

    # Update last login
    user.last_login = utcnow()
    if password_needs_rehash(user.password_hash):
        user.password_hash = hash_password(request.password)
    db.add(user)
    await db.commit()

    claims = {"user_id": str(user.id), "role": user.role.value}
    return TokenResponse(
        access_token=create_access_token(claims),
        refresh_token=create_refresh_token(claims),
        role=user.role.value
        )
