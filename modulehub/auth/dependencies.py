from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from jose import JWTError
import uuid


from modulehub.database import get_db
from modulehub.errors import UnauthorizedError
from modulehub.models import User, UserRole
from modulehub.auth.jwt import verify_token


bearer_scheme = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Get the current logged-in User from the JWT access token.
    Raises 401 if the token is invalid, expired, or the user is gone,
    and 403 while the account still waits for admin approval.
    """
    token = credentials.credentials
    try:
        payload = verify_token(token, expected_type="access")
        user_id_str: str = payload.get("user_id")
        if not user_id_str:
            raise HTTPException(status_code=401, detail="Invalid token payload")

        user_id = uuid.UUID(user_id_str)

    except (JWTError, ValueError):  # ValueError for invalid UUID string
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalars().first()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    if not user.is_approved:
        raise UnauthorizedError("Your account is pending approval")
    return user


def _require_role(role: UserRole, message: str):
    async def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role != role:
            raise UnauthorizedError(message, status_code=status.HTTP_403_FORBIDDEN)
        return current_user
    return checker


is_admin = _require_role(UserRole.ADMIN, "Only admins can access this resource")
is_teacher = _require_role(UserRole.TEACHER, "Only teachers can access this resource")
is_student = _require_role(UserRole.STUDENT, "Only students can access this resource")
