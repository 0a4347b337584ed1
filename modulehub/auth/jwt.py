from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt

from modulehub.config import (
    SECRET_KEY,
    ALGORITHM,
    ACCESS_TOKEN_EXPIRE_MINUTES,
    REFRESH_TOKEN_EXPIRE_DAYS,
)


def _encode(data: dict, token_type: str, expires_delta: timedelta) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode.update({"exp": expire, "type": token_type})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


# ---------------------------
# Create access token
# ---------------------------
def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a short-lived JWT access token.

    Parameters:
        data (dict): Claims to embed, e.g. {"user_id": str(user.id), "role": "teacher"}.
        expires_delta (timedelta, optional): Defaults to ACCESS_TOKEN_EXPIRE_MINUTES.
    """
    return _encode(data, "access", expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))


# ---------------------------
# Create refresh token
# ---------------------------
def create_refresh_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    return _encode(data, "refresh", expires_delta or timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS))


# ---------------------------
# Verify token
# ---------------------------
def verify_token(token: str, expected_type: str = "access") -> dict:
    """
    Verify a JWT token and return its payload.

    Raises:
        JWTError: If token is invalid, expired, or of another type.
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        if payload.get("type") != expected_type:
            raise JWTError(f"Invalid token type. Expected '{expected_type}'.")
        return payload
    except JWTError as e:
        raise JWTError("Invalid or expired token") from e
