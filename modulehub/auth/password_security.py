from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    False for a wrong password and for a stored value that is not a
    recognisable hash (seeded or imported accounts).
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        return False


def password_needs_rehash(hashed_password: str) -> bool:
    """True when the stored hash was made with outdated argon2 parameters."""
    return pwd_context.needs_update(hashed_password)
