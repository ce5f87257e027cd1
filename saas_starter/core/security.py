# saas_starter/core/security.py
from passlib.context import CryptContext

# argon2: memory-hard, salted per hash
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """False for a wrong password as well as for an unreadable hash."""
    if not password_hash:
        return False
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        # malformed / unknown hash format stored in the DB
        return False
