"""Accounts, password hashing and the per-request session context."""

from dataclasses import dataclass
from typing import Optional

import bcrypt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .errors import Conflict, NotFound, PersistenceError, Unauthorized, ValidationError
from .store import User

DEFAULT_HASH_ROUNDS = 10

# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


@dataclass(frozen=True)
class SessionContext:
    """Identity of the caller, resolved once per request from the cookie."""
    user_id: str


def hash_password(password: str, rounds: int = DEFAULT_HASH_ROUNDS) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))
    except ValueError:
        return False


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def _find_by_email(session: AsyncSession, email: str) -> Optional[User]:
    try:
        result = await session.execute(select(User).where(User.email == email))
    except SQLAlchemyError as e:
        raise PersistenceError("Failed to fetch user") from e
    return result.scalar_one_or_none()


async def signup(
    session: AsyncSession,
    email: Optional[str],
    password: Optional[str],
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    rounds: int = DEFAULT_HASH_ROUNDS,
) -> User:
    """Create an account.

    Raises:
        ValidationError: Missing email/password or over-long password.
        Conflict: Email already registered.
    """
    if not email or not email.strip() or not password:
        raise ValidationError("Email and password are required")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError("Password is too long")

    email = normalize_email(email)
    if await _find_by_email(session, email) is not None:
        raise Conflict("Email already registered")

    user = User(
        email=email,
        password_hash=hash_password(password, rounds),
        first_name=first_name or None,
        last_name=last_name or None,
    )
    try:
        session.add(user)
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise Conflict("Email already registered") from e
    except SQLAlchemyError as e:
        await session.rollback()
        raise PersistenceError("Failed to create user") from e
    return user


async def login(session: AsyncSession, email: Optional[str], password: Optional[str]) -> User:
    """Check credentials.

    Raises:
        ValidationError: Missing email or password.
        Unauthorized: Unknown email or wrong password.
    """
    if not email or not password:
        raise ValidationError("Email and password are required")

    user = await _find_by_email(session, normalize_email(email))
    if user is None or not verify_password(password, user.password_hash):
        raise Unauthorized("Invalid email or password")
    return user


async def get_user(session: AsyncSession, user_id: str) -> User:
    """Fetch the session's user.

    Raises:
        NotFound: If the account no longer exists.
    """
    try:
        user = await session.get(User, user_id)
    except SQLAlchemyError as e:
        raise PersistenceError("Failed to fetch user") from e
    if user is None:
        raise NotFound("User not found")
    return user


async def get_user_by_email(session: AsyncSession, email: str) -> User:
    user = await _find_by_email(session, normalize_email(email))
    if user is None:
        raise NotFound("User not found")
    return user
