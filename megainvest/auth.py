from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt, ExpiredSignatureError
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from typing import Callable, List, Optional
from megainvest.config import settings
from megainvest.database import get_db
from megainvest.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DatabaseError,
    InvalidTokenError,
    TokenExpiredError,
)
from megainvest.models.user import User
import logging

# Initialize logging
logger = logging.getLogger(__name__)

# OAuth2 scheme for token validation; anonymous callers are allowed through
# and rejected by the dependencies that need a user.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


# Function to create an access token with an expiration time
def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)

    to_encode.update({"exp": expire})

    if "sub" not in to_encode:
        raise ValueError("Missing 'sub' claim (email) in token data.")

    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


# Function to decode an access token
def decode_access_token(token: str) -> str:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except ExpiredSignatureError:
        logger.info("Token expired")
        raise TokenExpiredError()
    except JWTError as e:
        logger.warning(f"JWT decoding failed: {str(e)}")
        raise InvalidTokenError()

    email = payload.get("sub")
    if email is None:
        logger.warning("Token is missing 'sub' claim")
        raise InvalidTokenError("Token does not contain 'sub' field.")
    return email


async def _load_user(email: str, db: AsyncSession) -> User:
    try:
        result = await db.execute(select(User).where(User.email == email))
        user = result.scalars().first()
    except Exception as e:
        logger.error(f"Database error: {e}")
        raise DatabaseError("Failed to retrieve user info", operation="load_user")

    if user is None:
        logger.warning(f"User with email '{email}' not found.")
        raise InvalidTokenError("Could not validate credentials")
    return user


async def get_optional_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """
    Resolve the bearer token if one was sent.

    Returns None for anonymous callers. A token that is present but invalid
    or expired is still an error: the caller meant to authenticate.
    """
    if not token:
        return None
    email = decode_access_token(token)
    return await _load_user(email, db)


async def get_current_user(
    user: Optional[User] = Depends(get_optional_user),
) -> User:
    if user is None:
        raise AuthenticationError("User not authenticated.")
    return user


# Asynchronous function to get the current user with required roles
def get_current_user_with_role(required_roles: List[str]) -> Callable[..., User]:
    async def _current_user_with_role(user: User = Depends(get_current_user)) -> User:
        """
        Ensure the authenticated user has one of the required role(s).

        Raises:
            AuthorizationError: If the user's role is not allowed.
        """
        role_name = user.role.name if user.role else None
        if role_name not in required_roles:
            logger.warning(f"Role '{role_name}' denied; required one of {required_roles}")
            raise AuthorizationError(
                f"Role '{role_name or 'None'}' does not have access to this resource.",
                required_role=", ".join(required_roles),
            )
        return user

    return _current_user_with_role
