from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Header, HTTPException
from jose import JWTError, jwt

from backend.app.core.config import Config
from backend.app.models.user import TokenData
from backend.app.utils.logger import create_logger

logger = create_logger(__name__, level=Config.LOG_LEVEL)


def create_access_token(
    user_id: str, username: str, expires_delta: Optional[timedelta] = None
) -> str:
    """Create a JWT access token"""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(hours=Config.JWT_EXPIRATION_HOURS)
    )
    to_encode = {"sub": user_id, "username": username, "exp": expire}
    return jwt.encode(to_encode, Config.JWT_SECRET_KEY, algorithm=Config.JWT_ALGORITHM)


def decode_token(token: str) -> Optional[TokenData]:
    """Decode and validate a JWT token"""
    try:
        payload = jwt.decode(
            token, Config.JWT_SECRET_KEY, algorithms=[Config.JWT_ALGORITHM]
        )
    except JWTError as e:
        logger.debug(f"JWT decode error: {e}")
        return None

    user_id: str = payload.get("sub")
    username: str = payload.get("username")
    if user_id is None or username is None:
        return None
    return TokenData(user_id=user_id, username=username)


async def is_authenticated(authorization: Optional[str] = Header(None)) -> TokenData:
    """Dependency rejecting requests without a valid bearer token"""
    if not authorization:
        raise HTTPException(status_code=401, detail="Authorization header missing")

    # Extract token from "Bearer <token>" format
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(
            status_code=401,
            detail="Invalid authorization header format",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token_data = decode_token(parts[1])
    if not token_data:
        raise HTTPException(
            status_code=401,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return token_data
