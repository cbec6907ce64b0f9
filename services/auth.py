from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from shared.utils import config

ALGORITHM = "HS256"

# Tokens are issued by the external identity service
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/token")


def create_access_token(data: dict[str, str], expires_minutes: int | None = None) -> str:
    """Create JWT access token."""
    claims: dict = dict(data)
    if expires_minutes is not None:
        claims["exp"] = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    return jwt.encode(claims, config.get("secret_key", "supersecret"), algorithm=ALGORITHM)


def decode_user_id(token: str) -> str:
    """Return the ``sub`` claim of a valid token."""
    try:
        payload = jwt.decode(token, config.get("secret_key", "supersecret"), algorithms=[ALGORITHM])
    except JWTError as e:
        raise HTTPException(status_code=401, detail="Invalid token") from e
    user_id = payload.get("sub")
    if not isinstance(user_id, str) or not user_id:
        raise HTTPException(status_code=401, detail="Invalid token")
    return user_id


async def get_current_user_id(token: str = Depends(oauth2_scheme)) -> str:
    """Authenticated user id for the request."""
    return decode_user_id(token)
