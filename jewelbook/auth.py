from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError
from passlib.context import CryptContext

from jewelbook import config

pwd = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer = HTTPBearer(auto_error=False)


def hash_pw(p: str) -> str:
    return pwd.hash(p)


def verify_pw(p: str, h: str) -> bool:
    return pwd.verify(p, h)


def create_token(user_id: int, username: str, role: str) -> str:
    exp = datetime.now(timezone.utc) + timedelta(minutes=config.ACCESS_TOKEN_MIN)
    return jwt.encode(
        {"sub": username, "uid": user_id, "role": role, "exp": exp},
        config.SECRET_KEY,
        algorithm=config.ALGO,
    )


def decode_token(token: str) -> dict:
    return jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGO])


def require_user(
    request: Request,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> dict:
    # 401 => client has no token, 403 => token present but unusable; both clear the stored token
    if not creds or not creds.credentials:
        raise HTTPException(status_code=401, detail="Access token required")
    try:
        data = decode_token(creds.credentials)
    except JWTError:
        raise HTTPException(status_code=403, detail="Invalid token")
    request.state.user = data
    return data
