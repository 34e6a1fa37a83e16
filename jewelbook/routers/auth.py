# jewelbook/routers/auth.py
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import select

from jewelbook import config
from jewelbook.auth import create_token, hash_pw, require_user, verify_pw
from jewelbook.db import get_session
from jewelbook.models import LoginIn, LoginOut, User, UserOut

logger = logging.getLogger("api.auth")

router = APIRouter()


def ensure_default_admin() -> None:
    with get_session() as session:
        admin = session.exec(
            select(User).where(User.username == config.DEFAULT_ADMIN_USERNAME)
        ).first()
        if not admin:
            session.add(User(
                username=config.DEFAULT_ADMIN_USERNAME,
                password_hash=hash_pw(config.DEFAULT_ADMIN_PASSWORD),
                role="admin",
            ))
            session.commit()
            logger.info("Default admin user created")


@router.post("/login", response_model=LoginOut)
def login(payload: LoginIn):
    with get_session() as session:
        u = session.exec(
            select(User).where(User.username == payload.username, User.is_active == True)  # noqa: E712
        ).first()
        if not u or not verify_pw(payload.password, u.password_hash):
            logger.warning("Failed login for %r", payload.username)
            raise HTTPException(status_code=401, detail="Invalid credentials")
        token = create_token(u.id, u.username, u.role)
        return LoginOut(token=token, user=UserOut(id=u.id, username=u.username, role=u.role))


@router.get("/me")
def whoami(user: dict = Depends(require_user)):
    return {"username": user.get("sub"), "role": user.get("role"), "id": user.get("uid")}
