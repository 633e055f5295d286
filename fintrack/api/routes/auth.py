from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy import select
from fintrack.api.deps import db
from fintrack.schemas.auth import LoginIn, RegisterIn, TokenOut
from fintrack.models.user import User
from fintrack.core.security import hash_password, verify_password, create_access_token
from fintrack.services.audit import log_event

router = APIRouter(prefix="/auth", tags=["auth"])

@router.post("/register", response_model=TokenOut)
def register(body: RegisterIn, s: Session = Depends(db)):
    exists = s.execute(select(User).where(User.username == body.username)).scalar_one_or_none()
    if exists:
        raise HTTPException(status_code=409, detail="user_exists")
    u = User(username=body.username, password_hash=hash_password(body.password))
    s.add(u)
    s.commit()
    s.refresh(u)
    log_event(s, user={"uid": u.id, "sub": u.username}, action="user.register", entity_type="user", entity_id=u.id)
    return {"access_token": create_access_token(sub=u.username, uid=u.id)}

@router.post("/login", response_model=TokenOut)
def login(body: LoginIn, s: Session = Depends(db)):
    u = s.execute(select(User).where(User.username == body.username)).scalar_one_or_none()
    if not u or not verify_password(body.password, u.password_hash):
        raise HTTPException(status_code=401, detail="bad_credentials")
    return {"access_token": create_access_token(sub=u.username, uid=u.id)}
