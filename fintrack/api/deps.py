from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from fintrack.db.session import SessionLocal
from fintrack.core.security import decode_token

bearer = HTTPBearer()

def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()

def current_user(creds: HTTPAuthorizationCredentials = Depends(bearer)):
    try:
        u = decode_token(creds.credentials)
    except Exception:
        raise HTTPException(status_code=401, detail="invalid_token")
    if u.get("uid") is None:
        raise HTTPException(status_code=401, detail="invalid_token")
    return u