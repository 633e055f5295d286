import os
from sqlalchemy import select
from fintrack.db.session import SessionLocal
from fintrack.models.user import User
from fintrack.core.security import hash_password
from fintrack.models.account import ASSET, REVOLVING_CREDIT
from fintrack.services.accounts import create_account

def main():
    username = os.environ.get("SEED_USER", "demo")
    password = os.environ.get("SEED_PASS", "demo123")

    db = SessionLocal()
    try:
        existing = db.execute(select(User).where(User.username == username)).scalar_one_or_none()
        if existing:
            return
        u = User(username=username, password_hash=hash_password(password))
        db.add(u)
        db.commit()
        db.refresh(u)

        create_account(db, u.id, "Checking", ASSET, opening_balance=0)
        create_account(db, u.id, "Credit card", REVOLVING_CREDIT, opening_balance=0, credit_limit=10000)
    finally:
        db.close()

if __name__ == "__main__":
    main()
