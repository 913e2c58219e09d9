"""

Initial ADMIN account bootstrap script.

- run once when the server is first set up
- reads the ADMIN_* environment variables defined in .env and
  creates an enabled ADMIN account
- exits without changes if an ADMIN account already exists

Purpose:
- registration itself requires admin:create, so the first
  administrator has to be created outside the API

Usage
- activate the virtualenv
- (.venv) ~/backend$ python -m scripts.create_admin

"""

import os
from dotenv import load_dotenv
load_dotenv()

from sqlalchemy import select
from mss.db.session import SessionLocal
from mss.models.user import User, Role
from mss.core.security import get_password_hash



def main():
    db = SessionLocal()
    try:
        exists = db.scalar(
            select(User).where(User.role == Role.ADMIN, User.is_deleted.is_(False))
        )
        if exists:
            print("ADMIN already exists. Skip creation.")
            return

        email = os.environ["ADMIN_EMAIL"]
        password = os.environ["ADMIN_PASSWORD"]
        firstname = os.environ.get("ADMIN_FIRSTNAME", "Shop")
        lastname = os.environ.get("ADMIN_LASTNAME", "Admin")
        mobile_number = os.environ.get("ADMIN_MOBILE_NUMBER", "0000000000")

        email_exists = db.scalar(
            select(User).where(User.email == email)
        )
        if email_exists:
            raise RuntimeError("Email already exists but is not ADMIN")

        user = User(
            firstname=firstname,
            lastname=lastname,
            email=email,
            password_hash=get_password_hash(password),
            mobile_number=mobile_number,
            role=Role.ADMIN,
            enabled=True,
            is_deleted=False,
        )

        db.add(user)
        db.commit()

        print(f"ADMIN created: {email}")

    finally:
        db.close()


if __name__ == "__main__":
    main()
