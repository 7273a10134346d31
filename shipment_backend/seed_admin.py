"""
Database seeding script for the first administrator.

Admin accounts cannot register through POST /signup, so the first one is
written straight into the datastore. Run after the database is reachable:

    python -m shipment_backend.seed_admin --email admin@shipments.com --password admin123
"""

import argparse
import asyncio

from sqlalchemy import select

from shipment_backend.app.core.security import get_password_hash
from shipment_backend.app.db.session import Datastore
from shipment_backend.app.models.enums import UserType, AccountStatus
from shipment_backend.app.models.user import User
from shipment_backend.app.services.id_generator import USER_ID, insert_with_identifier


async def seed_admin(email: str, password: str, name: str, phone: str) -> None:
    datastore = Datastore.from_settings()
    await datastore.create_all()
    try:
        async with datastore.session() as db:
            print("🌱 Starting admin seeding...")
            
            result = await db.execute(select(User).where(User.email == email))
            if result.scalar_one_or_none():
                print(f"ℹ️  {email} already exists, skipping seeding")
                return
            
            admin = await insert_with_identifier(
                db,
                USER_ID,
                lambda user_id: User(
                    user_id=user_id,
                    name=name,
                    email=email,
                    phone=phone,
                    hashed_password=get_password_hash(password),
                    type=UserType.ADMIN,
                    status=AccountStatus.APPROVED,
                    is_active=True,
                ),
            )
            print(f"✅ Created Admin {admin.email} (user_id {admin.user_id})")
    finally:
        await datastore.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Create the first Admin account")
    parser.add_argument("--email", default="admin@shipments.com")
    parser.add_argument("--password", default="admin123")
    parser.add_argument("--name", default="Administrator")
    parser.add_argument("--phone", default="0000000000")
    args = parser.parse_args()
    
    asyncio.run(seed_admin(args.email.strip().lower(), args.password, args.name, args.phone))


if __name__ == "__main__":
    main()
