import argparse
import asyncio
import sys
import os

# Add project root to path
sys.path.append(os.getcwd())

from src.common.constants import UserRole
from src.common.security import create_access_token
from src.core.users.models import User
from src.core.users.repository import UserRepository
from src.infra.database import close_db, get_db, init_db


async def main(email: str, name: str, role: UserRole):
    await init_db()
    print("Connected to DB")

    repo = UserRepository(get_db())
    user = await repo.get_by_email(email)
    if user is None:
        user = await repo.create(User(email=email, name=name, role=role, is_available=role == UserRole.WASHER))
        print(f"User {user.id} created ({user.role})")
    else:
        print(f"User {user.id} already exists ({user.role})")

    print("Dev token:")
    print(create_access_token(user.id, user.role))

    await close_db()

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Создать пользователя для разработки и выдать JWT")
    parser.add_argument("--email", default="dev@wash.local")
    parser.add_argument("--name", default="Dev User")
    parser.add_argument("--role", default=UserRole.CUSTOMER.value, choices=[r.value for r in UserRole])
    args = parser.parse_args()
    asyncio.run(main(args.email, args.name, UserRole(args.role)))
