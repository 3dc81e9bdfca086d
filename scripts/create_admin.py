#!/usr/bin/env python3
"""Create (or reset the password of) a dashboard administrator."""

import argparse
import asyncio
import getpass

from smarttutors import database
from smarttutors.models.admin import Admin
from smarttutors.utils.security import get_password_hash


async def create_admin(username, password, email=None, name="Administrator"):
    await database.connect_to_mongo()
    db = database.get_db()

    try:
        existing = await db.admins.find_one({"username": username})
        if existing:
            await db.admins.update_one(
                {"_id": existing["_id"]},
                {"$set": {"password": get_password_hash(password)}},
            )
            print(f"Password reset for admin '{username}'")
            return

        admin = Admin(
            username=username,
            email=email.lower() if email else None,
            name=name,
            password=get_password_hash(password),
        )
        await db.admins.insert_one(admin.to_mongo())
        print(f"Admin '{username}' created")
    finally:
        await database.close_mongo_connection()


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("username")
    parser.add_argument("--email")
    parser.add_argument("--name", default="Administrator")
    args = parser.parse_args()

    password = getpass.getpass("Password: ")
    if len(password) < 6:
        parser.error("Password must be at least 6 characters")

    asyncio.run(create_admin(args.username, password, args.email, args.name))


if __name__ == "__main__":
    main()
