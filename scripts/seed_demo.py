#!/usr/bin/env python3
"""
Seed script to create a demo floor plan and staff accounts
"""

import asyncio

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

DEMO_TABLES = [
    # (number, name, capacity, location)
    (1, "Window 1", 2, "Main Hall"),
    (2, "Window 2", 2, "Main Hall"),
    (3, None, 4, "Main Hall"),
    (4, None, 4, "Main Hall"),
    (5, "Booth", 6, "Main Hall"),
    (6, None, 4, "Terrace"),
    (7, None, 4, "Terrace"),
    (8, "Garden", 8, "Terrace"),
    (9, "Private Room", 12, "2nd Floor"),
]


async def seed_demo_data():
    """Seed demo data for development"""
    from sqlalchemy import select
    from app.database import SessionLocal, engine, Base
    from app.models.table import Table
    from app.models.user import User, UserRole

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with SessionLocal() as db:
        result = await db.execute(select(User).where(User.email == "admin@tableside.local"))
        if result.scalar_one_or_none():
            print("Demo data already exists. Skipping...")
            return

        print("Creating staff accounts...")
        db.add(User(
            email="admin@tableside.local",
            hashed_password=pwd_context.hash("admin123"),
            full_name="Restaurant Admin",
            role=UserRole.ADMIN,
        ))
        db.add(User(
            email="host@tableside.local",
            hashed_password=pwd_context.hash("host123"),
            full_name="Front Desk",
            role=UserRole.STAFF,
        ))

        print("Creating floor plan...")
        for number, name, capacity, location in DEMO_TABLES:
            db.add(Table(
                table_number=number,
                table_name=name,
                capacity=capacity,
                location=location,
            ))

        await db.commit()

        print(f"""
Demo data created successfully!

Users:
  Admin:
    Email: admin@tableside.local
    Password: admin123

  Host:
    Email: host@tableside.local
    Password: host123

Tables: {len(DEMO_TABLES)} tables across {len({t[3] for t in DEMO_TABLES})} areas
""")


if __name__ == "__main__":
    asyncio.run(seed_demo_data())
