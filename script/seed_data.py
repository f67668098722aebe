#!/usr/bin/env python3
"""
Database Seed Script
Populate test data into the database

Features:
1. Create Users - 1 verified buyer, 1 unverified buyer, 1 gate admin
2. Create Events - 1 upcoming event with capacity, 1 nearly sold out
3. Print JWTs for the created users (tokens are normally issued by the account service)
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import func, select

from src.platform.database.orm_db_setting import Database, dispose_engine
from src.service.shared_kernel.domain.entity.user_entity import UserEntity, UserRole
from src.service.shared_kernel.driven_adapter.model import EventModel, UserModel
from src.service.shared_kernel.driving_adapter.auth.jwt_auth import JwtAuth


@dataclass
class UserConfig:
    """User seed configuration"""
    email: str
    full_name: str
    verification_status: str
    role: UserRole


TEST_USERS = [
    UserConfig(email='b@t.com', full_name='Alice Chen', verification_status='approved', role=UserRole.BUYER),
    UserConfig(email='u@t.com', full_name='Unverified Buyer', verification_status='pending', role=UserRole.BUYER),
    UserConfig(email='a@t.com', full_name='Gate Admin', verification_status='approved', role=UserRole.ADMIN),
]


async def create_users(session) -> list[tuple[UserModel, UserConfig]]:
    print(f'👥 Creating {len(TEST_USERS)} users...')
    created = []
    for config in TEST_USERS:
        user = UserModel(
            email=config.email,
            full_name=config.full_name,
            verification_status=config.verification_status,
            is_admin=config.role == UserRole.ADMIN,
        )
        session.add(user)
        await session.flush()
        created.append((user, config))
        print(f'   ✅ Created {config.role.value}: ID={user.id}, Email={user.email}')
    return created


async def create_events(session) -> None:
    print('🎫 Creating events...')
    starts_at = datetime.now(timezone.utc) + timedelta(days=30)
    events = [
        EventModel(
            name='Summer Arena Night', venue='Main Arena', event_date=starts_at,
            end_date=starts_at + timedelta(hours=4), total=500, available=500, price=Decimal('50.00'),
        ),
        EventModel(
            name='Last Seats Showcase', venue='Studio Hall', event_date=starts_at + timedelta(days=7),
            total=100, available=1, price=Decimal('120.00'),
        ),
    ]
    session.add_all(events)
    await session.flush()
    for event in events:
        print(f'   ✅ Created event: ID={event.id}, Name={event.name}, Available={event.available}')


async def verify_data(session) -> None:
    print('🔍 Verifying seeded data...')
    for model in (UserModel, EventModel):
        count = (await session.execute(select(func.count()).select_from(model))).scalar()
        print(f'   {model.__tablename__} count: {count}')


def print_tokens(users: list[tuple[UserModel, UserConfig]]) -> None:
    print('🔑 JWTs (Authorization: Bearer <token>):')
    jwt_auth = JwtAuth()
    for user, config in users:
        token = jwt_auth.create_jwt_token(
            UserEntity(id=user.id, email=user.email, name=user.full_name, role=config.role)
        )
        print(f'   {config.email}: {token}')


async def main():
    print('🌱 Starting data seeding...')
    print('=' * 50)

    database = Database()
    try:
        async with database.session() as session:
            try:
                users = await create_users(session)
                print()
                await create_events(session)
                print()
                await session.commit()
                print('✅ All data committed successfully!')
            except Exception as e:
                print(f'❌ Rolling back: {e}')
                await session.rollback()
                raise

            await verify_data(session)
        print()
        print_tokens(users)
        print('=' * 50)
    except Exception as e:
        print(f'❌ Seeding failed: {e}')
        exit(1)
    finally:
        await dispose_engine()


if __name__ == '__main__':
    asyncio.run(main())
