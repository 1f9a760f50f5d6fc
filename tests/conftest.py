"""
Shared fixtures: a throwaway SQLite database per test, an HTTP client bound
to the app, and factories for users, restaurants and food items.
"""

import os

# Settings are cached on first import, so the environment comes first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["ENV_MODE"] = "development"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["EXPORT_ORDERS_TO_LEDGER"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from foodhub.core.security import create_access_token, hash_password
from foodhub.database import Base, enable_sqlite_foreign_keys, get_db
from foodhub.main import app
from foodhub.models import ApprovalState, FoodItem, Restaurant, User, UserRole

TEST_PASSWORD = "secret123"


@pytest.fixture
async def session_maker(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def client(session_maker):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.user_type)}"}


# =============================================================================
# FACTORIES
# =============================================================================

@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    async def _make_user(
        user_type: UserRole = UserRole.CUSTOMER,
        approval: ApprovalState = ApprovalState.ACCEPTED,
        name: str = None,
        email: str = None,
        address: str = "",
    ) -> User:
        counter["n"] += 1
        user = User(
            name=name or f"{user_type.value.title()} {counter['n']}",
            email=email or f"{user_type.value}{counter['n']}@example.com",
            password_hash=hash_password(TEST_PASSWORD),
            user_type=user_type,
            approval=approval,
            address=address,
        )
        db.add(user)
        await db.commit()
        return user

    return _make_user


@pytest.fixture
def make_restaurant(db, make_user):
    async def _make_restaurant(owner: User = None, title: str = "Spice Villa", address: str = "12 Main St, Pune") -> Restaurant:
        if owner is None:
            owner = await make_user(UserRole.RESTAURANT)
        restaurant = Restaurant(owner_id=owner.id, title=title, address=address)
        db.add(restaurant)
        await db.commit()
        return restaurant

    return _make_restaurant


@pytest.fixture
def make_food_item(db):
    async def _make_food_item(
        restaurant: Restaurant,
        title: str = "Paneer Tikka",
        category: str = "Indian",
        price: float = 10.0,
        discount: float = 0,
        description: str = None,
    ) -> FoodItem:
        food_item = FoodItem(
            restaurant_id=restaurant.id,
            title=title,
            category=category,
            price=price,
            discount=discount,
            description=description,
        )
        db.add(food_item)
        await db.commit()
        return food_item

    return _make_food_item


@pytest.fixture
async def customer(make_user):
    return await make_user(UserRole.CUSTOMER, address="5 Lake Road")


@pytest.fixture
async def admin(make_user):
    return await make_user(UserRole.ADMIN)


@pytest.fixture
async def owner(make_user):
    return await make_user(UserRole.RESTAURANT)


@pytest.fixture
async def restaurant(make_restaurant, owner):
    return await make_restaurant(owner)
