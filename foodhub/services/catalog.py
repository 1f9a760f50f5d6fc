"""
Catalog Service

Restaurants and their menus:
- Customer-facing listings with category, search and location filters
- Restaurant-owner profile and menu management
- Restaurant cascade delete

Author: FoodHub Team
Version: 1.0.0
"""

import logging
from typing import Optional

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from foodhub.core.exceptions import AuthorizationError, ConflictError, NotFoundError
from foodhub.models import (
    CartItem,
    FeedbackCustomer,
    FeedbackRestaurant,
    FoodItem,
    Order,
    OrderItem,
    Restaurant,
    User,
)
from foodhub.schemas import FoodItemCreate, FoodItemUpdate, RestaurantCreate, RestaurantUpdate
from foodhub.services.site_config import remove_promoted_restaurant

logger = logging.getLogger(__name__)


# =============================================================================
# CUSTOMER LISTINGS
# =============================================================================

LIKE_ESCAPE = "\\"


def _contains_pattern(text: str) -> str:
    """Substring LIKE pattern with wildcards in the user text matched literally."""
    escaped = (
        text.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


async def list_restaurants(db: AsyncSession, location: Optional[str] = None) -> list[Restaurant]:
    query = select(Restaurant).order_by(Restaurant.id)
    if location:
        query = query.where(Restaurant.address.ilike(_contains_pattern(location), escape=LIKE_ESCAPE))
    result = await db.execute(query)
    return list(result.scalars().all())


async def list_food_items(
    db: AsyncSession,
    category: Optional[str] = None,
    search: Optional[str] = None,
    location: Optional[str] = None,
) -> list[FoodItem]:
    """
    Food items with their restaurant.

    Args:
        category: Exact category; "all" or empty means no filter
        search: Case-insensitive text matched against title and description
        location: Case-insensitive text matched against the restaurant address
    """
    query = (
        select(FoodItem)
        .options(selectinload(FoodItem.restaurant))
        .order_by(FoodItem.id)
    )

    if category and category.lower() != "all":
        query = query.where(FoodItem.category == category)

    if search:
        pattern = _contains_pattern(search)
        query = query.where(or_(
            FoodItem.title.ilike(pattern, escape=LIKE_ESCAPE),
            FoodItem.description.ilike(pattern, escape=LIKE_ESCAPE),
        ))

    if location:
        restaurants = await list_restaurants(db, location)
        if not restaurants:
            return []
        query = query.where(FoodItem.restaurant_id.in_([r.id for r in restaurants]))

    result = await db.execute(query)
    return list(result.scalars().all())


# =============================================================================
# RESTAURANT PROFILE
# =============================================================================

async def get_restaurant_by_owner(db: AsyncSession, owner_id: int) -> Optional[Restaurant]:
    result = await db.execute(select(Restaurant).where(Restaurant.owner_id == owner_id))
    return result.scalar_one_or_none()


async def list_restaurants_with_owner(db: AsyncSession) -> list[Restaurant]:
    result = await db.execute(
        select(Restaurant).options(selectinload(Restaurant.owner)).order_by(Restaurant.id)
    )
    return list(result.scalars().all())


async def create_restaurant(db: AsyncSession, owner: User, data: RestaurantCreate) -> Restaurant:
    """Create the owner's restaurant; the caller commits."""
    if await get_restaurant_by_owner(db, owner.id) is not None:
        raise ConflictError("You already have a restaurant profile. Use PUT to update it.")

    restaurant = Restaurant(
        owner_id=owner.id,
        title=data.title.strip(),
        description=data.description,
        address=data.address.strip(),
    )
    if data.image:
        restaurant.image = data.image
    db.add(restaurant)
    await db.flush()
    logger.info(f"Restaurant #{restaurant.id} created for owner #{owner.id}")
    return restaurant


def apply_restaurant_update(restaurant: Restaurant, data: RestaurantUpdate) -> None:
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field in ("title", "address", "image"):
            continue
        setattr(restaurant, field, value)


# =============================================================================
# MENU
# =============================================================================

async def list_menu(db: AsyncSession, restaurant_id: int) -> list[FoodItem]:
    result = await db.execute(
        select(FoodItem)
        .where(FoodItem.restaurant_id == restaurant_id)
        .order_by(FoodItem.created_at.desc(), FoodItem.id.desc())
    )
    return list(result.scalars().all())


async def create_food_item(db: AsyncSession, restaurant_id: int, data: FoodItemCreate) -> FoodItem:
    food_item = FoodItem(
        restaurant_id=restaurant_id,
        title=data.title.strip(),
        description=data.description,
        category=data.category.strip(),
        price=data.price,
        discount=data.discount,
    )
    if data.image:
        food_item.image = data.image
    db.add(food_item)
    await db.commit()
    logger.info(f"Food item #{food_item.id} added to restaurant #{restaurant_id}")
    return food_item


async def get_owned_food_item(db: AsyncSession, restaurant_id: int, food_item_id: int) -> FoodItem:
    food_item = await db.get(FoodItem, food_item_id)
    if food_item is None:
        raise NotFoundError("Food item not found.")
    if food_item.restaurant_id != restaurant_id:
        raise AuthorizationError("Access denied. This food item does not belong to your restaurant.")
    return food_item


async def update_food_item(
    db: AsyncSession,
    restaurant_id: int,
    food_item_id: int,
    data: FoodItemUpdate,
) -> FoodItem:
    food_item = await get_owned_food_item(db, restaurant_id, food_item_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field in ("title", "category", "price", "discount", "image"):
            continue
        setattr(food_item, field, value)
    await db.commit()
    return food_item


async def delete_food_item(db: AsyncSession, restaurant_id: int, food_item_id: int) -> None:
    """Delete a menu entry; cart, order and rating links to it are nulled."""
    food_item = await get_owned_food_item(db, restaurant_id, food_item_id)

    await db.execute(
        update(CartItem)
        .where(CartItem.food_item_id == food_item.id)
        .values(food_item_id=None)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        update(OrderItem)
        .where(OrderItem.food_item_id == food_item.id)
        .values(food_item_id=None)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        update(FeedbackCustomer)
        .where(FeedbackCustomer.food_item_id == food_item.id)
        .values(food_item_id=None)
        .execution_options(synchronize_session=False)
    )
    await db.delete(food_item)
    await db.commit()
    logger.info(f"Food item #{food_item_id} deleted from restaurant #{restaurant_id}")


# =============================================================================
# CASCADE DELETE
# =============================================================================

async def delete_restaurant_cascade(db: AsyncSession, restaurant_id: int) -> None:
    """
    Remove a restaurant with its food items, orders, received ratings,
    sent admin messages and promoted-list entry. Cart lines pointing at it
    are kept with nulled links. The caller commits.
    """
    restaurant = await db.get(Restaurant, restaurant_id)
    if restaurant is None:
        raise NotFoundError("Restaurant not found.")

    food_item_ids = select(FoodItem.id).where(FoodItem.restaurant_id == restaurant_id)
    order_ids = select(Order.id).where(Order.restaurant_id == restaurant_id)

    statements = [
        update(CartItem)
        .where(CartItem.food_item_id.in_(food_item_ids))
        .values(food_item_id=None),
        update(CartItem)
        .where(CartItem.restaurant_id == restaurant_id)
        .values(restaurant_id=None),
        delete(FeedbackCustomer).where(FeedbackCustomer.receiver_id == restaurant_id),
        delete(FeedbackRestaurant).where(FeedbackRestaurant.restaurant_id == restaurant_id),
        delete(OrderItem).where(OrderItem.order_id.in_(order_ids)),
        delete(Order).where(Order.restaurant_id == restaurant_id),
        delete(FoodItem).where(FoodItem.restaurant_id == restaurant_id),
    ]
    for statement in statements:
        await db.execute(statement.execution_options(synchronize_session=False))

    await remove_promoted_restaurant(db, restaurant_id)
    await db.delete(restaurant)
    await db.flush()
    logger.info(f"Restaurant #{restaurant_id} deleted with its menu, orders and feedback")
