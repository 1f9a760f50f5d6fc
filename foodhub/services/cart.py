"""
Cart Service

Each customer owns exactly one cart, created lazily. Lines may span several
restaurants; a line is identified for merging by its (food item, restaurant)
pair. Line references are nulled when the food item or restaurant is
deleted, so the read path tolerates missing links.
"""

import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from foodhub.core.exceptions import NotFoundError, ValidationFailed
from foodhub.models import Cart, CartItem, FoodItem, utcnow
from foodhub.schemas import CartFoodItem, CartItemAdd, CartLine, CartResponse, RestaurantRef

logger = logging.getLogger(__name__)


def _cart_query(user_id: int):
    return (
        select(Cart)
        .where(Cart.user_id == user_id)
        .options(
            selectinload(Cart.items)
            .selectinload(CartItem.food_item)
            .selectinload(FoodItem.restaurant),
            selectinload(Cart.items).selectinload(CartItem.restaurant),
        )
        .execution_options(populate_existing=True)
    )


async def get_or_create_cart(db: AsyncSession, user_id: int) -> Cart:
    """
    Return the user's cart with its lines loaded, creating an empty one if absent.

    Two concurrent first calls race on the unique owner column; the loser
    rolls back and reads the winner's cart.
    """
    cart = (await db.execute(_cart_query(user_id))).scalar_one_or_none()
    if cart is not None:
        return cart

    db.add(Cart(user_id=user_id))
    try:
        await db.commit()
        logger.info(f"Cart created for user #{user_id}")
    except IntegrityError:
        await db.rollback()
        logger.debug(f"Cart for user #{user_id} created concurrently, re-reading")

    return (await db.execute(_cart_query(user_id))).scalar_one()


def _find_line(cart: Cart, cart_item_id: int) -> CartItem:
    for line in cart.items:
        if line.id == cart_item_id:
            return line
    raise NotFoundError("Cart item not found.")


async def add_item(db: AsyncSession, user_id: int, data: CartItemAdd) -> int:
    """Add a selection to the cart, merging with an existing line. Returns the line count."""
    food_item = await db.get(FoodItem, data.food_item_id)
    if food_item is None:
        raise NotFoundError("Food item not found.")
    if food_item.restaurant_id != data.restaurant_id:
        raise ValidationFailed("Food item does not belong to the specified restaurant.")

    cart = await get_or_create_cart(db, user_id)

    existing = next(
        (
            line for line in cart.items
            if line.food_item_id == data.food_item_id
            and line.restaurant_id == data.restaurant_id
        ),
        None,
    )
    if existing is not None:
        existing.quantity += data.quantity
        existing.added_at = utcnow()
    else:
        cart.items.append(
            CartItem(
                food_item_id=data.food_item_id,
                restaurant_id=data.restaurant_id,
                quantity=data.quantity,
                price_at_time_of_addition=data.price_at_time_of_addition,
                added_at=utcnow(),
            )
        )

    await db.commit()
    return len(cart.items)


async def update_item_quantity(db: AsyncSession, user_id: int, cart_item_id: int, quantity: int) -> int:
    if quantity < 1:
        raise ValidationFailed("Quantity must be at least 1.")

    cart = await get_or_create_cart(db, user_id)
    line = _find_line(cart, cart_item_id)
    line.quantity = quantity
    line.added_at = utcnow()

    await db.commit()
    return len(cart.items)


async def remove_item(db: AsyncSession, user_id: int, cart_item_id: int) -> int:
    cart = await get_or_create_cart(db, user_id)
    line = _find_line(cart, cart_item_id)
    cart.items.remove(line)

    await db.commit()
    return len(cart.items)


async def clear_cart(db: AsyncSession, user_id: int) -> str:
    cart = await get_or_create_cart(db, user_id)
    if not cart.items:
        return "Cart is already empty."

    cart.items.clear()
    await db.commit()
    logger.info(f"Cart of user #{user_id} cleared")
    return "Cart cleared successfully."


async def prune_cart_for_restaurant(db: AsyncSession, user_id: int, restaurant_id: int) -> int:
    """Delete every cart line of ``restaurant_id`` for the user. Returns the number removed."""
    cart_ids = select(Cart.id).where(Cart.user_id == user_id).scalar_subquery()
    result = await db.execute(
        delete(CartItem)
        .where(CartItem.cart_id == cart_ids, CartItem.restaurant_id == restaurant_id)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount or 0


async def count_cart_lines(db: AsyncSession, user_id: int) -> int:
    cart = (await db.execute(_cart_query(user_id))).scalar_one_or_none()
    return len(cart.items) if cart else 0


def build_cart_response(cart: Cart) -> CartResponse:
    """Enrich cart lines with food item and restaurant display fields."""
    lines = []
    for line in cart.items:
        food_item = line.food_item
        restaurant = line.restaurant

        if food_item is None:
            logger.warning(f"Cart item #{line.id} in cart #{cart.id} has no linked food item")
        if restaurant is None:
            logger.warning(f"Cart item #{line.id} in cart #{cart.id} has no linked restaurant")

        lines.append(
            CartLine(
                id=line.id,
                food_item_id=line.food_item_id,
                restaurant_id=line.restaurant_id,
                quantity=line.quantity,
                price_at_time_of_addition=line.price_at_time_of_addition,
                added_at=line.added_at,
                food_item=CartFoodItem(
                    id=food_item.id,
                    title=food_item.title,
                    price=food_item.price,
                    image=food_item.image,
                    discount=food_item.discount,
                    restaurant_title=food_item.restaurant.title if food_item.restaurant else None,
                ) if food_item is not None else None,
                restaurant=RestaurantRef(
                    id=restaurant.id,
                    title=restaurant.title,
                ) if restaurant is not None else None,
            )
        )

    return CartResponse(id=cart.id, user_id=cart.user_id, items=lines, updated_at=cart.updated_at)
