"""
Ratings and Average-Rating Aggregation

A restaurant's ``average_rating`` (and a food item's ``rating``) is always
the arithmetic mean of every FeedbackCustomer rating that names it, or None
when there are none. Both are recomputed with a full SQL ``AVG`` after each
submission or deletion.
"""

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from foodhub.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationFailed
from foodhub.models import FeedbackCustomer, FoodItem, Order, OrderStatus, Restaurant
from foodhub.schemas import FeedbackCreate

logger = logging.getLogger(__name__)


async def recompute_restaurant_rating(db: AsyncSession, restaurant_id: int) -> Optional[float]:
    result = await db.execute(
        select(func.avg(FeedbackCustomer.rating)).where(FeedbackCustomer.receiver_id == restaurant_id)
    )
    average = result.scalar()
    average = float(average) if average is not None else None

    restaurant = await db.get(Restaurant, restaurant_id)
    if restaurant is not None:
        restaurant.average_rating = average
    return average


async def recompute_food_item_rating(db: AsyncSession, food_item_id: int) -> Optional[float]:
    result = await db.execute(
        select(func.avg(FeedbackCustomer.rating)).where(FeedbackCustomer.food_item_id == food_item_id)
    )
    average = result.scalar()
    average = float(average) if average is not None else None

    food_item = await db.get(FoodItem, food_item_id)
    if food_item is not None:
        food_item.rating = average
    return average


async def refresh_aggregates(
    db: AsyncSession,
    restaurant_ids: set[int],
    food_item_ids: set[int],
) -> None:
    """Recompute the given aggregates and commit."""
    for restaurant_id in restaurant_ids:
        await recompute_restaurant_rating(db, restaurant_id)
    for food_item_id in food_item_ids:
        await recompute_food_item_rating(db, food_item_id)
    await db.commit()


async def load_feedback(db: AsyncSession, feedback_id: int) -> Optional[FeedbackCustomer]:
    result = await db.execute(
        select(FeedbackCustomer)
        .where(FeedbackCustomer.id == feedback_id)
        .options(
            selectinload(FeedbackCustomer.user),
            selectinload(FeedbackCustomer.receiver),
            selectinload(FeedbackCustomer.food_item),
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_feedback(db: AsyncSession, restaurant_id: Optional[int] = None) -> list[FeedbackCustomer]:
    """Customer ratings, newest first, optionally for one restaurant."""
    query = (
        select(FeedbackCustomer)
        .options(
            selectinload(FeedbackCustomer.user),
            selectinload(FeedbackCustomer.receiver),
            selectinload(FeedbackCustomer.food_item),
        )
        .order_by(FeedbackCustomer.created_at.desc(), FeedbackCustomer.id.desc())
    )
    if restaurant_id is not None:
        query = query.where(FeedbackCustomer.receiver_id == restaurant_id)
    result = await db.execute(query)
    return list(result.scalars().all())


async def submit_rating(db: AsyncSession, user_id: int, data: FeedbackCreate) -> FeedbackCustomer:
    """
    Store a customer's rating and refresh the affected averages.

    Raises:
        NotFoundError: Unknown restaurant or food item
        AuthorizationError: The order is not the caller's
        ValidationFailed: Order not delivered, or food item sold elsewhere
        ConflictError: The order or food item was already rated by the caller
    """
    restaurant = await db.get(Restaurant, data.restaurant)
    if restaurant is None:
        raise NotFoundError("Restaurant not found.")

    if data.order is not None:
        order = await db.get(Order, data.order)
        if order is None or order.user_id != user_id:
            raise AuthorizationError("Order not found or does not belong to you.")
        if order.restaurant_id != restaurant.id:
            raise ValidationFailed("This order was not placed with the specified restaurant.")
        if order.status != OrderStatus.DELIVERED:
            raise ValidationFailed("You can only rate delivered orders.")

        already_rated = await db.execute(
            select(FeedbackCustomer.id).where(
                FeedbackCustomer.user_id == user_id,
                FeedbackCustomer.order_id == order.id,
            )
        )
        if already_rated.first() is not None:
            raise ConflictError("You have already rated this order.")

    if data.food_item is not None:
        food_item = await db.get(FoodItem, data.food_item)
        if food_item is None:
            raise NotFoundError("Food item not found.")
        if food_item.restaurant_id != restaurant.id:
            raise ValidationFailed("Food item does not belong to the specified restaurant.")

        already_rated = await db.execute(
            select(FeedbackCustomer.id).where(
                FeedbackCustomer.user_id == user_id,
                FeedbackCustomer.food_item_id == food_item.id,
            )
        )
        if already_rated.first() is not None:
            raise ConflictError("You have already rated this food item.")

    feedback = FeedbackCustomer(
        user_id=user_id,
        receiver_id=restaurant.id,
        order_id=data.order,
        food_item_id=data.food_item,
        rating=data.rating,
        message=data.message.strip(),
    )
    db.add(feedback)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("You have already rated this food item.")

    food_item_ids = {data.food_item} if data.food_item is not None else set()
    await refresh_aggregates(db, {restaurant.id}, food_item_ids)
    logger.info(f"Rating {data.rating} stored for restaurant #{restaurant.id} by user #{user_id}")

    return await load_feedback(db, feedback.id)


async def delete_rating(db: AsyncSession, feedback_id: int) -> None:
    feedback = await db.get(FeedbackCustomer, feedback_id)
    if feedback is None:
        raise NotFoundError("Feedback not found.")

    restaurant_id = feedback.receiver_id
    food_item_id = feedback.food_item_id

    await db.delete(feedback)
    await db.flush()
    await refresh_aggregates(db, {restaurant_id}, {food_item_id} if food_item_id else set())
    logger.info(f"Rating #{feedback_id} deleted; aggregates of restaurant #{restaurant_id} refreshed")
