"""
Order Lifecycle Service

Converts a customer's selection for one restaurant into an order and
enforces the status workflow:

    pending   -> preparing, cancelled
    preparing -> delivered, cancelled
    delivered, cancelled: terminal

Checkout runs in two phases: the order is persisted first, then the
restaurant's lines are pruned from the cart. An optional checkout key makes
the call safe to retry; a retry returns the stored order and re-runs the
pruning phase.

Author: FoodHub Team
Version: 1.0.0
"""

import json
import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from foodhub.core.config import get_settings
from foodhub.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationFailed
from foodhub.models import FoodItem, Order, OrderItem, OrderStatus, User, utcnow
from foodhub.schemas import OrderCreate
from foodhub.services.cart import prune_cart_for_restaurant
from foodhub.tasks import export_order_to_ledger

logger = logging.getLogger(__name__)
settings = get_settings()

DEFAULT_DELIVERY_ADDRESS = "Not specified"

ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """True if ``current -> target`` is allowed; staying put always is."""
    return target == current or target in ORDER_TRANSITIONS[current]


def is_terminal(status: OrderStatus) -> bool:
    return not ORDER_TRANSITIONS[status]


# =============================================================================
# LOADING
# =============================================================================

def _order_query():
    return (
        select(Order)
        .options(
            selectinload(Order.items).selectinload(OrderItem.food_item),
            selectinload(Order.restaurant),
            selectinload(Order.customer),
        )
        .execution_options(populate_existing=True)
    )


async def load_order(db: AsyncSession, order_id: int) -> Optional[Order]:
    """Fetch an order with everything its response needs."""
    result = await db.execute(_order_query().where(Order.id == order_id))
    return result.scalar_one_or_none()


async def list_orders(
    db: AsyncSession,
    user_id: Optional[int] = None,
    restaurant_id: Optional[int] = None,
) -> list[Order]:
    """Orders newest first, optionally limited to one customer or one restaurant."""
    query = _order_query().order_by(Order.order_date.desc(), Order.id.desc())
    if user_id is not None:
        query = query.where(Order.user_id == user_id)
    if restaurant_id is not None:
        query = query.where(Order.restaurant_id == restaurant_id)

    result = await db.execute(query)
    return list(result.scalars().all())


async def _find_by_checkout_key(db: AsyncSession, user_id: int, checkout_key: str) -> Optional[Order]:
    result = await db.execute(
        select(Order).where(Order.user_id == user_id, Order.checkout_key == checkout_key)
    )
    return result.scalar_one_or_none()


# =============================================================================
# CHECKOUT
# =============================================================================

async def place_order(db: AsyncSession, user: User, data: OrderCreate) -> tuple[Order, bool]:
    """
    Place an order for one restaurant.

    Returns:
        (order, created): ``created`` is False when a checkout key matched
        an order placed earlier.

    Raises:
        ValidationFailed: A food item is unknown or sold by another restaurant
    """
    user_id = user.id
    if data.checkout_key:
        existing = await _find_by_checkout_key(db, user_id, data.checkout_key)
        if existing is not None:
            logger.info(f"Checkout key replay for order #{existing.id}, re-running cart pruning")
            await _prune_cart(db, user_id, existing)
            return await load_order(db, existing.id), False

    food_ids = {item.food_item for item in data.items}
    result = await db.execute(select(FoodItem).where(FoodItem.id.in_(food_ids)))
    catalog = {food.id: food for food in result.scalars().all()}

    lines = []
    for item in data.items:
        food_item = catalog.get(item.food_item)
        if food_item is None or food_item.restaurant_id != data.restaurant:
            raise ValidationFailed(
                f"Invalid food item {item.food_item} or it does not belong to the specified restaurant."
            )

        # Mismatch is logged only; the submitted price is charged
        current_price = food_item.effective_price
        if f"{item.price:.2f}" != f"{current_price:.2f}":
            logger.warning(
                f"Price mismatch for {food_item.title}. "
                f"Cart price: {item.price}, Current price: {current_price:.2f}"
            )

        lines.append(
            OrderItem(
                food_item_id=food_item.id,
                quantity=item.quantity,
                price=item.price,
                discount=item.discount if item.discount is not None else food_item.discount,
            )
        )

    order = Order(
        user_id=user_id,
        restaurant_id=data.restaurant,
        items=lines,
        status=OrderStatus.PENDING,
        payment_method=data.payment_method,
        delivery_address=data.delivery_address or user.address or DEFAULT_DELIVERY_ADDRESS,
        checkout_key=data.checkout_key,
        order_date=utcnow(),
    )

    # Phase 1: persist the order (total is recomputed on flush)
    db.add(order)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        if not data.checkout_key:
            raise
        # A concurrent retry with the same key won the insert
        existing = await _find_by_checkout_key(db, user_id, data.checkout_key)
        if existing is None:
            raise
        await _prune_cart(db, user_id, existing)
        return await load_order(db, existing.id), False

    logger.info(f"Order #{order.id} placed by user #{user_id} - total {order.total_amount:.2f}")

    # Phase 2: drop the ordered restaurant's lines from the cart
    await _prune_cart(db, user_id, order)

    order = await load_order(db, order.id)
    queue_ledger_export(order)
    return order, True


async def _prune_cart(db: AsyncSession, user_id: int, order: Order) -> None:
    try:
        removed = await prune_cart_for_restaurant(db, user_id, order.restaurant_id)
    except Exception:
        logger.exception(
            f"Cart pruning failed after order #{order.id}; "
            f"retry the checkout with key {order.checkout_key!r} to complete it"
        )
        raise
    logger.debug(f"Removed {removed} cart lines of restaurant #{order.restaurant_id} for user #{user_id}")


# =============================================================================
# STATUS CHANGES
# =============================================================================

async def cancel_order(db: AsyncSession, user_id: int, order_id: int) -> Order:
    """Customer cancellation, allowed while the order is pending or preparing."""
    order = await load_order(db, order_id)
    if order is None:
        raise NotFoundError("Order not found.")
    if order.user_id != user_id:
        raise AuthorizationError("Access denied. You can only cancel your own orders.")
    if is_terminal(order.status):
        raise ConflictError(f"Cannot cancel an order that is already {order.status.value}.")

    order.status = OrderStatus.CANCELLED
    await db.commit()
    logger.info(f"Order #{order.id} cancelled by customer")
    return await load_order(db, order.id)


async def update_order_status(
    db: AsyncSession,
    restaurant_id: int,
    order_id: int,
    status: OrderStatus,
) -> Order:
    """Restaurant-side status change, validated against ORDER_TRANSITIONS."""
    order = await load_order(db, order_id)
    if order is None:
        raise NotFoundError("Order not found.")
    if order.restaurant_id != restaurant_id:
        raise AuthorizationError("Access denied. This order does not belong to your restaurant.")

    if order.status == status:
        return order
    if not can_transition(order.status, status):
        raise ConflictError(
            f"Cannot change order status from {order.status.value} to {status.value}."
        )

    previous = order.status
    order.status = status
    if status == OrderStatus.DELIVERED:
        order.delivered_at = utcnow()
    await db.commit()

    logger.info(f"Order #{order.id} status: {previous.value} -> {status.value}")
    return await load_order(db, order.id)


# =============================================================================
# LEDGER EXPORT
# =============================================================================

def ledger_payload(order: Order) -> dict[str, Any]:
    """Flat snapshot of an order for the Excel ledger."""
    return {
        "order_id": order.id,
        "customer_name": order.customer.name if order.customer else None,
        "customer_email": order.customer.email if order.customer else None,
        "restaurant_id": order.restaurant_id,
        "restaurant_title": order.restaurant.title if order.restaurant else None,
        "items": json.dumps([
            {
                "food_item_id": item.food_item_id,
                "title": item.food_item.title if item.food_item else None,
                "quantity": item.quantity,
                "price": item.price,
                "discount": item.discount,
            }
            for item in order.items
        ]),
        "total_amount": order.total_amount,
        "payment_method": order.payment_method.value,
        "delivery_address": order.delivery_address,
        "order_status": order.status.value,
        "created_at": order.order_date.isoformat(),
    }


def queue_ledger_export(order: Order) -> None:
    """Hand the order to the Celery worker; a broker outage never fails the checkout."""
    if not settings.export_orders_to_ledger:
        return
    try:
        export_order_to_ledger.delay(ledger_payload(order))
    except Exception as e:
        logger.error(f"Could not queue ledger export for order #{order.id}: {e}")
