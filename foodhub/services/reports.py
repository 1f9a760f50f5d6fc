"""
Dashboards and Reports

Counts for the three dashboards and the admin analytics reports. Reports
take an optional date range that applies only when both ends are given;
the end date is inclusive.

Author: FoodHub Team
Version: 1.0.0
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

import pandas as pd
from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from foodhub.models import (
    ApprovalState,
    Cart,
    CartItem,
    FeedbackCustomer,
    FeedbackUserToAdmin,
    FoodItem,
    Order,
    OrderItem,
    OrderStatus,
    Restaurant,
    User,
    UserRole,
)
from foodhub.schemas import (
    AdminDashboardCounts,
    ChartDataset,
    ChartResponse,
    CustomerDashboardCounts,
    MetricsResponse,
    RestaurantDashboardCounts,
    TopRestaurant,
)
from foodhub.services.site_config import get_site_config

logger = logging.getLogger(__name__)

TOP_RESTAURANTS_LIMIT = 5
RATING_VALUES = [1, 2, 3, 4, 5]


async def _count(db: AsyncSession, query) -> int:
    return (await db.execute(query)).scalar() or 0


def _date_range(start: Optional[date], end: Optional[date]) -> Optional[tuple[datetime, datetime]]:
    if start is None or end is None:
        return None
    lower = datetime.combine(start, time.min, tzinfo=timezone.utc)
    upper = datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc)
    return lower, upper


def _within(query, column, start: Optional[date], end: Optional[date]):
    bounds = _date_range(start, end)
    if bounds is None:
        return query
    return query.where(column >= bounds[0], column < bounds[1])


# =============================================================================
# DASHBOARD COUNTS
# =============================================================================

async def customer_counts(db: AsyncSession, user_id: int) -> CustomerDashboardCounts:
    items_in_cart = await _count(
        db,
        select(func.count(CartItem.id)).join(Cart, CartItem.cart_id == Cart.id).where(Cart.user_id == user_id),
    )
    pending = await _count(
        db,
        select(func.count(Order.id)).where(Order.user_id == user_id, Order.status == OrderStatus.PENDING),
    )
    delivered = await _count(
        db,
        select(func.count(Order.id)).where(Order.user_id == user_id, Order.status == OrderStatus.DELIVERED),
    )
    visited = await _count(
        db,
        select(func.count(distinct(Order.restaurant_id))).where(
            Order.user_id == user_id, Order.status == OrderStatus.DELIVERED
        ),
    )
    return CustomerDashboardCounts(
        items_in_cart=items_in_cart,
        pending_orders=pending,
        delivered_orders=delivered,
        restaurants_visited=visited,
    )


async def restaurant_counts(db: AsyncSession, restaurant: Restaurant) -> RestaurantDashboardCounts:
    def by_status(status: OrderStatus):
        return select(func.count(Order.id)).where(
            Order.restaurant_id == restaurant.id, Order.status == status
        )

    return RestaurantDashboardCounts(
        total_menu_items=await _count(
            db, select(func.count(FoodItem.id)).where(FoodItem.restaurant_id == restaurant.id)
        ),
        pending_orders_count=await _count(db, by_status(OrderStatus.PENDING)),
        delivered_orders_count=await _count(db, by_status(OrderStatus.DELIVERED)),
        cancelled_orders_count=await _count(db, by_status(OrderStatus.CANCELLED)),
        average_rating=restaurant.average_rating,
    )


async def admin_counts(db: AsyncSession) -> AdminDashboardCounts:
    config = await get_site_config(db)
    return AdminDashboardCounts(
        total_users=await _count(db, select(func.count(User.id))),
        total_restaurants=await _count(db, select(func.count(Restaurant.id))),
        total_orders=await _count(db, select(func.count(Order.id))),
        total_food_items=await _count(db, select(func.count(FoodItem.id))),
        pending_approvals=await _count(
            db,
            select(func.count(User.id)).where(
                User.user_type != UserRole.CUSTOMER,
                User.approval == ApprovalState.PENDING,
            ),
        ),
        popular_restaurants_count=len(config.promoted_restaurant_ids or []),
        total_feedback_to_admin_count=await _count(db, select(func.count(FeedbackUserToAdmin.id))),
    )


# =============================================================================
# REPORTS
# =============================================================================

async def order_metrics(db: AsyncSession, start: Optional[date] = None, end: Optional[date] = None) -> MetricsResponse:
    """Revenue of delivered orders, mean delivery time in minutes and cancellation rate (%)."""
    delivered_query = _within(
        select(Order.total_amount, Order.order_date, Order.delivered_at)
        .where(Order.status == OrderStatus.DELIVERED),
        Order.order_date, start, end,
    )
    delivered = (await db.execute(delivered_query)).all()
    total_revenue = round(sum(row.total_amount for row in delivered), 2)

    durations = [
        (row.delivered_at - row.order_date).total_seconds() / 60
        for row in delivered
        if row.delivered_at is not None and row.order_date is not None
    ]
    average_delivery_time = round(sum(durations) / len(durations), 2) if durations else None

    total = await _count(db, _within(select(func.count(Order.id)), Order.order_date, start, end))
    cancelled = await _count(
        db,
        _within(
            select(func.count(Order.id)).where(Order.status == OrderStatus.CANCELLED),
            Order.order_date, start, end,
        ),
    )
    cancellation_rate = round(cancelled / total * 100, 2) if total else 0.0

    return MetricsResponse(
        total_revenue=total_revenue,
        average_delivery_time=average_delivery_time,
        cancellation_rate=cancellation_rate,
    )


async def order_trend(db: AsyncSession, start: Optional[date] = None, end: Optional[date] = None) -> ChartResponse:
    """Orders per calendar day (UTC), ascending."""
    query = _within(select(Order.order_date), Order.order_date, start, end)
    order_dates = (await db.execute(query)).scalars().all()

    labels, data = [], []
    if order_dates:
        df = pd.DataFrame({"order_date": pd.to_datetime(order_dates, utc=True)})
        per_day = df.groupby(df["order_date"].dt.strftime("%Y-%m-%d")).size().sort_index()
        labels = per_day.index.tolist()
        data = [int(count) for count in per_day.tolist()]

    return ChartResponse(
        labels=labels,
        datasets=[ChartDataset(label="Number of Orders", data=data)],
    )


async def top_restaurants(
    db: AsyncSession,
    start: Optional[date] = None,
    end: Optional[date] = None,
    limit: int = TOP_RESTAURANTS_LIMIT,
) -> list[TopRestaurant]:
    """Restaurants ranked by delivered orders; unrated restaurants show rating 0."""
    order_count = func.count(Order.id).label("orders")
    query = _within(
        select(Restaurant.id, Restaurant.title, Restaurant.average_rating, order_count)
        .join(Order, Order.restaurant_id == Restaurant.id)
        .where(Order.status == OrderStatus.DELIVERED)
        .group_by(Restaurant.id, Restaurant.title, Restaurant.average_rating)
        .order_by(order_count.desc(), Restaurant.id)
        .limit(limit),
        Order.order_date, start, end,
    )
    rows = (await db.execute(query)).all()

    return [
        TopRestaurant(
            rank=index,
            restaurant_id=row.id,
            name=row.title,
            orders=row.orders,
            rating=row.average_rating or 0,
        )
        for index, row in enumerate(rows, start=1)
    ]


async def category_popularity(db: AsyncSession, start: Optional[date] = None, end: Optional[date] = None) -> ChartResponse:
    """Sum of ordered quantities per food category, most popular first."""
    quantity = func.sum(OrderItem.quantity).label("quantity")
    query = _within(
        select(FoodItem.category, quantity)
        .join(OrderItem, OrderItem.food_item_id == FoodItem.id)
        .join(Order, OrderItem.order_id == Order.id)
        .group_by(FoodItem.category)
        .order_by(quantity.desc(), FoodItem.category),
        Order.order_date, start, end,
    )
    rows = (await db.execute(query)).all()

    return ChartResponse(
        labels=[row.category for row in rows],
        datasets=[ChartDataset(label="Items Ordered", data=[int(row.quantity) for row in rows])],
    )


async def rating_distribution(db: AsyncSession, start: Optional[date] = None, end: Optional[date] = None) -> ChartResponse:
    """Number of ratings for each star value 1..5, zero-filled."""
    query = _within(
        select(FeedbackCustomer.rating, func.count(FeedbackCustomer.id))
        .group_by(FeedbackCustomer.rating),
        FeedbackCustomer.created_at, start, end,
    )
    counts = {rating: count for rating, count in (await db.execute(query)).all()}

    return ChartResponse(
        labels=[str(r) for r in RATING_VALUES],
        datasets=[ChartDataset(label="Number of Ratings", data=[counts.get(r, 0) for r in RATING_VALUES])],
    )
