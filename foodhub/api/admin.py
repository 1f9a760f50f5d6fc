"""
Admin endpoints: accounts, restaurants, catalog configuration, messages
and reports.

All routes require an accepted admin account.
"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from foodhub.api.deps import require_admin
from foodhub.core.config import get_settings
from foodhub.database import get_db
from foodhub.models import ApprovalState, FeedbackStatus, User
from foodhub.schemas import (
    AdminBroadcastCreate,
    AdminDashboardCounts,
    BroadcastSent,
    CategoriesResponse,
    CategoryCreate,
    CategoryRename,
    ChartResponse,
    FeedbackAdminResponse,
    FeedbackCustomerResponse,
    FeedbackRestaurantResponse,
    FeedbackStatusUpdate,
    FeedbackUserToAdminResponse,
    LedgerResponse,
    MessageResponse,
    MetricsResponse,
    OrderResponse,
    ProfileResponse,
    ProfileUpdate,
    PromotedRestaurantsResponse,
    PromotedRestaurantsUpdate,
    RestaurantWithOwner,
    TopRestaurant,
    UserSummary,
)
from foodhub.services import accounts, catalog, messaging, orders, ratings, reports, site_config
from foodhub.services.ledger import get_order_ledger

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(
    prefix="/api/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)


@router.get("/dashboard-counts", response_model=AdminDashboardCounts)
async def dashboard_counts(db: AsyncSession = Depends(get_db)) -> AdminDashboardCounts:
    return await reports.admin_counts(db)


# =============================================================================
# ACCOUNTS
# =============================================================================

@router.get("/users", response_model=list[UserSummary])
async def list_users(db: AsyncSession = Depends(get_db)) -> list[UserSummary]:
    return [UserSummary.model_validate(u) for u in await accounts.list_users(db)]


@router.put("/users/{user_id}/approve", response_model=ProfileResponse)
async def approve_user(user_id: int, db: AsyncSession = Depends(get_db)) -> ProfileResponse:
    user = await accounts.set_approval(db, user_id, ApprovalState.ACCEPTED)
    return ProfileResponse(message="User approved successfully!", user=UserSummary.model_validate(user))


@router.put("/users/{user_id}/reject", response_model=ProfileResponse)
async def reject_user(user_id: int, db: AsyncSession = Depends(get_db)) -> ProfileResponse:
    user = await accounts.set_approval(db, user_id, ApprovalState.REJECTED)
    return ProfileResponse(message="User rejected.", user=UserSummary.model_validate(user))


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    try:
        await accounts.delete_user(db, admin, user_id)
        return MessageResponse(message="User deleted successfully!")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error deleting user #{user_id}: {e}")
        raise HTTPException(status_code=500, detail="Server error deleting user")


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(admin: User = Depends(require_admin)) -> ProfileResponse:
    return ProfileResponse(user=UserSummary.model_validate(admin))


@router.put("/profile", response_model=ProfileResponse)
async def update_profile(
    data: ProfileUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ProfileResponse:
    admin = await accounts.update_profile(db, admin, name=data.name, email=data.email)
    return ProfileResponse(message="Profile updated successfully!", user=UserSummary.model_validate(admin))


# =============================================================================
# RESTAURANTS & ORDERS
# =============================================================================

@router.get("/restaurants", response_model=list[RestaurantWithOwner])
async def list_restaurants(db: AsyncSession = Depends(get_db)) -> list[RestaurantWithOwner]:
    restaurants = await catalog.list_restaurants_with_owner(db)
    return [RestaurantWithOwner.model_validate(r) for r in restaurants]


@router.delete("/restaurants/{restaurant_id}", response_model=MessageResponse)
async def delete_restaurant(restaurant_id: int, db: AsyncSession = Depends(get_db)) -> MessageResponse:
    try:
        await catalog.delete_restaurant_cascade(db, restaurant_id)
        await db.commit()
        return MessageResponse(message="Restaurant and associated data deleted successfully!")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error deleting restaurant #{restaurant_id}: {e}")
        raise HTTPException(status_code=500, detail="Server error deleting restaurant")


@router.get("/orders", response_model=list[OrderResponse])
async def list_all_orders(db: AsyncSession = Depends(get_db)) -> list[OrderResponse]:
    return [OrderResponse.model_validate(o) for o in await orders.list_orders(db)]


# =============================================================================
# CATEGORIES & PROMOTIONS
# =============================================================================

@router.get("/categories", response_model=CategoriesResponse)
async def list_categories(db: AsyncSession = Depends(get_db)) -> CategoriesResponse:
    return CategoriesResponse(categories=await site_config.list_categories(db))


@router.post("/categories", response_model=CategoriesResponse, status_code=status.HTTP_201_CREATED)
async def add_category(data: CategoryCreate, db: AsyncSession = Depends(get_db)) -> CategoriesResponse:
    categories = await site_config.add_category(db, data.name)
    return CategoriesResponse(message="Category added successfully!", categories=categories)


@router.put("/categories/{old_name}", response_model=CategoriesResponse)
async def rename_category(
    old_name: str,
    data: CategoryRename,
    db: AsyncSession = Depends(get_db),
) -> CategoriesResponse:
    categories = await site_config.rename_category(db, old_name, data.new_name)
    return CategoriesResponse(message="Category updated successfully!", categories=categories)


@router.delete("/categories/{name}", response_model=CategoriesResponse)
async def delete_category(name: str, db: AsyncSession = Depends(get_db)) -> CategoriesResponse:
    categories = await site_config.delete_category(db, name)
    return CategoriesResponse(message="Category deleted successfully!", categories=categories)


@router.get("/promoted-restaurants", response_model=PromotedRestaurantsResponse)
async def get_promoted_restaurants(db: AsyncSession = Depends(get_db)) -> PromotedRestaurantsResponse:
    promoted = await site_config.list_promoted_restaurants(db)
    return PromotedRestaurantsResponse(promoted_restaurants=promoted)


@router.put("/promoted-restaurants", response_model=PromotedRestaurantsResponse)
async def set_promoted_restaurants(
    data: PromotedRestaurantsUpdate,
    db: AsyncSession = Depends(get_db),
) -> PromotedRestaurantsResponse:
    promoted = await site_config.set_promoted_restaurants(db, data.restaurant_ids)
    return PromotedRestaurantsResponse(
        message="Promoted restaurants updated successfully!",
        promoted_restaurants=promoted,
    )


# =============================================================================
# FEEDBACK & BROADCASTS
# =============================================================================

@router.get("/feedbacks/customer", response_model=list[FeedbackCustomerResponse])
async def list_customer_feedback(db: AsyncSession = Depends(get_db)) -> list[FeedbackCustomerResponse]:
    return [FeedbackCustomerResponse.model_validate(f) for f in await ratings.list_feedback(db)]


@router.delete("/feedbacks/customer/{feedback_id}", response_model=MessageResponse)
async def delete_customer_feedback(feedback_id: int, db: AsyncSession = Depends(get_db)) -> MessageResponse:
    await ratings.delete_rating(db, feedback_id)
    return MessageResponse(message="Feedback deleted successfully!")


@router.get("/feedbacks/restaurant", response_model=list[FeedbackRestaurantResponse])
async def list_restaurant_feedback(db: AsyncSession = Depends(get_db)) -> list[FeedbackRestaurantResponse]:
    messages = await messaging.list_restaurant_messages(db)
    return [FeedbackRestaurantResponse.model_validate(m) for m in messages]


@router.put("/feedbacks/restaurant/{feedback_id}/resolve", response_model=MessageResponse)
async def resolve_restaurant_feedback(
    feedback_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    await messaging.update_restaurant_message_status(db, feedback_id, FeedbackStatus.RESOLVED, admin.id)
    return MessageResponse(message="Feedback marked as resolved successfully!")


@router.put("/feedbacks/restaurant/{feedback_id}/status", response_model=MessageResponse)
async def update_restaurant_feedback_status(
    feedback_id: int,
    data: FeedbackStatusUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    await messaging.update_restaurant_message_status(db, feedback_id, data.status, admin.id)
    return MessageResponse(message=f"Feedback status updated to {data.status.value} successfully!")


@router.get("/feedback/user", response_model=list[FeedbackUserToAdminResponse])
async def list_user_feedback(db: AsyncSession = Depends(get_db)) -> list[FeedbackUserToAdminResponse]:
    messages = await messaging.list_user_messages(db)
    return [FeedbackUserToAdminResponse.model_validate(m) for m in messages]


@router.put("/feedback/user/{feedback_id}/status", response_model=MessageResponse)
async def update_user_feedback_status(
    feedback_id: int,
    data: FeedbackStatusUpdate,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    await messaging.update_user_message_status(db, feedback_id, data.status)
    return MessageResponse(message=f"Feedback status updated to {data.status.value} successfully!")


@router.get("/feedbacks/admin", response_model=list[FeedbackAdminResponse])
async def list_broadcasts(db: AsyncSession = Depends(get_db)) -> list[FeedbackAdminResponse]:
    return [FeedbackAdminResponse.model_validate(b) for b in await messaging.list_broadcasts(db)]


@router.post("/feedbacks/admin/send", response_model=BroadcastSent, status_code=status.HTTP_201_CREATED)
async def send_broadcast(
    data: AdminBroadcastCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> BroadcastSent:
    try:
        broadcast = await messaging.send_broadcast(db, admin.id, data)
        return BroadcastSent(message="Feedback sent successfully!", feedback=broadcast)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error sending admin broadcast: {e}")
        raise HTTPException(status_code=500, detail="Server error sending feedback.")


# =============================================================================
# REPORTS
# =============================================================================

@router.get("/reports/metrics", response_model=MetricsResponse)
async def report_metrics(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_db),
) -> MetricsResponse:
    return await reports.order_metrics(db, start_date, end_date)


@router.get("/reports/order-trend", response_model=ChartResponse)
async def report_order_trend(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_db),
) -> ChartResponse:
    return await reports.order_trend(db, start_date, end_date)


@router.get("/reports/top-restaurants", response_model=list[TopRestaurant])
async def report_top_restaurants(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_db),
) -> list[TopRestaurant]:
    return await reports.top_restaurants(db, start_date, end_date)


@router.get("/reports/category-popularity", response_model=ChartResponse)
async def report_category_popularity(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_db),
) -> ChartResponse:
    return await reports.category_popularity(db, start_date, end_date)


@router.get("/reports/rating-distribution", response_model=ChartResponse)
async def report_rating_distribution(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_db),
) -> ChartResponse:
    return await reports.rating_distribution(db, start_date, end_date)


@router.get("/reports/ledger", response_model=LedgerResponse)
async def report_ledger() -> LedgerResponse:
    """Rows exported to the Excel ledger by the background worker."""
    rows = get_order_ledger().get_all_orders()
    return LedgerResponse(total=len(rows), orders=rows)
