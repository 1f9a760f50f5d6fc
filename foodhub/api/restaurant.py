"""
Restaurant-owner endpoints: profile, menu, incoming orders and messages.

All routes require an accepted restaurant account. Routes that act on the
restaurant itself additionally require the profile to exist.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from foodhub.api.deps import get_owned_restaurant, require_restaurant, require_restaurant_owner
from foodhub.core.exceptions import AuthorizationError
from foodhub.database import get_db
from foodhub.models import Restaurant, User
from foodhub.schemas import (
    AdminMessageCreate,
    FeedbackAdminResponse,
    FeedbackCustomerResponse,
    FeedbackRestaurantResponse,
    FoodItemCreate,
    FoodItemResponse,
    FoodItemUpdate,
    MessageResponse,
    OrderActionResponse,
    OrderResponse,
    OrderStatusUpdate,
    RestaurantDashboardCounts,
    RestaurantIdentity,
    RestaurantMessageSent,
    RestaurantProfileCreate,
    RestaurantProfileResponse,
    RestaurantProfileUpdate,
    RestaurantResponse,
    UserSummary,
)
from foodhub.services import accounts, catalog, messaging, orders, ratings, reports, site_config

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/restaurant",
    tags=["Restaurant"],
    dependencies=[Depends(require_restaurant_owner)],
)


@router.get("/my-restaurant-id", response_model=RestaurantIdentity)
async def my_restaurant_id(
    restaurant: Optional[Restaurant] = Depends(get_owned_restaurant),
) -> RestaurantIdentity:
    """Report whether the caller has created a restaurant yet."""
    if restaurant is None:
        return RestaurantIdentity(restaurant_exists=False)
    return RestaurantIdentity(
        restaurant_id=restaurant.id,
        restaurant_title=restaurant.title,
        restaurant_exists=True,
    )


@router.get("/categories", response_model=list[str])
async def list_categories(db: AsyncSession = Depends(get_db)) -> list[str]:
    return await site_config.list_categories(db)


@router.get("/dashboard-counts", response_model=RestaurantDashboardCounts)
async def dashboard_counts(
    restaurant: Restaurant = Depends(require_restaurant),
    db: AsyncSession = Depends(get_db),
) -> RestaurantDashboardCounts:
    return await reports.restaurant_counts(db, restaurant)


# =============================================================================
# MENU
# =============================================================================

@router.get("/items", response_model=list[FoodItemResponse])
async def list_items(
    restaurant: Restaurant = Depends(require_restaurant),
    db: AsyncSession = Depends(get_db),
) -> list[FoodItemResponse]:
    return [FoodItemResponse.model_validate(f) for f in await catalog.list_menu(db, restaurant.id)]


@router.post("/items", response_model=FoodItemResponse, status_code=status.HTTP_201_CREATED)
async def create_item(
    data: FoodItemCreate,
    restaurant: Restaurant = Depends(require_restaurant),
    db: AsyncSession = Depends(get_db),
) -> FoodItemResponse:
    try:
        food_item = await catalog.create_food_item(db, restaurant.id, data)
        return FoodItemResponse.model_validate(food_item)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error adding food item: {e}")
        raise HTTPException(status_code=500, detail="Server error adding food item.")


@router.put("/items/{item_id}", response_model=FoodItemResponse)
async def update_item(
    item_id: int,
    data: FoodItemUpdate,
    restaurant: Restaurant = Depends(require_restaurant),
    db: AsyncSession = Depends(get_db),
) -> FoodItemResponse:
    food_item = await catalog.update_food_item(db, restaurant.id, item_id, data)
    return FoodItemResponse.model_validate(food_item)


@router.delete("/items/{item_id}", response_model=MessageResponse)
async def delete_item(
    item_id: int,
    restaurant: Restaurant = Depends(require_restaurant),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    await catalog.delete_food_item(db, restaurant.id, item_id)
    return MessageResponse(message="Food item removed successfully!")


# =============================================================================
# ORDERS
# =============================================================================

@router.get("/orders", response_model=list[OrderResponse])
async def list_incoming_orders(
    restaurant: Restaurant = Depends(require_restaurant),
    db: AsyncSession = Depends(get_db),
) -> list[OrderResponse]:
    return [
        OrderResponse.model_validate(o)
        for o in await orders.list_orders(db, restaurant_id=restaurant.id)
    ]


@router.put("/orders/{order_id}/status", response_model=OrderActionResponse)
async def update_order_status(
    order_id: int,
    data: OrderStatusUpdate,
    restaurant: Restaurant = Depends(require_restaurant),
    db: AsyncSession = Depends(get_db),
) -> OrderActionResponse:
    try:
        order = await orders.update_order_status(db, restaurant.id, order_id, data.status)
        return OrderActionResponse(message=f"Order status updated to {order.status.value}.", order=order)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error updating order status: {e}")
        raise HTTPException(status_code=500, detail="Server error updating order status.")


# =============================================================================
# FEEDBACK
# =============================================================================

@router.get("/feedback/customer", response_model=list[FeedbackCustomerResponse])
async def list_customer_feedback(
    restaurant: Restaurant = Depends(require_restaurant),
    db: AsyncSession = Depends(get_db),
) -> list[FeedbackCustomerResponse]:
    feedback = await ratings.list_feedback(db, restaurant_id=restaurant.id)
    return [FeedbackCustomerResponse.model_validate(f) for f in feedback]


@router.get("/feedback/admin-sent", response_model=list[FeedbackRestaurantResponse])
async def list_sent_feedback(
    restaurant: Restaurant = Depends(require_restaurant),
    db: AsyncSession = Depends(get_db),
) -> list[FeedbackRestaurantResponse]:
    messages = await messaging.list_restaurant_messages(db, restaurant_id=restaurant.id)
    return [FeedbackRestaurantResponse.model_validate(m) for m in messages]


@router.post("/feedback/admin", response_model=RestaurantMessageSent, status_code=status.HTTP_201_CREATED)
async def send_feedback_to_admin(
    data: AdminMessageCreate,
    restaurant: Restaurant = Depends(require_restaurant),
    db: AsyncSession = Depends(get_db),
) -> RestaurantMessageSent:
    feedback = await messaging.send_restaurant_message(db, restaurant.id, data.message)
    return RestaurantMessageSent(message="Feedback sent to admin successfully!", feedback=feedback)


@router.get("/announcements", response_model=list[FeedbackAdminResponse])
async def list_announcements(
    user: User = Depends(require_restaurant_owner),
    db: AsyncSession = Depends(get_db),
) -> list[FeedbackAdminResponse]:
    broadcasts = await messaging.list_announcements_for(db, user)
    return [FeedbackAdminResponse.model_validate(b) for b in broadcasts]


# =============================================================================
# PROFILE
# =============================================================================

@router.get("/profile", response_model=RestaurantProfileResponse)
async def get_profile(
    user: User = Depends(require_restaurant_owner),
    restaurant: Optional[Restaurant] = Depends(get_owned_restaurant),
) -> RestaurantProfileResponse:
    return RestaurantProfileResponse(
        restaurant=RestaurantResponse.model_validate(restaurant) if restaurant else None,
        owner=UserSummary.model_validate(user),
    )


@router.post("/profile", response_model=RestaurantProfileResponse, status_code=status.HTTP_201_CREATED)
async def create_profile(
    data: RestaurantProfileCreate,
    user: User = Depends(require_restaurant_owner),
    db: AsyncSession = Depends(get_db),
) -> RestaurantProfileResponse:
    """Create the restaurant, optionally updating the owner's name and email."""
    try:
        if data.owner is not None:
            await accounts.update_profile(
                db, user, name=data.owner.name, email=data.owner.email, commit=False
            )
        restaurant = await catalog.create_restaurant(db, user, data.restaurant)
        await accounts.save_changes(db, "You have already created a restaurant profile.")

        return RestaurantProfileResponse(
            message="Restaurant profile created successfully!",
            restaurant=RestaurantResponse.model_validate(restaurant),
            owner=UserSummary.model_validate(user),
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error creating restaurant profile: {e}")
        raise HTTPException(status_code=500, detail="Server error creating restaurant profile.")


@router.put("/profile", response_model=RestaurantProfileResponse)
async def update_profile(
    data: RestaurantProfileUpdate,
    user: User = Depends(require_restaurant_owner),
    restaurant: Optional[Restaurant] = Depends(get_owned_restaurant),
    db: AsyncSession = Depends(get_db),
) -> RestaurantProfileResponse:
    if restaurant is None:
        raise AuthorizationError("No restaurant profile found to update. Please create one first.")

    try:
        if data.owner is not None:
            await accounts.update_profile(
                db, user, name=data.owner.name, email=data.owner.email, commit=False
            )
        catalog.apply_restaurant_update(restaurant, data.restaurant)
        await accounts.save_changes(db, "Email already registered by another user.")

        return RestaurantProfileResponse(
            message="Restaurant profile updated successfully!",
            restaurant=RestaurantResponse.model_validate(restaurant),
            owner=UserSummary.model_validate(user),
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error updating restaurant profile: {e}")
        raise HTTPException(status_code=500, detail="Server error updating restaurant profile.")
