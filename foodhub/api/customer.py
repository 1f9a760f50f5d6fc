"""
Customer endpoints: catalog browsing, cart, orders, ratings and messages.

All routes require an accepted customer account.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from foodhub.api.deps import require_customer
from foodhub.database import get_db
from foodhub.models import User
from foodhub.schemas import (
    AdminMessageCreate,
    CartItemAdd,
    CartItemUpdate,
    CartMutationResponse,
    CartResponse,
    CatalogFoodItem,
    CustomerDashboardCounts,
    FeedbackAdminResponse,
    FeedbackCreate,
    FeedbackSubmitResponse,
    FeedbackUserToAdminResponse,
    MessageResponse,
    OrderActionResponse,
    OrderCreate,
    OrderResponse,
    ProfileResponse,
    ProfileUpdate,
    PromotedRestaurantsResponse,
    RestaurantResponse,
    UserMessageSent,
    UserSummary,
)
from foodhub.services import cart as cart_service
from foodhub.services import accounts, catalog, messaging, orders, ratings, reports, site_config

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/customer",
    tags=["Customer"],
    dependencies=[Depends(require_customer)],
)


# =============================================================================
# DASHBOARD & CATALOG
# =============================================================================

@router.get("/dashboard-counts", response_model=CustomerDashboardCounts)
async def dashboard_counts(
    user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
) -> CustomerDashboardCounts:
    return await reports.customer_counts(db, user.id)


@router.get("/categories", response_model=list[str])
async def list_categories(db: AsyncSession = Depends(get_db)) -> list[str]:
    return await site_config.list_categories(db)


@router.get("/food-items", response_model=list[CatalogFoodItem])
async def list_food_items(
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    location: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> list[CatalogFoodItem]:
    """Food items, filtered by category ("all" = any), search text and restaurant location."""
    items = await catalog.list_food_items(db, category=category, search=search, location=location)
    return [CatalogFoodItem.model_validate(item) for item in items]


@router.get("/restaurants", response_model=list[RestaurantResponse])
async def list_restaurants(
    location: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> list[RestaurantResponse]:
    restaurants = await catalog.list_restaurants(db, location)
    return [RestaurantResponse.model_validate(r) for r in restaurants]


@router.get("/popular-restaurants", response_model=PromotedRestaurantsResponse)
async def popular_restaurants(db: AsyncSession = Depends(get_db)) -> PromotedRestaurantsResponse:
    promoted = await site_config.list_promoted_restaurants(db)
    return PromotedRestaurantsResponse(
        promoted_restaurants=promoted,
        message=None if promoted else "No popular restaurants configured yet.",
    )


# =============================================================================
# CART
# =============================================================================

@router.get("/cart", response_model=CartResponse)
async def get_cart(
    user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
) -> CartResponse:
    cart = await cart_service.get_or_create_cart(db, user.id)
    return cart_service.build_cart_response(cart)


@router.post("/cart/add", response_model=CartMutationResponse)
async def add_to_cart(
    data: CartItemAdd,
    user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
) -> CartMutationResponse:
    try:
        count = await cart_service.add_item(db, user.id, data)
        return CartMutationResponse(message="Item added to cart successfully!", cart_item_count=count)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error adding item to cart: {e}")
        raise HTTPException(status_code=500, detail="Server error adding item to cart.")


# Registered before /cart/{cart_item_id} so "clear" is not read as an id
@router.delete("/cart/clear", response_model=MessageResponse)
async def clear_cart(
    user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    message = await cart_service.clear_cart(db, user.id)
    return MessageResponse(message=message)


@router.put("/cart/{cart_item_id}", response_model=CartMutationResponse)
async def update_cart_item(
    cart_item_id: int,
    data: CartItemUpdate,
    user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
) -> CartMutationResponse:
    count = await cart_service.update_item_quantity(db, user.id, cart_item_id, data.quantity)
    return CartMutationResponse(message="Cart item quantity updated.", cart_item_count=count)


@router.delete("/cart/{cart_item_id}", response_model=CartMutationResponse)
async def remove_cart_item(
    cart_item_id: int,
    user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
) -> CartMutationResponse:
    count = await cart_service.remove_item(db, user.id, cart_item_id)
    return CartMutationResponse(message="Item removed from cart.", cart_item_count=count)


# =============================================================================
# ORDERS
# =============================================================================

@router.post(
    "/orders",
    response_model=OrderActionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Place an order with one restaurant",
)
async def place_order(
    data: OrderCreate,
    response: Response,
    user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
) -> OrderActionResponse:
    """
    Place an order and remove that restaurant's lines from the cart.

    Re-posting with the same ``checkoutKey`` returns the original order
    with status 200 instead of creating a second one.
    """
    try:
        order, created = await orders.place_order(db, user, data)
        if not created:
            response.status_code = status.HTTP_200_OK
            return OrderActionResponse(message="Order already placed.", order=order)
        return OrderActionResponse(message="Order placed successfully!", order=order)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error placing order: {e}")
        raise HTTPException(status_code=500, detail="Server error placing order.")


@router.get("/orders", response_model=list[OrderResponse])
async def list_my_orders(
    user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
) -> list[OrderResponse]:
    return [OrderResponse.model_validate(o) for o in await orders.list_orders(db, user_id=user.id)]


@router.put("/orders/{order_id}/cancel", response_model=OrderActionResponse)
async def cancel_order(
    order_id: int,
    user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
) -> OrderActionResponse:
    order = await orders.cancel_order(db, user.id, order_id)
    return OrderActionResponse(message="Order cancelled successfully!", order=order)


# =============================================================================
# PROFILE
# =============================================================================

@router.get("/profile", response_model=ProfileResponse)
async def get_profile(user: User = Depends(require_customer)) -> ProfileResponse:
    return ProfileResponse(user=UserSummary.model_validate(user))


@router.put("/profile", response_model=ProfileResponse)
async def update_profile(
    data: ProfileUpdate,
    user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
) -> ProfileResponse:
    user = await accounts.update_profile(
        db, user,
        name=data.name,
        email=data.email,
        address=data.address,
        phone=data.phone,
    )
    return ProfileResponse(message="Profile updated successfully!", user=UserSummary.model_validate(user))


# =============================================================================
# FEEDBACK
# =============================================================================

@router.post("/feedback", response_model=FeedbackSubmitResponse, status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    data: FeedbackCreate,
    user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
) -> FeedbackSubmitResponse:
    try:
        feedback = await ratings.submit_rating(db, user.id, data)
        return FeedbackSubmitResponse(message="Feedback submitted successfully!", feedback=feedback)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error submitting customer feedback: {e}")
        raise HTTPException(status_code=500, detail="Server error submitting feedback.")


@router.post("/feedback/admin", response_model=UserMessageSent, status_code=status.HTTP_201_CREATED)
async def send_feedback_to_admin(
    data: AdminMessageCreate,
    user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
) -> UserMessageSent:
    feedback = await messaging.send_user_message(db, user.id, data.message)
    return UserMessageSent(message="Feedback sent to admin successfully!", feedback=feedback)


@router.get("/feedback/admin-sent", response_model=list[FeedbackUserToAdminResponse])
async def list_sent_feedback(
    user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
) -> list[FeedbackUserToAdminResponse]:
    messages = await messaging.list_user_messages(db, sender_id=user.id)
    return [FeedbackUserToAdminResponse.model_validate(m) for m in messages]


@router.get("/announcements", response_model=list[FeedbackAdminResponse])
async def list_announcements(
    user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
) -> list[FeedbackAdminResponse]:
    broadcasts = await messaging.list_announcements_for(db, user)
    return [FeedbackAdminResponse.model_validate(b) for b in broadcasts]
