"""
Pydantic Schemas for Request/Response Validation

JSON bodies use camelCase field names; Python code uses snake_case and the
alias generator bridges the two. Every schema reads ORM objects directly
(``from_attributes``), so routes can return models loaded with their
relationships.

Author: FoodHub Team
Version: 1.0.0
"""

import re
from datetime import datetime
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from foodhub.models import (
    AnnouncementType,
    ApprovalState,
    FeedbackStatus,
    OrderStatus,
    PaymentMethod,
    ReceiverRole,
    UserRole,
)

EMAIL_PATTERN = re.compile(r"^[\w\.\+-]+@[\w\.-]+\.\w+$")


def _normalize_email(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip().lower()
    if not EMAIL_PATTERN.match(v):
        raise ValueError("Please enter a valid email")
    return v


class APIModel(BaseModel):
    """Base schema: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(APIModel):
    message: str


# =============================================================================
# ACCOUNTS
# =============================================================================

class RegisterRequest(APIModel):
    """Request schema for creating an account."""
    name: str = Field(..., min_length=1, max_length=100, examples=["Jane Doe"])
    email: str = Field(..., examples=["jane@example.com"])
    password: str = Field(..., min_length=6, max_length=128)
    user_type: UserRole = Field(default=UserRole.CUSTOMER, examples=["customer"])
    address: str = Field(default="", max_length=200)
    phone: str = Field(default="", max_length=20)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)


class LoginRequest(APIModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class UserBrief(APIModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None


class UserSummary(UserBrief):
    """Account as returned to clients; the password hash is never included."""
    user_type: UserRole
    approval: ApprovalState
    address: Optional[str] = None
    created_at: Optional[datetime] = None


class AuthResponse(APIModel):
    message: str
    user: UserSummary
    token: str


class ProfileUpdate(APIModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = None
    address: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, max_length=20)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_email(v)


class ProfileResponse(APIModel):
    message: Optional[str] = None
    user: UserSummary


# =============================================================================
# RESTAURANTS
# =============================================================================

class RestaurantRef(APIModel):
    id: int
    title: str


class RestaurantBrief(RestaurantRef):
    address: Optional[str] = None
    image: Optional[str] = None
    average_rating: Optional[float] = None


class RestaurantResponse(RestaurantBrief):
    owner_id: int
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class RestaurantWithOwner(RestaurantResponse):
    owner: Optional[UserBrief] = None


class RestaurantCreate(APIModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    address: str = Field(..., min_length=1, max_length=200)
    image: Optional[str] = Field(None, max_length=500)


class RestaurantUpdate(APIModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    address: Optional[str] = Field(None, min_length=1, max_length=200)
    image: Optional[str] = Field(None, max_length=500)


class OwnerUpdate(APIModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_email(v)


class RestaurantProfileCreate(APIModel):
    restaurant: RestaurantCreate
    owner: Optional[OwnerUpdate] = None


class RestaurantProfileUpdate(APIModel):
    restaurant: RestaurantUpdate = Field(default_factory=RestaurantUpdate)
    owner: Optional[OwnerUpdate] = None


class RestaurantProfileResponse(APIModel):
    message: Optional[str] = None
    restaurant: Optional[RestaurantResponse] = None
    owner: UserSummary


class RestaurantIdentity(APIModel):
    restaurant_id: Optional[int] = None
    restaurant_title: Optional[str] = None
    restaurant_exists: bool


# =============================================================================
# FOOD ITEMS
# =============================================================================

class FoodItemRef(APIModel):
    id: int
    title: str
    image: Optional[str] = None
    category: Optional[str] = None


class FoodItemCreate(APIModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    image: Optional[str] = Field(None, max_length=500)
    category: str = Field(..., min_length=1, max_length=100)
    price: float = Field(..., ge=0, examples=[12.5])
    discount: float = Field(default=0, ge=0, le=100)


class FoodItemUpdate(APIModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    image: Optional[str] = Field(None, max_length=500)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    price: Optional[float] = Field(None, ge=0)
    discount: Optional[float] = Field(None, ge=0, le=100)


class FoodItemResponse(APIModel):
    id: int
    restaurant_id: int
    title: str
    description: Optional[str] = None
    image: Optional[str] = None
    category: str
    price: float
    discount: float
    rating: Optional[float] = None
    created_at: Optional[datetime] = None


class CatalogFoodItem(FoodItemResponse):
    """Food item as listed to customers, with its restaurant."""
    restaurant: Optional[RestaurantBrief] = None


# =============================================================================
# CART
# =============================================================================

class CartItemAdd(APIModel):
    food_item_id: int
    quantity: int = Field(..., ge=1, le=99)
    price_at_time_of_addition: float = Field(..., ge=0)
    restaurant_id: int


class CartItemUpdate(APIModel):
    quantity: int = Field(..., ge=1, le=99)


class CartFoodItem(APIModel):
    id: int
    title: str
    price: float
    image: Optional[str] = None
    discount: float = 0
    restaurant_title: Optional[str] = None


class CartLine(APIModel):
    id: int
    food_item_id: Optional[int] = None
    restaurant_id: Optional[int] = None
    quantity: int
    price_at_time_of_addition: float
    added_at: datetime
    food_item: Optional[CartFoodItem] = None
    restaurant: Optional[RestaurantRef] = None


class CartResponse(APIModel):
    id: int
    user_id: int
    items: List[CartLine] = []
    updated_at: Optional[datetime] = None


class CartMutationResponse(APIModel):
    message: str
    cart_item_count: int


# =============================================================================
# ORDERS
# =============================================================================

class OrderItemCreate(APIModel):
    """Single line of an order request."""
    food_item: int
    quantity: int = Field(..., ge=1, le=99, examples=[2])
    price: float = Field(..., ge=0, examples=[9.0])
    discount: Optional[float] = Field(None, ge=0, le=100)


class OrderCreate(APIModel):
    """Request schema for placing an order with one restaurant."""
    restaurant: int
    items: List[OrderItemCreate] = Field(..., min_length=1)
    payment_method: PaymentMethod = Field(default=PaymentMethod.COD)
    delivery_address: Optional[str] = Field(None, max_length=200)

    # Retry key: posting the same key again returns the existing order
    checkout_key: Optional[str] = Field(None, min_length=1, max_length=64)


class OrderLine(APIModel):
    id: int
    food_item_id: Optional[int] = None
    quantity: int
    price: float
    discount: float
    food_item: Optional[FoodItemRef] = None


class OrderResponse(APIModel):
    """Response schema for a single order."""
    id: int
    user_id: int
    restaurant_id: int
    total_amount: float
    status: OrderStatus
    payment_method: PaymentMethod
    delivery_address: Optional[str] = None
    checkout_key: Optional[str] = None
    order_date: datetime
    delivered_at: Optional[datetime] = None
    items: List[OrderLine] = []
    restaurant: Optional[RestaurantBrief] = None
    customer: Optional[UserBrief] = None


class OrderActionResponse(APIModel):
    message: str
    order: OrderResponse


class OrderStatusUpdate(APIModel):
    status: OrderStatus


# =============================================================================
# FEEDBACK & MESSAGES
# =============================================================================

class FeedbackCreate(APIModel):
    """A customer's rating of a restaurant."""
    restaurant: int
    order: Optional[int] = None
    food_item: Optional[int] = None
    rating: int = Field(..., ge=1, le=5)
    message: str = Field(default="", max_length=500)


class FeedbackCustomerResponse(APIModel):
    id: int
    user_id: int
    receiver_id: int
    order_id: Optional[int] = None
    food_item_id: Optional[int] = None
    rating: int
    message: str
    created_at: datetime
    user: Optional[UserBrief] = None
    receiver: Optional[RestaurantRef] = None
    food_item: Optional[FoodItemRef] = None


class FeedbackSubmitResponse(APIModel):
    message: str
    feedback: FeedbackCustomerResponse


class AdminMessageCreate(APIModel):
    message: str = Field(..., min_length=1, max_length=500)


class FeedbackRestaurantResponse(APIModel):
    id: int
    restaurant_id: int
    admin_id: Optional[int] = None
    message: str
    status: FeedbackStatus
    created_at: datetime
    restaurant: Optional[RestaurantRef] = None


class FeedbackUserToAdminResponse(APIModel):
    id: int
    sender_id: int
    message: str
    status: FeedbackStatus
    created_at: datetime
    sender: Optional[UserBrief] = None


class UserMessageSent(APIModel):
    message: str
    feedback: FeedbackUserToAdminResponse


class RestaurantMessageSent(APIModel):
    message: str
    feedback: FeedbackRestaurantResponse


class FeedbackStatusUpdate(APIModel):
    status: FeedbackStatus


class AdminBroadcastCreate(APIModel):
    message: str = Field(..., min_length=1, max_length=1000)
    type: AnnouncementType = Field(default=AnnouncementType.ANNOUNCEMENT)
    receiver_role: ReceiverRole
    receiver: Optional[int] = None


class FeedbackAdminResponse(APIModel):
    id: int
    admin_id: int
    receiver_role: ReceiverRole
    receiver_id: Optional[int] = None
    message: str
    type: AnnouncementType
    created_at: datetime
    receiver: Optional[UserBrief] = None


class BroadcastSent(APIModel):
    message: str
    feedback: FeedbackAdminResponse


# =============================================================================
# SITE CONFIGURATION
# =============================================================================

class CategoryCreate(APIModel):
    name: str = Field(..., max_length=100)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Category name cannot be empty")
        return v


class CategoryRename(APIModel):
    new_name: str = Field(..., max_length=100)

    @field_validator("new_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Category name cannot be empty")
        return v


class CategoriesResponse(APIModel):
    message: Optional[str] = None
    categories: List[str]


class PromotedRestaurantsUpdate(APIModel):
    restaurant_ids: List[int]


class PromotedRestaurantsResponse(APIModel):
    message: Optional[str] = None
    promoted_restaurants: List[RestaurantBrief]


# =============================================================================
# DASHBOARDS & REPORTS
# =============================================================================

class CustomerDashboardCounts(APIModel):
    items_in_cart: int
    pending_orders: int
    delivered_orders: int
    restaurants_visited: int


class RestaurantDashboardCounts(APIModel):
    total_menu_items: int
    pending_orders_count: int
    delivered_orders_count: int
    cancelled_orders_count: int
    average_rating: Optional[float] = None


class AdminDashboardCounts(APIModel):
    total_users: int
    total_restaurants: int
    total_orders: int
    total_food_items: int
    pending_approvals: int
    popular_restaurants_count: int
    total_feedback_to_admin_count: int


class MetricsResponse(APIModel):
    total_revenue: float
    average_delivery_time: Optional[float] = None
    cancellation_rate: float


class ChartDataset(APIModel):
    label: str
    data: List[Union[int, float]]


class ChartResponse(APIModel):
    """Series shaped for chart widgets."""
    labels: List[str]
    datasets: List[ChartDataset]


class TopRestaurant(APIModel):
    rank: int
    restaurant_id: int
    name: str
    orders: int
    rating: float


class LedgerResponse(APIModel):
    total: int
    orders: List[dict[str, Any]]


class HealthResponse(APIModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    timestamp: datetime
