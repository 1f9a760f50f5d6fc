"""
SQLAlchemy Database Models

Data model for the multi-tenant ordering backend:
- Accounts with roles and approval state
- Restaurants and their menus
- Carts and orders with line items
- Ratings and cross-role messages
- The site-wide configuration row

Author: FoodHub Team
Version: 1.0.0
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Session, relationship

from foodhub.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRole(str, enum.Enum):
    """Account roles."""
    ADMIN = "admin"
    RESTAURANT = "restaurant"
    CUSTOMER = "customer"


class ApprovalState(str, enum.Enum):
    """Approval gate for non-customer accounts."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "pending"
    PREPARING = "preparing"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(str, enum.Enum):
    """How the customer pays on delivery."""
    COD = "COD"
    CARD = "Card"


class FeedbackStatus(str, enum.Enum):
    """Processing state of a message addressed to the admin."""
    NEW = "new"
    PENDING = "pending"
    RESOLVED = "resolved"


class ReceiverRole(str, enum.Enum):
    """Audience of an admin broadcast."""
    ALL_USERS = "allUsers"
    ALL_RESTAURANTS = "allRestaurants"
    SPECIFIC_USER = "specificUser"
    SPECIFIC_RESTAURANT = "specificRestaurant"


class AnnouncementType(str, enum.Enum):
    """Kind of admin broadcast."""
    ANNOUNCEMENT = "Announcement"
    WARNING = "Warning"
    INFORMATION = "Information"
    OTHER = "Other"


# =============================================================================
# ACCOUNTS
# =============================================================================

class User(Base):
    """Account of an admin, restaurant owner or customer."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    user_type = Column(Enum(UserRole), default=UserRole.CUSTOMER, nullable=False, index=True)
    approval = Column(Enum(ApprovalState), default=ApprovalState.PENDING, nullable=False, index=True)
    address = Column(String(200), nullable=False, default="")
    phone = Column(String(20), nullable=False, default="")

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<User #{self.id} - {self.email} - {self.user_type.value}>"


# =============================================================================
# CATALOG
# =============================================================================

class Restaurant(Base):
    """A restaurant, owned by exactly one restaurant-role user."""
    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    owner_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    title = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    address = Column(String(200), nullable=False)
    image = Column(
        String(500),
        nullable=False,
        default="https://placehold.co/400x300/E0E0E0/888888?text=Restaurant+Image",
    )

    # Mean of all customer ratings, None until the first rating
    average_rating = Column(Float, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    owner = relationship("User")

    def __repr__(self):
        return f"<Restaurant #{self.id} - {self.title}>"


class FoodItem(Base):
    """A menu entry of a restaurant."""
    __tablename__ = "food_items"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_food_items_price"),
        CheckConstraint("discount >= 0 AND discount <= 100", name="ck_food_items_discount"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(
        Integer,
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    image = Column(
        String(500),
        nullable=False,
        default="https://placehold.co/400x200/E0E0E0/888888?text=Food+Item",
    )
    category = Column(String(100), nullable=False, index=True)
    price = Column(Float, nullable=False)
    discount = Column(Float, nullable=False, default=0)

    # Mean of the ratings naming this item, None until the first one
    rating = Column(Float, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    restaurant = relationship("Restaurant")

    @property
    def effective_price(self) -> float:
        """Unit price after the item discount."""
        return self.price * (1 - (self.discount or 0) / 100)

    def __repr__(self):
        return f"<FoodItem #{self.id} - {self.title} - {self.price}>"


# =============================================================================
# CART
# =============================================================================

class Cart(Base):
    """The single cart of a customer; lines may span restaurants."""
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    items = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.id",
    )

    def __repr__(self):
        return f"<Cart #{self.id} - user {self.user_id}>"


class CartItem(Base):
    """
    One pending selection in a cart.

    Food item and restaurant references are nulled when their target is
    deleted, so readers must expect missing links.
    """
    __tablename__ = "cart_items"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_cart_items_quantity"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    cart_id = Column(
        Integer,
        ForeignKey("carts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    food_item_id = Column(Integer, ForeignKey("food_items.id", ondelete="SET NULL"), nullable=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id", ondelete="SET NULL"), nullable=True)
    quantity = Column(Integer, nullable=False)
    price_at_time_of_addition = Column(Float, nullable=False)
    added_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    cart = relationship("Cart", back_populates="items")
    food_item = relationship("FoodItem")
    restaurant = relationship("Restaurant")


# =============================================================================
# ORDERS
# =============================================================================

class Order(Base):
    """
    Snapshot of a checkout for a single restaurant.

    ``total_amount`` is derived from the line items and recomputed on every
    flush (see ``_recalculate_order_totals``); it is never taken from a client.
    """
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("user_id", "checkout_key", name="uq_orders_user_checkout_key"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    restaurant_id = Column(
        Integer,
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    total_amount = Column(Float, nullable=False, default=0.0)
    status = Column(
        Enum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True
    )
    payment_method = Column(Enum(PaymentMethod), default=PaymentMethod.COD, nullable=False)
    delivery_address = Column(String(200), nullable=True)

    # Client-chosen retry key; re-posting it returns this order
    checkout_key = Column(String(64), nullable=True)

    order_date = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    customer = relationship("User")
    restaurant = relationship("Restaurant")

    def calculate_total(self) -> float:
        return sum(item.price * item.quantity for item in self.items)

    def __repr__(self):
        return f"<Order #{self.id} - restaurant {self.restaurant_id} - {self.status.value}>"


class OrderItem(Base):
    """A line of an order; price is the unit price the customer was charged."""
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_order_items_quantity"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    food_item_id = Column(Integer, ForeignKey("food_items.id", ondelete="SET NULL"), nullable=True)
    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)
    discount = Column(Float, nullable=False, default=0)

    order = relationship("Order", back_populates="items")
    food_item = relationship("FoodItem")


@event.listens_for(Session, "before_flush")
def _recalculate_order_totals(session, flush_context, instances):
    """Keep Order.total_amount equal to sum(price * quantity) on every save."""
    with session.no_autoflush:
        for obj in list(session.new) + list(session.dirty):
            if isinstance(obj, Order):
                obj.total_amount = obj.calculate_total()
            elif isinstance(obj, OrderItem) and obj.order is not None:
                obj.order.total_amount = obj.order.calculate_total()


# =============================================================================
# FEEDBACK
# =============================================================================

class FeedbackCustomer(Base):
    """A customer's rating of a restaurant, optionally tied to an order and a food item."""
    __tablename__ = "feedback_customers"
    __table_args__ = (
        UniqueConstraint("user_id", "food_item_id", name="uq_feedback_customers_user_food_item"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_feedback_customers_rating"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    receiver_id = Column(
        Integer,
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="SET NULL"), nullable=True, index=True)
    food_item_id = Column(Integer, ForeignKey("food_items.id", ondelete="SET NULL"), nullable=True)
    rating = Column(Integer, nullable=False)
    message = Column(String(500), nullable=False, default="")

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    user = relationship("User")
    receiver = relationship("Restaurant")
    food_item = relationship("FoodItem")


class FeedbackRestaurant(Base):
    """Message from a restaurant to the admin."""
    __tablename__ = "feedback_restaurants"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(
        Integer,
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    admin_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    message = Column(String(500), nullable=False)
    status = Column(Enum(FeedbackStatus), default=FeedbackStatus.NEW, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    restaurant = relationship("Restaurant")


class FeedbackUserToAdmin(Base):
    """Message from any account to the admin."""
    __tablename__ = "feedback_user_to_admin"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    sender_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    message = Column(String(500), nullable=False)
    status = Column(Enum(FeedbackStatus), default=FeedbackStatus.NEW, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    sender = relationship("User")


class FeedbackAdmin(Base):
    """
    Broadcast authored by an admin.

    ``receiver_id`` always addresses a User: specific-restaurant broadcasts
    are stored against the restaurant's owner.
    """
    __tablename__ = "feedback_admin"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    admin_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    receiver_role = Column(Enum(ReceiverRole), nullable=False, index=True)
    receiver_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    message = Column(Text, nullable=False)
    type = Column(Enum(AnnouncementType), default=AnnouncementType.ANNOUNCEMENT, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    admin = relationship("User", foreign_keys=[admin_id])
    receiver = relationship("User", foreign_keys=[receiver_id])


# =============================================================================
# SITE CONFIGURATION
# =============================================================================

class SiteConfig(Base):
    """
    Site-wide configuration: category taxonomy and promoted restaurants.

    At most one row exists, addressed by ``key``. The JSON lists must be
    reassigned (not mutated in place) for changes to be persisted.
    """
    __tablename__ = "site_config"

    GLOBAL_KEY = "global"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(50), nullable=False, unique=True, default=GLOBAL_KEY)
    categories = Column(JSON, nullable=False, default=list)
    promoted_restaurant_ids = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<SiteConfig {self.key} - {len(self.categories or [])} categories>"
