"""
Account Service

Registration, login, profile updates, approval decisions and account
deletion with the cleanup each role needs.
"""

import logging
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from foodhub.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationFailed
from foodhub.core.security import hash_password, verify_password
from foodhub.models import (
    ApprovalState,
    Cart,
    CartItem,
    FeedbackAdmin,
    FeedbackCustomer,
    FeedbackRestaurant,
    FeedbackUserToAdmin,
    Order,
    OrderItem,
    User,
    UserRole,
)
from foodhub.schemas import RegisterRequest
from foodhub.services.catalog import delete_restaurant_cascade, get_restaurant_by_owner
from foodhub.services.ratings import refresh_aggregates

logger = logging.getLogger(__name__)


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def register_user(db: AsyncSession, data: RegisterRequest) -> User:
    """Create an account; customers are accepted at once, other roles wait for an admin."""
    if await get_user_by_email(db, data.email) is not None:
        raise ConflictError("User already exists")

    user = User(
        name=data.name.strip(),
        email=data.email,
        password_hash=hash_password(data.password),
        user_type=data.user_type,
        approval=ApprovalState.ACCEPTED if data.user_type == UserRole.CUSTOMER else ApprovalState.PENDING,
        address=data.address.strip(),
        phone=data.phone.strip(),
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("User already exists")

    logger.info(f"Registered {user.user_type.value} account #{user.id} ({user.approval.value})")
    return user


async def authenticate(db: AsyncSession, email: str, password: str) -> User:
    """
    Check credentials and the approval gate.

    Raises:
        ValidationFailed: Unknown email or wrong password ("Invalid Credentials")
        AuthorizationError: Account pending or rejected
    """
    user = await get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        raise ValidationFailed("Invalid Credentials")

    if user.approval == ApprovalState.PENDING:
        raise AuthorizationError("Your account is pending approval by an admin.")
    if user.approval == ApprovalState.REJECTED:
        raise AuthorizationError("Your account registration was rejected by an admin.")
    return user


async def update_profile(
    db: AsyncSession,
    user: User,
    name: Optional[str] = None,
    email: Optional[str] = None,
    address: Optional[str] = None,
    phone: Optional[str] = None,
    commit: bool = True,
) -> User:
    """Apply the given fields; a new email must not belong to someone else."""
    if email and email != user.email:
        if await get_user_by_email(db, email) is not None:
            raise ConflictError("Email already registered by another user.")
        user.email = email
    if name:
        user.name = name.strip()
    if address is not None:
        user.address = address.strip()
    if phone is not None:
        user.phone = phone.strip()

    if commit:
        await save_changes(db, "Email already registered by another user.")
    return user


async def save_changes(db: AsyncSession, conflict_message: str) -> None:
    """Commit, reporting a unique-constraint race as a 400."""
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(conflict_message)


# =============================================================================
# ADMIN DECISIONS
# =============================================================================

async def list_users(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).order_by(User.created_at.desc(), User.id.desc()))
    return list(result.scalars().all())


async def set_approval(db: AsyncSession, user_id: int, approval: ApprovalState) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    if user.user_type == UserRole.CUSTOMER:
        raise ValidationFailed("Customers do not require approval.")
    if user.approval == approval:
        raise ValidationFailed(f"User is already {approval.value}.")

    user.approval = approval
    await db.commit()
    logger.info(f"User #{user.id} ({user.user_type.value}) set to {approval.value}")
    return user


async def delete_user(db: AsyncSession, actor: User, user_id: int) -> None:
    """
    Delete an account and everything it owns.

    A restaurant owner's restaurant goes with the standard cascade. A
    customer's cart, orders, ratings and messages are removed and the
    averages their ratings fed are recomputed.
    """
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    if user.id == actor.id:
        raise AuthorizationError("You cannot delete your own admin account.")
    if user.user_type == UserRole.ADMIN:
        raise AuthorizationError("Cannot delete another admin user directly.")

    if user.user_type == UserRole.RESTAURANT:
        restaurant = await get_restaurant_by_owner(db, user.id)
        if restaurant is not None:
            await delete_restaurant_cascade(db, restaurant.id)

    rated = await db.execute(
        select(FeedbackCustomer.receiver_id, FeedbackCustomer.food_item_id)
        .where(FeedbackCustomer.user_id == user.id)
    )
    restaurant_ids, food_item_ids = set(), set()
    for receiver_id, food_item_id in rated.all():
        restaurant_ids.add(receiver_id)
        if food_item_id is not None:
            food_item_ids.add(food_item_id)

    order_ids = select(Order.id).where(Order.user_id == user.id)
    cart_ids = select(Cart.id).where(Cart.user_id == user.id)
    statements = [
        delete(FeedbackCustomer).where(FeedbackCustomer.user_id == user.id),
        update(FeedbackCustomer)
        .where(FeedbackCustomer.order_id.in_(order_ids))
        .values(order_id=None),
        delete(OrderItem).where(OrderItem.order_id.in_(order_ids)),
        delete(Order).where(Order.user_id == user.id),
        delete(CartItem).where(CartItem.cart_id.in_(cart_ids)),
        delete(Cart).where(Cart.user_id == user.id),
        delete(FeedbackUserToAdmin).where(FeedbackUserToAdmin.sender_id == user.id),
        delete(FeedbackAdmin).where(FeedbackAdmin.receiver_id == user.id),
        update(FeedbackRestaurant)
        .where(FeedbackRestaurant.admin_id == user.id)
        .values(admin_id=None),
    ]
    for statement in statements:
        await db.execute(statement.execution_options(synchronize_session=False))

    await db.delete(user)
    await db.flush()
    await refresh_aggregates(db, restaurant_ids, food_item_ids)
    logger.info(f"User #{user_id} deleted by admin #{actor.id}")
