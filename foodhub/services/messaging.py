"""
Cross-Role Messaging

Messages to the admin (from customers and restaurants) are append-only and
carry a status that only moves forward: new -> pending -> resolved.
Admin broadcasts address an audience role or one specific account.
"""

import logging
from typing import Optional, Union

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from foodhub.core.exceptions import ConflictError, NotFoundError, ValidationFailed
from foodhub.models import (
    FeedbackAdmin,
    FeedbackRestaurant,
    FeedbackStatus,
    FeedbackUserToAdmin,
    ReceiverRole,
    Restaurant,
    User,
    UserRole,
)
from foodhub.schemas import AdminBroadcastCreate

logger = logging.getLogger(__name__)

STATUS_ORDER = {
    FeedbackStatus.NEW: 0,
    FeedbackStatus.PENDING: 1,
    FeedbackStatus.RESOLVED: 2,
}

AdminInboxMessage = Union[FeedbackRestaurant, FeedbackUserToAdmin]


# =============================================================================
# MESSAGES TO THE ADMIN
# =============================================================================

async def send_user_message(db: AsyncSession, sender_id: int, message: str) -> FeedbackUserToAdmin:
    feedback = FeedbackUserToAdmin(
        sender_id=sender_id,
        message=message.strip(),
        status=FeedbackStatus.NEW,
    )
    db.add(feedback)
    await db.commit()
    await db.refresh(feedback, attribute_names=["sender"])
    logger.info(f"Message #{feedback.id} from user #{sender_id} sent to admin")
    return feedback


async def send_restaurant_message(db: AsyncSession, restaurant_id: int, message: str) -> FeedbackRestaurant:
    feedback = FeedbackRestaurant(
        restaurant_id=restaurant_id,
        message=message.strip(),
        status=FeedbackStatus.NEW,
    )
    db.add(feedback)
    await db.commit()
    await db.refresh(feedback, attribute_names=["restaurant"])
    logger.info(f"Message #{feedback.id} from restaurant #{restaurant_id} sent to admin")
    return feedback


async def list_user_messages(db: AsyncSession, sender_id: Optional[int] = None) -> list[FeedbackUserToAdmin]:
    query = (
        select(FeedbackUserToAdmin)
        .options(selectinload(FeedbackUserToAdmin.sender))
        .order_by(FeedbackUserToAdmin.created_at.desc(), FeedbackUserToAdmin.id.desc())
    )
    if sender_id is not None:
        query = query.where(FeedbackUserToAdmin.sender_id == sender_id)
    result = await db.execute(query)
    return list(result.scalars().all())


async def list_restaurant_messages(db: AsyncSession, restaurant_id: Optional[int] = None) -> list[FeedbackRestaurant]:
    query = (
        select(FeedbackRestaurant)
        .options(selectinload(FeedbackRestaurant.restaurant))
        .order_by(FeedbackRestaurant.created_at.desc(), FeedbackRestaurant.id.desc())
    )
    if restaurant_id is not None:
        query = query.where(FeedbackRestaurant.restaurant_id == restaurant_id)
    result = await db.execute(query)
    return list(result.scalars().all())


def advance_status(feedback: AdminInboxMessage, status: FeedbackStatus) -> None:
    """Move a message's status forward; going back or re-resolving is rejected."""
    if feedback.status == FeedbackStatus.RESOLVED:
        raise ConflictError("Feedback is already resolved.")
    if STATUS_ORDER[status] < STATUS_ORDER[feedback.status]:
        raise ValidationFailed(
            f"Feedback status cannot move back from {feedback.status.value} to {status.value}."
        )
    feedback.status = status


async def update_restaurant_message_status(
    db: AsyncSession,
    feedback_id: int,
    status: FeedbackStatus,
    admin_id: Optional[int] = None,
) -> FeedbackRestaurant:
    feedback = await db.get(FeedbackRestaurant, feedback_id)
    if feedback is None:
        raise NotFoundError("Feedback not found.")

    advance_status(feedback, status)
    if admin_id is not None:
        feedback.admin_id = admin_id
    await db.commit()
    return feedback


async def update_user_message_status(db: AsyncSession, feedback_id: int, status: FeedbackStatus) -> FeedbackUserToAdmin:
    feedback = await db.get(FeedbackUserToAdmin, feedback_id)
    if feedback is None:
        raise NotFoundError("Feedback not found.")

    advance_status(feedback, status)
    await db.commit()
    return feedback


# =============================================================================
# ADMIN BROADCASTS
# =============================================================================

async def send_broadcast(db: AsyncSession, admin_id: int, data: AdminBroadcastCreate) -> FeedbackAdmin:
    """
    Store an admin broadcast.

    ``specificRestaurant`` targets are stored against the restaurant owner's
    user id; audience-wide roles store no receiver.
    """
    receiver_id = None

    if data.receiver_role == ReceiverRole.SPECIFIC_USER:
        if data.receiver is None:
            raise ValidationFailed("User ID is required for Specific User role.")
        target = await db.get(User, data.receiver)
        if target is None:
            raise NotFoundError("Specific user not found.")
        if target.user_type not in (UserRole.CUSTOMER, UserRole.RESTAURANT):
            raise ValidationFailed("Target user is not a customer or restaurant owner type.")
        receiver_id = target.id

    elif data.receiver_role == ReceiverRole.SPECIFIC_RESTAURANT:
        if data.receiver is None:
            raise ValidationFailed("Restaurant ID is required for Specific Restaurant role.")
        restaurant = await db.get(Restaurant, data.receiver)
        if restaurant is None:
            raise NotFoundError("Specific restaurant not found.")
        receiver_id = restaurant.owner_id

    broadcast = FeedbackAdmin(
        admin_id=admin_id,
        receiver_role=data.receiver_role,
        receiver_id=receiver_id,
        message=data.message.strip(),
        type=data.type,
    )
    db.add(broadcast)
    await db.commit()
    await db.refresh(broadcast, attribute_names=["receiver"])
    logger.info(
        f"Broadcast #{broadcast.id} ({data.type.value}) sent to {data.receiver_role.value}"
        + (f" #{receiver_id}" if receiver_id else "")
    )
    return broadcast


async def list_broadcasts(db: AsyncSession) -> list[FeedbackAdmin]:
    result = await db.execute(
        select(FeedbackAdmin)
        .options(selectinload(FeedbackAdmin.receiver))
        .order_by(FeedbackAdmin.created_at.desc(), FeedbackAdmin.id.desc())
    )
    return list(result.scalars().all())


async def list_announcements_for(db: AsyncSession, user: User) -> list[FeedbackAdmin]:
    """Broadcasts addressed to the user's audience role or to the user directly."""
    audience = [ReceiverRole.ALL_USERS]
    if user.user_type == UserRole.RESTAURANT:
        audience.append(ReceiverRole.ALL_RESTAURANTS)
    result = await db.execute(
        select(FeedbackAdmin)
        .options(selectinload(FeedbackAdmin.receiver))
        .where(or_(FeedbackAdmin.receiver_role.in_(audience), FeedbackAdmin.receiver_id == user.id))
        .order_by(FeedbackAdmin.created_at.desc(), FeedbackAdmin.id.desc())
    )
    return list(result.scalars().all())
