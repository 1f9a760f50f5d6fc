"""
Site Configuration Singleton

One ``site_config`` row, addressed by a well-known key, holds the category
taxonomy and the promoted restaurant list. It is created on first access.
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from foodhub.core.config import get_settings
from foodhub.core.exceptions import ConflictError, NotFoundError
from foodhub.models import FoodItem, Restaurant, SiteConfig

logger = logging.getLogger(__name__)


async def get_site_config(db: AsyncSession) -> SiteConfig:
    """Read the configuration row, creating it with the default categories on a miss."""
    query = select(SiteConfig).where(SiteConfig.key == SiteConfig.GLOBAL_KEY)
    config = (await db.execute(query)).scalar_one_or_none()
    if config is not None:
        return config

    config = SiteConfig(
        key=SiteConfig.GLOBAL_KEY,
        categories=get_settings().default_categories_list,
        promoted_restaurant_ids=[],
    )
    db.add(config)
    try:
        await db.commit()
        logger.info("Site configuration created with default categories")
    except IntegrityError:
        # Another request created it first
        await db.rollback()
        config = (await db.execute(query)).scalar_one()
    return config


# =============================================================================
# CATEGORIES
# =============================================================================

async def list_categories(db: AsyncSession) -> list[str]:
    config = await get_site_config(db)
    return list(config.categories or [])


async def add_category(db: AsyncSession, name: str) -> list[str]:
    config = await get_site_config(db)
    categories = list(config.categories or [])
    if name in categories:
        raise ConflictError(f"Category '{name}' already exists.")

    config.categories = categories + [name]
    await db.commit()
    logger.info(f"Category added: {name}")
    return config.categories


async def rename_category(db: AsyncSession, old_name: str, new_name: str) -> list[str]:
    """Rename a category and move the food items filed under it."""
    config = await get_site_config(db)
    categories = list(config.categories or [])
    if old_name not in categories:
        raise NotFoundError(f"Category '{old_name}' not found.")
    if new_name != old_name and new_name in categories:
        raise ConflictError(f"Category '{new_name}' already exists.")

    config.categories = [new_name if c == old_name else c for c in categories]
    result = await db.execute(
        update(FoodItem)
        .where(FoodItem.category == old_name)
        .values(category=new_name)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    logger.info(f"Category renamed: {old_name} -> {new_name} ({result.rowcount} food items moved)")
    return config.categories


async def delete_category(db: AsyncSession, name: str) -> list[str]:
    config = await get_site_config(db)
    categories = list(config.categories or [])
    if name not in categories:
        raise NotFoundError(f"Category '{name}' not found.")

    config.categories = [c for c in categories if c != name]
    await db.commit()
    logger.info(f"Category deleted: {name}")
    return config.categories


# =============================================================================
# PROMOTED RESTAURANTS
# =============================================================================

async def list_promoted_restaurants(db: AsyncSession) -> list[Restaurant]:
    """Promoted restaurants in their configured order; stale ids are skipped."""
    config = await get_site_config(db)
    ids = list(config.promoted_restaurant_ids or [])
    if not ids:
        return []

    result = await db.execute(select(Restaurant).where(Restaurant.id.in_(ids)))
    by_id = {r.id: r for r in result.scalars().all()}
    return [by_id[i] for i in ids if i in by_id]


async def set_promoted_restaurants(db: AsyncSession, restaurant_ids: list[int]) -> list[Restaurant]:
    """Replace the promoted list, keeping existing ids only, de-duplicated, in given order."""
    config = await get_site_config(db)

    unique_ids = list(dict.fromkeys(restaurant_ids))
    existing = set()
    if unique_ids:
        result = await db.execute(select(Restaurant.id).where(Restaurant.id.in_(unique_ids)))
        existing = set(result.scalars().all())

    dropped = [i for i in unique_ids if i not in existing]
    if dropped:
        logger.warning(f"Ignoring unknown restaurant ids for promotion: {dropped}")

    config.promoted_restaurant_ids = [i for i in unique_ids if i in existing]
    await db.commit()
    return await list_promoted_restaurants(db)


async def remove_promoted_restaurant(db: AsyncSession, restaurant_id: int) -> None:
    """Drop a restaurant from the promoted list; the caller commits."""
    # Read only: the caller owns the transaction
    query = select(SiteConfig).where(SiteConfig.key == SiteConfig.GLOBAL_KEY)
    config = (await db.execute(query)).scalar_one_or_none()
    if config is None:
        return
    ids = list(config.promoted_restaurant_ids or [])
    if restaurant_id in ids:
        config.promoted_restaurant_ids = [i for i in ids if i != restaurant_id]
