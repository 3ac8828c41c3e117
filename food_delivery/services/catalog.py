"""
Menu Catalog Queries

Read-only access to restaurants, their menus and cuisine tags. Checkout
consults the catalog for authoritative prices; the public restaurant
endpoints list, fetch and search it.
"""

import logging
from typing import Optional, Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from food_delivery.models import Restaurant, RestaurantCuisine

logger = logging.getLogger(__name__)

SORT_OPTIONS = {
    "lastUpdated": Restaurant.last_updated.desc(),
    "deliveryPrice": Restaurant.delivery_price.asc(),
    "estimatedDeliveryTime": Restaurant.estimated_delivery_time.asc(),
}
DEFAULT_SORT = "lastUpdated"


def _with_catalog():
    return (
        selectinload(Restaurant.menu_items),
        selectinload(Restaurant.cuisine_entries),
    )


async def get_restaurant(
    db: AsyncSession,
    restaurant_id: str,
    refresh: bool = False,
) -> Optional[Restaurant]:
    """
    Load one restaurant with its menu and cuisines.

    Args:
        restaurant_id: Restaurant identifier
        refresh: Re-read the row even if it is already in the session
    """
    query = (
        select(Restaurant)
        .where(Restaurant.id == str(restaurant_id))
        .options(*_with_catalog())
    )
    if refresh:
        query = query.execution_options(populate_existing=True)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def list_restaurants(db: AsyncSession) -> Sequence[Restaurant]:
    result = await db.execute(
        select(Restaurant)
        .options(*_with_catalog())
        .order_by(Restaurant.last_updated.desc())
    )
    return result.scalars().all()


def _split_cuisines(selected_cuisines: Optional[str]) -> list[str]:
    if not selected_cuisines:
        return []
    return [c.strip() for c in selected_cuisines.split(",") if c.strip()]


async def search_restaurants(
    db: AsyncSession,
    search_query: Optional[str] = None,
    selected_cuisines: Optional[str] = None,
    sort_option: Optional[str] = None,
    page: int = 1,
    page_size: int = 10,
) -> tuple[Sequence[Restaurant], int]:
    """
    Filter, sort and paginate restaurants.

    Args:
        search_query: Case-insensitive substring of the name or any cuisine
        selected_cuisines: Comma-separated cuisines, any of which must match
        sort_option: lastUpdated (default), deliveryPrice or estimatedDeliveryTime
        page: 1-based page number
        page_size: Restaurants per page

    Returns:
        The page of restaurants and the total number of matches
    """
    conditions = []

    if search_query:
        cuisine_match = (
            select(RestaurantCuisine.id)
            .where(RestaurantCuisine.restaurant_id == Restaurant.id)
            .where(RestaurantCuisine.name.icontains(search_query, autoescape=True))
            .exists()
        )
        # autoescape: % and _ in the query match themselves, not wildcards
        name_match = Restaurant.restaurant_name.icontains(search_query, autoescape=True)
        conditions.append(or_(name_match, cuisine_match))

    cuisines = _split_cuisines(selected_cuisines)
    if cuisines:
        conditions.append(
            select(RestaurantCuisine.id)
            .where(RestaurantCuisine.restaurant_id == Restaurant.id)
            .where(RestaurantCuisine.name.in_(cuisines))
            .exists()
        )

    order_by = SORT_OPTIONS.get(sort_option or DEFAULT_SORT, SORT_OPTIONS[DEFAULT_SORT])
    page = max(page, 1)

    count_query = select(func.count(Restaurant.id))
    query = select(Restaurant)
    if conditions:
        count_query = count_query.where(*conditions)
        query = query.where(*conditions)

    total = (await db.execute(count_query)).scalar() or 0

    query = (
        query
        .options(*_with_catalog())
        .order_by(order_by, Restaurant.id)
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(query)
    restaurants = result.scalars().all()

    logger.debug(
        f"Restaurant search q={search_query!r} cuisines={cuisines} "
        f"sort={sort_option} page={page}: {total} matches"
    )
    return restaurants, total
