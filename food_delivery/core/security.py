"""
Authenticated user resolution.

Token verification happens upstream; by the time a request reaches the
API the subject of the verified token is forwarded in a header. This
module only maps that subject to a User row.
"""

import logging

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from food_delivery.core.config import get_settings
from food_delivery.database import get_db
from food_delivery.models import User

logger = logging.getLogger(__name__)


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """FastAPI dependency returning the caller's User, or 401."""
    header = get_settings().auth_subject_header
    subject = request.headers.get(header)

    if not subject:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    result = await db.execute(select(User).where(User.auth_subject == subject))
    user = result.scalar_one_or_none()

    if user is None:
        logger.warning(f"Authenticated subject {subject!r} has no user record")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user")

    return user
