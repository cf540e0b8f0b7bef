"""Expert directory pipeline."""
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from board import models
from board.pipelines.normalization import normalize_email, normalize_name

logger = logging.getLogger(__name__)


class DuplicateExpertError(Exception):
    """Raised when an expert with the same name already exists."""
    pass


async def list_experts(session: AsyncSession) -> list[models.Expert]:
    result = await session.execute(select(models.Expert).order_by(models.Expert.name))
    return list(result.scalars().all())


async def create_expert(
    session: AsyncSession,
    *,
    name: str,
    email: str | None = None,
    expertise: list[str] | None = None,
) -> models.Expert:
    """Add an expert to the directory.

    Raises:
        DuplicateExpertError: If the (normalized) name is taken
    """
    name = normalize_name(name)
    existing = await session.execute(select(models.Expert.id).where(models.Expert.name == name))
    if existing.first() is not None:
        raise DuplicateExpertError(f"Expert '{name}' already exists")

    expert = models.Expert(
        name=name,
        email=normalize_email(email),
        expertise=[normalize_name(e) for e in expertise] if expertise else None,
    )
    session.add(expert)
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise DuplicateExpertError(f"Expert '{name}' already exists") from e

    logger.info(f"Created expert {expert.id}: {name}")
    return expert
