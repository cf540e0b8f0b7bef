"""Detail (interview board) persistence pipeline.

Turns a submitted board into a ``Detail`` with one ``DetailExpert`` row per
expert, each carrying its assignment token.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from board import models
from board.pipelines.normalization import normalize_email, normalize_name
from board.tokens import InvalidDateError, create_token, parse_date

logger = logging.getLogger(__name__)


class DetailProcessingError(Exception):
    """Raised when a detail cannot be saved."""
    pass


class DetailNotFoundError(Exception):
    """Raised when a detail or assignment does not exist."""
    pass


class DuplicateDetailError(Exception):
    """Raised when an expert is already assigned to the same requirement and date."""
    pass


def build_assignment(
    expert_name: str,
    entry: Mapping[str, Any],
    *,
    requirement: str,
    when: datetime,
) -> models.DetailExpert:
    """Build the row for one expert entry of a submitted board."""
    name = normalize_name(expert_name)
    candidates = [
        {
            "candidate": normalize_name(c["candidate"]),
            "relevancy_score": c.get("relevancy_score"),
        }
        for c in entry.get("candidates") or []
    ]
    status = entry.get("acceptance_status") or models.AcceptanceStatus.PENDING
    return models.DetailExpert(
        name=name,
        email=normalize_email(entry.get("email")),
        candidates=candidates,
        acceptance_status=models.AcceptanceStatus(status).value,
        token=create_token(name, requirement, when),
    )


async def save_details(
    session: AsyncSession,
    *,
    requirement: str,
    date: str | int | float | datetime,
    experts: Mapping[str, Mapping[str, Any]],
) -> models.Detail:
    """Persist a board and its expert assignments.

    Args:
        session: Database session
        requirement: Requirement (position) the board interviews for
        date: Scheduled interview date
        experts: Expert name -> {email, candidates, acceptance_status}

    Returns:
        The saved Detail with its experts loaded

    Raises:
        InvalidDateError: If the date cannot be parsed
        DuplicateDetailError: If a token already exists
        DetailProcessingError: For any other failure
    """
    requirement = normalize_name(requirement)
    when = parse_date(date)

    try:
        logger.info(f"Saving details for '{requirement}' with {len(experts)} experts")

        assignments = [
            build_assignment(name, entry, requirement=requirement, when=when)
            for name, entry in experts.items()
        ]

        tokens = [a.token for a in assignments]
        if len(set(tokens)) != len(tokens):
            raise DuplicateDetailError("Expert listed more than once for this requirement and date")

        result = await session.execute(
            select(models.DetailExpert.token).where(models.DetailExpert.token.in_(tokens))
        )
        if result.first() is not None:
            raise DuplicateDetailError(
                f"An expert is already assigned to '{requirement}' on {when.isoformat()}"
            )

        detail = models.Detail(
            requirement=requirement,
            date=when.replace(tzinfo=None),
            experts=assignments,
        )
        session.add(detail)
        await session.commit()

        logger.info(f"Saved detail {detail.id}: {requirement}")
        return detail

    except (InvalidDateError, DuplicateDetailError):
        await session.rollback()
        raise
    except IntegrityError as e:
        await session.rollback()
        raise DuplicateDetailError("Assignment token already exists") from e
    except Exception as e:
        logger.error(f"Saving details failed: {e}", exc_info=True)
        await session.rollback()
        raise DetailProcessingError(f"Saving details failed: {e}") from e


async def list_details(session: AsyncSession) -> list[models.Detail]:
    """Fetch all saved details, earliest interview first."""
    result = await session.execute(
        select(models.Detail).order_by(models.Detail.date, models.Detail.id)
    )
    return list(result.scalars().all())


async def get_detail(session: AsyncSession, detail_id: int) -> models.Detail:
    detail = await session.get(models.Detail, detail_id)
    if detail is None:
        raise DetailNotFoundError(f"Detail {detail_id} not found")
    return detail


async def get_assignment(session: AsyncSession, token: str) -> models.DetailExpert:
    """Look up an expert assignment by its token."""
    result = await session.execute(
        select(models.DetailExpert).where(models.DetailExpert.token == token.lower())
    )
    assignment = result.scalar_one_or_none()
    if assignment is None:
        raise DetailNotFoundError("No assignment found for token")
    return assignment


async def update_acceptance(
    session: AsyncSession,
    token: str,
    status: models.AcceptanceStatus,
) -> models.DetailExpert:
    """Record whether an expert accepted or declined an assignment."""
    assignment = await get_assignment(session, token)
    assignment.acceptance_status = models.AcceptanceStatus(status).value
    await session.commit()

    logger.info(f"Assignment {assignment.id} of '{assignment.name}' is now {assignment.acceptance_status}")
    return assignment
