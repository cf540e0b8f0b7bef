"""Expert agenda: the scheduled interviews an expert sits on."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from board import models
from board.config import settings
from board.pipelines.normalization import normalize_name

logger = logging.getLogger(__name__)

# en-US labels, independent of the process locale
DAY_LABELS = ("MON", "TUE", "WED", "THU", "FRI", "SAT", "SUN")
MONTH_LABELS = ("JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC")


@dataclass
class AgendaItem:
    """One scheduled interview as shown on an expert's agenda."""
    detail_id: int
    requirement: str
    scheduled_at: datetime
    day: str
    date: str
    time: str
    acceptance_status: str
    token: str
    candidates: list[dict] = field(default_factory=list)


def format_slot(moment: datetime) -> tuple[str, str, str]:
    """Render a datetime as en-US agenda labels.

    >>> format_slot(datetime(2024, 10, 1, 14, 5))
    ('TUE', 'OCT 1', '2:05 PM')
    """
    day = DAY_LABELS[moment.weekday()]
    date = f"{MONTH_LABELS[moment.month - 1]} {moment.day}"
    hour = moment.hour % 12 or 12
    meridiem = "AM" if moment.hour < 12 else "PM"
    return day, date, f"{hour}:{moment.minute:02d} {meridiem}"


async def build_agenda(
    session: AsyncSession,
    expert_name: str,
    *,
    upcoming_only: bool = False,
    now: datetime | None = None,
) -> list[AgendaItem]:
    """Collect the interviews an expert is assigned to, earliest first.

    Args:
        session: Database session
        expert_name: Expert whose agenda to build
        upcoming_only: Drop interviews scheduled before ``now``
        now: Reference time (defaults to current UTC time)

    Returns:
        Agenda items with formatted slots and the candidates up for scoring
    """
    name = normalize_name(expert_name)
    query = (
        select(models.DetailExpert)
        .join(models.Detail, models.DetailExpert.detail_id == models.Detail.id)
        .where(models.DetailExpert.name == name)
        .order_by(models.Detail.date, models.Detail.id)
    )
    if upcoming_only:
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is not None:
            now = now.astimezone(timezone.utc).replace(tzinfo=None)
        query = query.where(models.Detail.date >= now)

    result = await session.execute(query)
    assignments = result.scalars().all()

    limit = settings.feedback.max_candidates_per_review
    items = []
    for assignment in assignments:
        detail = assignment.detail
        day, date, time = format_slot(detail.date)
        items.append(
            AgendaItem(
                detail_id=detail.id,
                requirement=detail.requirement,
                scheduled_at=detail.date,
                day=day,
                date=date,
                time=time,
                acceptance_status=assignment.acceptance_status,
                token=assignment.token,
                candidates=list(assignment.candidates[:limit]),
            )
        )

    logger.debug(f"Agenda for '{name}': {len(items)} interviews")
    return items
