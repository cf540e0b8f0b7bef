"""Core SQLAlchemy models (2.x style) for the interview board schema.

Datetimes are stored as naive UTC values so the schema behaves the same on
PostgreSQL and SQLite.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class AcceptanceStatus(str, Enum):
    """Whether an expert has taken up an interview assignment."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Detail(Base):
    """Saved interview boards: one requirement on one date."""
    __tablename__ = "details"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    requirement: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    # Relationships
    experts: Mapped[list[DetailExpert]] = relationship(
        "DetailExpert",
        back_populates="detail",
        cascade="all, delete-orphan",
        order_by="DetailExpert.id",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_details_date", "date"),
    )


class DetailExpert(Base):
    """One expert's assignment inside a detail."""
    __tablename__ = "detail_experts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    detail_id: Mapped[int] = mapped_column(
        ForeignKey("details.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    email: Mapped[str | None] = mapped_column(String(255))
    candidates: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)  # [{candidate, relevancy_score}]
    acceptance_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=AcceptanceStatus.PENDING.value,
    )
    token: Mapped[str] = mapped_column(String(64), nullable=False)

    # Relationship
    detail: Mapped[Detail] = relationship("Detail", back_populates="experts", lazy="selectin")

    __table_args__ = (
        Index("ix_detail_experts_token", "token", unique=True),
        Index("ix_detail_experts_detail_name", "detail_id", "name"),
    )


class Expert(Base):
    """Reviewer directory."""
    __tablename__ = "experts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    email: Mapped[str | None] = mapped_column(String(255))
    expertise: Mapped[list[str] | None] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)


class Feedback(Base):
    """Scores an expert gave a candidate after an interview."""
    __tablename__ = "feedback"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    detail_id: Mapped[int] = mapped_column(
        ForeignKey("details.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    expert_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    candidate: Mapped[str] = mapped_column(String(255), nullable=False)
    candidate_id: Mapped[int] = mapped_column(Integer, nullable=False)
    skills: Mapped[int] = mapped_column(Integer, nullable=False)
    experience: Mapped[int] = mapped_column(Integer, nullable=False)
    communication: Mapped[int] = mapped_column(Integer, nullable=False)
    account: Mapped[str] = mapped_column(String(42), nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_feedback_detail_expert", "detail_id", "expert_name"),
    )
