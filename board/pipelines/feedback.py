"""Expert feedback submission.

An expert scores the candidates of a board on skills, experience and
communication. Each (board, expert, candidate) triple is given a small
integer id, the identifier the on-chain feedback contract works with, and
every accepted score card is recorded against the wallet account that
submitted it.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from board import models
from board.config import settings
from board.pipelines.details import get_detail
from board.pipelines.normalization import normalize_name

logger = logging.getLogger(__name__)

WALLET_ADDRESS = re.compile(r"^0x[0-9a-fA-F]{40}$")

SCORE_FIELDS = ("skills", "experience", "communication")


class FeedbackError(Exception):
    """Base class for feedback submission errors."""
    pass


class WalletNotConnectedError(FeedbackError):
    """Raised when no usable wallet account accompanies a submission."""
    pass


class ExpertNotAssignedError(FeedbackError):
    """Raised when the expert is not part of the board."""
    pass


class NoFeedbackError(FeedbackError):
    """Raised when no candidate received a complete, in-range score card."""
    pass


class FeedbackProcessingError(FeedbackError):
    """Raised when accepted feedback cannot be persisted."""
    pass


class CandidateIdRegistry:
    """Assigns sequential integer ids to (board, expert, candidate) triples.

    Ids start at 0 and follow first-seen order; asking again for a known
    triple returns the id it already has.
    """

    def __init__(self) -> None:
        self._ids: dict[str, int] = {}

    @staticmethod
    def key(board: str, expert: str, candidate: str) -> str:
        return f"{board}_{expert}_{candidate}"

    def get(self, board: str, expert: str, candidate: str) -> int:
        key = self.key(board, expert, candidate)
        if key not in self._ids:
            self._ids[key] = len(self._ids)
        return self._ids[key]

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, key: object) -> bool:
        return key in self._ids


@dataclass
class SubmittedFeedback:
    """A score card that was accepted and recorded."""
    candidate: str
    candidate_id: int
    skills: int
    experience: int
    communication: int


@dataclass
class FeedbackSubmission:
    """Outcome of one expert's feedback submission."""
    detail_id: int
    expert_name: str
    account: str
    submitted: list[SubmittedFeedback] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def _in_range(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return settings.feedback.score_min <= value <= settings.feedback.score_max


def validate_scores(scores: Mapping[str, Any] | None) -> bool:
    """Check that a score card is complete and every score is in range."""
    if not scores:
        return False
    return all(_in_range(scores.get(name)) for name in SCORE_FIELDS)


def check_account(account: str | None) -> str:
    """Return the wallet account or raise if it is missing or malformed."""
    if not account or not account.strip():
        raise WalletNotConnectedError("No wallet connected. Please connect your wallet.")
    account = account.strip()
    if not WALLET_ADDRESS.match(account):
        raise WalletNotConnectedError(f"Not a valid wallet address: {account}")
    return account


async def submit_feedback(
    session: AsyncSession,
    registry: CandidateIdRegistry,
    *,
    detail_id: int,
    expert_name: str,
    account: str | None,
    scores: Mapping[str, Mapping[str, Any]],
) -> FeedbackSubmission:
    """Record an expert's scores for the candidates of a board.

    Only the first ``max_candidates_per_review`` candidates of the expert's
    assignment are considered. Candidates without a complete in-range score
    card are skipped.

    Args:
        session: Database session
        registry: Candidate id mapping
        detail_id: Board being scored
        expert_name: Expert submitting the scores
        account: Wallet address of the submitter
        scores: Candidate name -> {skills, experience, communication}

    Returns:
        FeedbackSubmission listing submitted and skipped candidates

    Raises:
        WalletNotConnectedError: If ``account`` is missing or malformed
        DetailNotFoundError: If the board does not exist
        ExpertNotAssignedError: If the expert is not on the board
        NoFeedbackError: If nothing could be submitted
        FeedbackProcessingError: If persisting fails
    """
    account = check_account(account)
    detail = await get_detail(session, detail_id)

    name = normalize_name(expert_name)
    assignment = next((e for e in detail.experts if e.name == name), None)
    if assignment is None:
        raise ExpertNotAssignedError(f"Expert '{name}' is not assigned to detail {detail_id}")

    scores = {normalize_name(candidate): card for candidate, card in scores.items()}
    submission = FeedbackSubmission(detail_id=detail.id, expert_name=name, account=account)

    for entry in assignment.candidates[: settings.feedback.max_candidates_per_review]:
        candidate = entry["candidate"]
        card = scores.get(candidate)
        if not validate_scores(card):
            submission.skipped.append(candidate)
            continue

        submission.submitted.append(
            SubmittedFeedback(
                candidate=candidate,
                candidate_id=registry.get(detail.requirement, name, candidate),
                skills=card["skills"],
                experience=card["experience"],
                communication=card["communication"],
            )
        )

    if not submission.submitted:
        raise NoFeedbackError("No feedback was provided. Please fill in scores for the candidates.")

    try:
        for item in submission.submitted:
            session.add(
                models.Feedback(
                    detail_id=detail.id,
                    expert_name=name,
                    candidate=item.candidate,
                    candidate_id=item.candidate_id,
                    skills=item.skills,
                    experience=item.experience,
                    communication=item.communication,
                    account=account,
                )
            )
        await session.commit()
    except Exception as e:
        logger.error(f"Persisting feedback failed: {e}", exc_info=True)
        await session.rollback()
        raise FeedbackProcessingError(f"Persisting feedback failed: {e}") from e

    logger.info(
        f"Recorded {len(submission.submitted)} feedbacks from '{name}' on detail {detail.id} "
        f"({len(submission.skipped)} skipped)"
    )
    return submission
