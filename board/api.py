"""FastAPI app for saving interview boards, listing experts and collecting feedback.

Domain errors raised by the pipelines are turned into JSON responses by the
exception handlers below; anything unexpected inside a route is logged and
answered with a generic 500.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, HTTPException, Query, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from . import models
from .config import settings
from .db import get_session
from .logging_config import setup_logging
from .pipelines.agenda import build_agenda
from .pipelines.details import (
    DetailNotFoundError,
    DetailProcessingError,
    DuplicateDetailError,
    get_assignment,
    get_detail,
    list_details,
    save_details,
    update_acceptance,
)
from .pipelines.experts import DuplicateExpertError, create_expert, list_experts
from .pipelines.feedback import (
    CandidateIdRegistry,
    ExpertNotAssignedError,
    FeedbackError,
    FeedbackProcessingError,
    NoFeedbackError,
    WalletNotConnectedError,
    submit_feedback,
)
from .pipelines.normalization import normalize_name
from .tokens import InvalidDateError

logger = logging.getLogger(__name__)


# Pydantic request models
class CandidateIn(BaseModel):
    """Candidate offered to an expert, as sent by the board form."""
    candidate: str = Field(min_length=1, validation_alias=AliasChoices("Candidate", "candidate"))
    relevancy_score: float | None = Field(
        default=None,
        validation_alias=AliasChoices("Relevancy Score", "RelevancyScore", "relevancy_score"),
    )


class ExpertEntryIn(BaseModel):
    """One expert's entry on a submitted board."""
    email: str | None = None
    candidates: list[CandidateIn] = Field(default_factory=list)
    acceptance_status: models.AcceptanceStatus | None = Field(
        default=None,
        validation_alias=AliasChoices("acceptanceStatus", "acceptance_status"),
    )


class SaveDetailsRequest(BaseModel):
    """Save details request."""
    requirement: str = Field(min_length=1, max_length=255)
    date: str | int | float
    experts: dict[str, ExpertEntryIn] = Field(min_length=1)

    @field_validator("experts")
    @classmethod
    def expert_names_not_blank(cls, v: dict[str, ExpertEntryIn]) -> dict[str, ExpertEntryIn]:
        if any(not normalize_name(name) for name in v):
            raise ValueError("expert names must not be blank")
        return v


class CreateExpertRequest(BaseModel):
    """Create expert request."""
    name: str = Field(min_length=1, max_length=255)
    email: str | None = Field(default=None, max_length=255)
    expertise: list[str] | None = None


class AcceptanceRequest(BaseModel):
    """Accept or decline an assignment."""
    acceptance_status: models.AcceptanceStatus = Field(
        validation_alias=AliasChoices("acceptanceStatus", "acceptance_status"),
    )


class ScoreCardIn(BaseModel):
    """Scores for one candidate; ``engagement`` is accepted for communication."""
    skills: int | None = None
    experience: int | None = None
    communication: int | None = Field(
        default=None,
        validation_alias=AliasChoices("communication", "engagement"),
    )


class SubmitFeedbackRequest(BaseModel):
    """Feedback submission for the candidates of one board."""
    expert_name: str = Field(min_length=1, validation_alias=AliasChoices("expert_name", "currentExpert"))
    account: str | None = None
    scores: dict[str, ScoreCardIn] = Field(default_factory=dict)


# Pydantic response models
class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str


class ErrorResponse(BaseModel):
    """Error response."""
    error: str
    detail: str | None = None


class CandidateDTO(BaseModel):
    """Candidate data transfer object."""
    candidate: str
    relevancy_score: float | None = None


class AssignmentDTO(BaseModel):
    """Expert assignment inside a detail."""
    name: str
    email: str | None
    candidates: list[CandidateDTO]
    acceptance_status: str
    token: str


class DetailDTO(BaseModel):
    """Saved detail."""
    id: int
    requirement: str
    date: datetime
    created_at: datetime
    experts: list[AssignmentDTO]


class AssignmentLookupResponse(AssignmentDTO):
    """Assignment together with the board it belongs to."""
    detail_id: int
    requirement: str
    date: datetime


class ExpertDTO(BaseModel):
    """Expert directory entry."""
    id: int
    name: str
    email: str | None
    expertise: list[str] | None
    created_at: datetime


class SubmittedFeedbackDTO(BaseModel):
    """Feedback accepted for one candidate."""
    candidate: str
    candidate_id: int
    skills: int
    experience: int
    communication: int


class FeedbackResponse(BaseModel):
    """Feedback submission response."""
    status: str
    detail_id: int
    expert_name: str
    account: str
    submitted: list[SubmittedFeedbackDTO]
    skipped: list[str]
    message: str


class AgendaItemDTO(BaseModel):
    """Scheduled interview on an expert's agenda."""
    detail_id: int
    requirement: str
    scheduled_at: datetime
    day: str
    date: str
    time: str
    acceptance_status: str
    token: str
    candidates: list[CandidateDTO]


class AgendaResponse(BaseModel):
    """Expert agenda response."""
    expert_name: str
    interviews: list[AgendaItemDTO]


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def _assignment_dto(assignment: models.DetailExpert) -> AssignmentDTO:
    return AssignmentDTO(
        name=assignment.name,
        email=assignment.email,
        candidates=[CandidateDTO(**c) for c in assignment.candidates],
        acceptance_status=assignment.acceptance_status,
        token=assignment.token,
    )


def _detail_dto(detail: models.Detail) -> DetailDTO:
    return DetailDTO(
        id=detail.id,
        requirement=detail.requirement,
        date=_as_utc(detail.date),
        created_at=_as_utc(detail.created_at),
        experts=[_assignment_dto(e) for e in detail.experts],
    )


def _lookup_dto(assignment: models.DetailExpert) -> AssignmentLookupResponse:
    detail = assignment.detail
    return AssignmentLookupResponse(
        **_assignment_dto(assignment).model_dump(),
        detail_id=detail.id,
        requirement=detail.requirement,
        date=_as_utc(detail.date),
    )


def _expert_dto(expert: models.Expert) -> ExpertDTO:
    return ExpertDTO(
        id=expert.id,
        name=expert.name,
        email=expert.email,
        expertise=expert.expertise,
        created_at=_as_utc(expert.created_at),
    )


# Candidate ids are handed out for the lifetime of the process
candidate_registry = CandidateIdRegistry()


def get_candidate_registry() -> CandidateIdRegistry:
    """Dependency returning the process-wide candidate id registry."""
    return candidate_registry


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown logic."""
    # Startup
    setup_logging()
    logger.info("Application starting up")

    yield

    # Shutdown
    logger.info("Application shutting down")


app = FastAPI(
    title="Interview Board",
    version=settings.version,
    description="Interview boards, expert directory and candidate feedback",
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, error: str, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=str(exc)).model_dump(),
    )


# Exception handlers
@app.exception_handler(InvalidDateError)
async def invalid_date_handler(request, exc: InvalidDateError):
    """Handle unparsable interview dates."""
    logger.warning(f"Invalid date: {exc}")
    return _error(status.HTTP_400_BAD_REQUEST, "invalid_date", exc)


@app.exception_handler(DetailNotFoundError)
async def not_found_handler(request, exc: DetailNotFoundError):
    return _error(status.HTTP_404_NOT_FOUND, "not_found", exc)


@app.exception_handler(DuplicateDetailError)
async def duplicate_detail_handler(request, exc: DuplicateDetailError):
    """Handle an expert being assigned twice to the same board."""
    logger.warning(f"Duplicate detail: {exc}")
    return _error(status.HTTP_409_CONFLICT, "duplicate", exc)


@app.exception_handler(DuplicateExpertError)
async def duplicate_expert_handler(request, exc: DuplicateExpertError):
    logger.warning(f"Duplicate expert: {exc}")
    return _error(status.HTTP_409_CONFLICT, "duplicate", exc)


@app.exception_handler(DetailProcessingError)
async def detail_processing_error_handler(request, exc: DetailProcessingError):
    """Handle detail persistence failures."""
    logger.error(f"Error saving details: {exc}")
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Error saving details", exc)


@app.exception_handler(WalletNotConnectedError)
async def wallet_error_handler(request, exc: WalletNotConnectedError):
    return _error(status.HTTP_400_BAD_REQUEST, "wallet_not_connected", exc)


@app.exception_handler(ExpertNotAssignedError)
async def expert_not_assigned_handler(request, exc: ExpertNotAssignedError):
    return _error(status.HTTP_404_NOT_FOUND, "expert_not_assigned", exc)


@app.exception_handler(NoFeedbackError)
async def no_feedback_handler(request, exc: NoFeedbackError):
    return _error(status.HTTP_400_BAD_REQUEST, "no_feedback", exc)


@app.exception_handler(FeedbackProcessingError)
async def feedback_processing_error_handler(request, exc: FeedbackProcessingError):
    """Handle feedback persistence failures."""
    logger.error(f"Error submitting feedback: {exc}")
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Error submitting feedback", exc)


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="ok",
        version=settings.version,
    )


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "app": settings.app_name,
        "version": settings.version,
        "endpoints": {
            "health": "/health",
            "save_details": "/save-details",
            "details": "/details",
            "detail": "/details/{detail_id}",
            "assignment": "/details/token/{token}",
            "acceptance": "/details/token/{token}/acceptance",
            "feedback": "/details/{detail_id}/feedback",
            "experts": "/experts",
            "agenda": "/experts/{expert_name}/agenda",
            "docs": "/docs",
        },
    }


@app.post(
    "/save-details",
    response_model=DetailDTO,
    status_code=status.HTTP_200_OK,
)
async def save_details_endpoint(
    request: SaveDetailsRequest,
    session: AsyncSession = Depends(get_session),
) -> DetailDTO:
    """Save a board: requirement, date and the experts sitting on it.

    Each expert entry gets a token derived from the expert name, the
    requirement and the date.

    Args:
        request: Board form contents
        session: Database session (injected)

    Returns:
        The saved detail including assignment tokens
    """
    logger.info(f"Received details for requirement: {request.requirement}")

    experts = {
        name: {
            "email": entry.email,
            "candidates": [c.model_dump() for c in entry.candidates],
            "acceptance_status": entry.acceptance_status,
        }
        for name, entry in request.experts.items()
    }

    try:
        detail = await save_details(
            session,
            requirement=request.requirement,
            date=request.date,
            experts=experts,
        )
        return _detail_dto(detail)

    except (InvalidDateError, DuplicateDetailError, DetailProcessingError):
        raise
    except Exception as e:
        logger.error(f"Unexpected error saving details: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error saving details",
        )


@app.get("/details", response_model=list[DetailDTO])
async def get_details(session: AsyncSession = Depends(get_session)) -> list[DetailDTO]:
    """Fetch all saved details."""
    try:
        details = await list_details(session)
        return [_detail_dto(d) for d in details]
    except Exception as e:
        logger.error(f"Error fetching details: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error fetching details",
        )


@app.get("/details/token/{token}", response_model=AssignmentLookupResponse)
async def get_assignment_by_token(
    token: str,
    session: AsyncSession = Depends(get_session),
) -> AssignmentLookupResponse:
    """Resolve an assignment token to the expert entry and its board."""
    try:
        assignment = await get_assignment(session, token)
        return _lookup_dto(assignment)
    except DetailNotFoundError:
        raise
    except Exception as e:
        logger.error(f"Error fetching assignment: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error fetching assignment",
        )


@app.patch("/details/token/{token}/acceptance", response_model=AssignmentLookupResponse)
async def set_acceptance(
    token: str,
    request: AcceptanceRequest,
    session: AsyncSession = Depends(get_session),
) -> AssignmentLookupResponse:
    """Accept or decline an assignment."""
    try:
        assignment = await update_acceptance(session, token, request.acceptance_status)
        return _lookup_dto(assignment)
    except DetailNotFoundError:
        raise
    except Exception as e:
        logger.error(f"Error updating acceptance: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error updating acceptance",
        )


@app.get("/details/{detail_id}", response_model=DetailDTO)
async def get_detail_endpoint(
    detail_id: int,
    session: AsyncSession = Depends(get_session),
) -> DetailDTO:
    """Fetch a single detail."""
    try:
        detail = await get_detail(session, detail_id)
        return _detail_dto(detail)
    except DetailNotFoundError:
        raise
    except Exception as e:
        logger.error(f"Error fetching detail {detail_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error fetching details",
        )


@app.post("/details/{detail_id}/feedback", response_model=FeedbackResponse)
async def submit_feedback_endpoint(
    detail_id: int,
    request: SubmitFeedbackRequest,
    session: AsyncSession = Depends(get_session),
    registry: CandidateIdRegistry = Depends(get_candidate_registry),
) -> FeedbackResponse:
    """Submit an expert's scores for the candidates of a board.

    Scores must be integers within the configured range (0-10 by default);
    candidates without a complete score card are skipped.
    """
    logger.info(f"Feedback from '{request.expert_name}' for detail {detail_id}")

    try:
        submission = await submit_feedback(
            session,
            registry,
            detail_id=detail_id,
            expert_name=request.expert_name,
            account=request.account,
            scores={name: card.model_dump() for name, card in request.scores.items()},
        )

        return FeedbackResponse(
            status="success",
            detail_id=submission.detail_id,
            expert_name=submission.expert_name,
            account=submission.account,
            submitted=[SubmittedFeedbackDTO(**vars(s)) for s in submission.submitted],
            skipped=submission.skipped,
            message="Feedbacks submitted successfully.",
        )

    except (DetailNotFoundError, FeedbackError):
        raise
    except Exception as e:
        logger.error(f"Unexpected error submitting feedback: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error submitting feedback",
        )


@app.get("/experts", response_model=list[ExpertDTO])
async def get_experts(session: AsyncSession = Depends(get_session)) -> list[ExpertDTO]:
    """Fetch the expert directory."""
    try:
        experts = await list_experts(session)
        return [_expert_dto(e) for e in experts]
    except Exception as e:
        logger.error(f"Error fetching experts: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error fetching experts",
        )


@app.post(
    "/experts",
    response_model=ExpertDTO,
    status_code=status.HTTP_201_CREATED,
)
async def create_expert_endpoint(
    request: CreateExpertRequest,
    session: AsyncSession = Depends(get_session),
) -> ExpertDTO:
    """Add an expert to the directory."""
    try:
        expert = await create_expert(
            session,
            name=request.name,
            email=request.email,
            expertise=request.expertise,
        )
        return _expert_dto(expert)
    except DuplicateExpertError:
        raise
    except Exception as e:
        logger.error(f"Error saving expert: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error saving expert",
        )


@app.get("/experts/{expert_name}/agenda", response_model=AgendaResponse)
async def get_agenda(
    expert_name: str,
    upcoming: bool = Query(default=False, description="Only interviews that have not started yet"),
    session: AsyncSession = Depends(get_session),
) -> AgendaResponse:
    """List the interviews an expert is assigned to, earliest first."""
    try:
        items = await build_agenda(session, expert_name, upcoming_only=upcoming)
        return AgendaResponse(
            expert_name=expert_name,
            interviews=[
                AgendaItemDTO(
                    detail_id=i.detail_id,
                    requirement=i.requirement,
                    scheduled_at=_as_utc(i.scheduled_at),
                    day=i.day,
                    date=i.date,
                    time=i.time,
                    acceptance_status=i.acceptance_status,
                    token=i.token,
                    candidates=[CandidateDTO(**c) for c in i.candidates],
                )
                for i in items
            ],
        )
    except Exception as e:
        logger.error(f"Error fetching agenda for '{expert_name}': {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error fetching agenda",
        )
