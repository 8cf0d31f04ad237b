"""
Skill Session API Endpoints

POST /api/session/start              - Start a session with a friend (201)
GET  /api/session/active/{friend_id} - Active session with a friend
GET  /api/session/count/{friend_id}  - Completed-session count and cap
POST /api/session/{session_id}/end   - End a session (either participant)
POST /api/session/{session_id}/feedback - Link submitted feedback to a session
GET  /api/session/history/{friend_id} - Completed sessions, newest first
POST /api/session/request            - Ask a friend for a follow-up session
"""
import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, status
from pydantic import BaseModel, Field

from skillswap.api.auth import get_current_user
from skillswap.models.user import User
from skillswap.schemas import SessionView
from skillswap.services.errors import NotFound
from skillswap.services.session_engine import get_session_engine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/session", tags=["sessions"])


# Request/Response models

class StartSessionRequest(BaseModel):
    friend_id: UUID
    chat_id: Optional[UUID] = Field(None, description="Chat thread the session belongs to")


class SessionRequestBody(BaseModel):
    friend_id: UUID


class RecordFeedbackRequest(BaseModel):
    feedback_id: Optional[UUID] = None


class SessionResponse(BaseModel):
    message: Optional[str] = None
    session: SessionView


class EndSessionResponse(BaseModel):
    message: str
    session: SessionView
    duration: int


class SessionCountResponse(BaseModel):
    session_count: int
    can_start_new_session: bool
    max_sessions: int


class SessionHistoryResponse(BaseModel):
    sessions: List[SessionView]


class MessageResponse(BaseModel):
    message: str


# Endpoints

@router.post("/start", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def start_session(body: StartSessionRequest, user: User = Depends(get_current_user)):
    """
    Start a skill-sharing session with a friend.

    Raises:
        403: Not friends
        400: Session already active (existing session in error details) or cap reached
    """
    engine = get_session_engine()
    session_obj = await engine.start_session(user.id, body.friend_id, body.chat_id)
    return SessionResponse(
        message="Session started successfully",
        session=SessionView.model_validate(session_obj),
    )


@router.get("/active/{friend_id}", response_model=SessionResponse)
async def get_active_session(
    friend_id: UUID = Path(..., description="Friend user id"),
    user: User = Depends(get_current_user),
):
    engine = get_session_engine()
    session_obj = await engine.get_active_session(user.id, friend_id)
    if session_obj is None:
        raise NotFound("No active session")
    return SessionResponse(session=SessionView.model_validate(session_obj))


@router.get("/count/{friend_id}", response_model=SessionCountResponse)
async def get_session_count(friend_id: UUID, user: User = Depends(get_current_user)):
    engine = get_session_engine()
    count = await engine.get_session_count(user.id, friend_id)
    return SessionCountResponse(
        session_count=count,
        can_start_new_session=count < engine.max_sessions,
        max_sessions=engine.max_sessions,
    )


@router.get("/history/{friend_id}", response_model=SessionHistoryResponse)
async def get_session_history(friend_id: UUID, user: User = Depends(get_current_user)):
    engine = get_session_engine()
    sessions = await engine.get_history(user.id, friend_id)
    return SessionHistoryResponse(sessions=[SessionView.model_validate(s) for s in sessions])


@router.post("/request", response_model=MessageResponse)
async def request_session(body: SessionRequestBody, user: User = Depends(get_current_user)):
    """Notify a friend that a follow-up session is wanted; no state is stored."""
    engine = get_session_engine()
    await engine.request_new_session(user.id, body.friend_id)
    return MessageResponse(message="Session request sent successfully")


@router.post("/{session_id}/end", response_model=EndSessionResponse)
async def end_session(session_id: UUID, user: User = Depends(get_current_user)):
    engine = get_session_engine()
    session_obj, duration = await engine.end_session(session_id, user.id)
    return EndSessionResponse(
        message="Session ended successfully",
        session=SessionView.model_validate(session_obj),
        duration=duration,
    )


@router.post("/{session_id}/feedback", response_model=SessionResponse)
async def record_session_feedback(
    session_id: UUID,
    body: RecordFeedbackRequest,
    user: User = Depends(get_current_user),
):
    engine = get_session_engine()
    session_obj = await engine.record_feedback(session_id, user.id, body.feedback_id)
    return SessionResponse(
        message="Feedback recorded successfully",
        session=SessionView.model_validate(session_obj),
    )
